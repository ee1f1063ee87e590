"""Block guard exports."""

from . import audit, service  # noqa: F401
from .service import block, has_blocked, is_blocked, list_blocked, unblock  # noqa: F401
