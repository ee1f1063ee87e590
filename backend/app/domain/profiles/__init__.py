"""Profile store exports (read-only pet and user lookups)."""

from .models import Pet, User  # noqa: F401
from .repo import get_pet, get_user, list_pets_owned_by  # noqa: F401
