"""Interest ledger and match resolver exports."""

from . import audit, policy, repair, service  # noqa: F401
from .models import InterestStatus, MatchStatus  # noqa: F401
from .schemas import (  # noqa: F401
	InterestSummary,
	MatchSummary,
	ResolveInterestRequest,
	ResolveResult,
	SendInterestRequest,
)
