"""Token identity resolution: GeckoTerminal pool search, ranking and fallbacks."""

from .models import (
    Candidate,
    OutcomeReason,
    QueryMode,
    ResolutionOutcome,
    ResolutionQuery,
    TokenIdentity,
    TrendingSet,
)
from .service import TokenIdentityService, get_token_identity_service

__all__ = [
    "Candidate",
    "OutcomeReason",
    "QueryMode",
    "ResolutionOutcome",
    "ResolutionQuery",
    "TokenIdentity",
    "TokenIdentityService",
    "TrendingSet",
    "get_token_identity_service",
]
