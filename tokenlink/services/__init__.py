"""Service layer helpers"""

from .mentions import MentionResolver, extract_mentions, reconstruct_addresses
from .token_identity import (
    QueryMode,
    TokenIdentity,
    TokenIdentityService,
    get_token_identity_service,
)

__all__ = [
    "MentionResolver",
    "QueryMode",
    "TokenIdentity",
    "TokenIdentityService",
    "extract_mentions",
    "get_token_identity_service",
    "reconstruct_addresses",
]
