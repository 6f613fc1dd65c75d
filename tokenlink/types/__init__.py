from .requests import DetectMentionsRequest, MentionText, ResolveRequest
from .responses import (
    CandidateModel,
    DetectMentionsResponse,
    OutcomeModel,
    ResolvedMentionModel,
    ResolveResponse,
    TokenIdentityModel,
)

__all__ = [
    "CandidateModel",
    "DetectMentionsRequest",
    "DetectMentionsResponse",
    "MentionText",
    "OutcomeModel",
    "ResolvedMentionModel",
    "ResolveRequest",
    "ResolveResponse",
    "TokenIdentityModel",
]
