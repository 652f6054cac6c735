"""Data models for the VoiceBridge data-access layer."""

from .api_models import (
    ApiResponse,
    AuthResult,
    AuthTokens,
    Lesson,
    PagedResult,
    QueryRecord,
    TextQueryResult,
    User,
    UserProfile,
    VoiceQueryResult,
)
from .internal_models import (
    CannedReply,
    Classification
)

__all__ = [
    "ApiResponse",
    "AuthResult",
    "AuthTokens",
    "Lesson",
    "PagedResult",
    "QueryRecord",
    "TextQueryResult",
    "User",
    "UserProfile",
    "VoiceQueryResult",
    "CannedReply",
    "Classification"
]
