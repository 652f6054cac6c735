"""VoiceBridge data-access layer.

One contract for authentication, profiles, voice/text queries, lessons and
query history, served by the remote API when a base URL is configured and by
a local simulation otherwise.
"""

from voicebridge.config import Settings
from voicebridge.models.api_models import ApiResponse
from voicebridge.services.dispatcher import Operation, RequestDispatcher, get_dispatcher

__version__ = "1.0.0"

__all__ = [
    "ApiResponse",
    "Operation",
    "RequestDispatcher",
    "Settings",
    "get_dispatcher",
]
