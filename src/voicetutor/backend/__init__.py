"""Assistant backend boundary."""

from voicetutor.backend.client import ChatBackend, ChatReply, HttpChatBackend
from voicetutor.backend.models import ChatRequest, ChatResponse, RequestType

__all__ = [
    "ChatBackend",
    "ChatReply",
    "ChatRequest",
    "ChatResponse",
    "HttpChatBackend",
    "RequestType",
]
