"""Client side of the relay: stream decoding and a conversation model."""

from .api import DEFAULT_BASE_URL, PerspectiveClient
from .conversation import SAME_ROLE_WARNING, Conversation
from .fold import FAILURE_TEXT, MessageFold, SseLineBuffer
from .models import Message, MessageStatus

__all__ = [
    "Conversation",
    "DEFAULT_BASE_URL",
    "FAILURE_TEXT",
    "Message",
    "MessageFold",
    "MessageStatus",
    "PerspectiveClient",
    "SAME_ROLE_WARNING",
    "SseLineBuffer",
]
