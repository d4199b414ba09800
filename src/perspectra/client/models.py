from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field


class MessageStatus(str, Enum):
    """Lifecycle of a message in a conversation view."""

    LOADING = "loading"
    UPDATING = "updating"
    SUCCESS = "success"
    ERROR = "error"
    ABORT = "abort"

    @property
    def is_terminal(self) -> bool:
        return self in (MessageStatus.SUCCESS, MessageStatus.ERROR, MessageStatus.ABORT)


class Message(BaseModel):
    """A chat message as shown to the user.

    Assistant messages are filled in place while their stream is consumed.
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: str = Field(description="'user' or 'assistant'")
    content: str = ""
    reasoning_content: str = ""
    status: MessageStatus = MessageStatus.SUCCESS
    timestamp: datetime = Field(default_factory=datetime.now)
    error: str | None = Field(default=None, description="Failure detail, kept apart from content")
    reasoning_duration: float | None = Field(
        default=None,
        description="Seconds between the first reasoning and the first content fragment"
    )
