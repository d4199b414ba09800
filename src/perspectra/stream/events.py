"""Events carried by a stream bridge."""

from enum import Enum

from pydantic import BaseModel, ConfigDict

from ..llm.models import Delta


class EventType(str, Enum):
    DELTA = "delta"
    ERROR = "error"
    DONE = "done"
    ABORTED = "aborted"


class StreamEvent(BaseModel):
    """One entry of a session's event log.

    ``DONE``, ``ERROR`` and ``ABORTED`` are terminal: a log holds at most one
    of them, as its last entry. ``ABORTED`` is never written to the wire.
    """

    model_config = ConfigDict(frozen=True)

    type: EventType
    delta: Delta | None = None
    message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.type is not EventType.DELTA

    @classmethod
    def of_delta(cls, delta: Delta) -> "StreamEvent":
        return cls(type=EventType.DELTA, delta=delta)

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(type=EventType.ERROR, message=message)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(type=EventType.DONE)

    @classmethod
    def aborted(cls) -> "StreamEvent":
        return cls(type=EventType.ABORTED)
