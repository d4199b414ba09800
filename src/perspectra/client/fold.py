"""Incremental decoding of a conversion stream into a ``Message``.

Network chunks do not respect line boundaries, so bytes go through an
``SseLineBuffer`` first and complete lines are folded one at a time.
"""

import json
import logging
import time
from collections.abc import Callable

from .models import Message, MessageStatus

logger = logging.getLogger(__name__)

FAILURE_TEXT = "转换失败，请重试"

_DATA_PREFIX = "data:"
_DONE = "[DONE]"


class SseLineBuffer:
    """Splits decoded text into lines, holding back a trailing partial line."""

    def __init__(self) -> None:
        self._pending = ""

    def feed(self, text: str) -> list[str]:
        """Add a chunk and return every line it completed."""
        self._pending += text
        *lines, self._pending = self._pending.split("\n")
        return [line.removesuffix("\r") for line in lines]

    def flush(self) -> str | None:
        """Return the unterminated remainder, if any."""
        rest, self._pending = self._pending, ""
        rest = rest.removesuffix("\r")
        return rest or None


class MessageFold:
    """Applies stream lines to one assistant message.

    Once the message reaches a terminal status, later lines are ignored.
    Reasoning time runs from the first reasoning fragment to the first
    content fragment (or the end of the stream).
    """

    def __init__(self, message: Message, clock: Callable[[], float] = time.monotonic):
        self.message = message
        self._clock = clock
        self._reasoning_started: float | None = None

    @property
    def finished(self) -> bool:
        return self.message.status.is_terminal

    def begin(self) -> None:
        """Mark the message as waiting for the first bytes."""
        self.message.status = MessageStatus.LOADING

    def receiving(self) -> bool:
        """Body bytes arrived.

        Returns:
            True if this moved the message from loading to updating
        """
        if self.message.status is not MessageStatus.LOADING:
            return False
        self.message.status = MessageStatus.UPDATING
        return True

    def apply_line(self, line: str) -> bool:
        """Fold one line.

        Returns:
            True if the message changed
        """
        if self.finished:
            return False
        line = line.strip()
        if not line.startswith(_DATA_PREFIX):
            return False
        data = line[len(_DATA_PREFIX):].strip()
        if not data:
            return False

        if data == _DONE:
            self._finish(MessageStatus.SUCCESS)
            return True

        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            logger.warning("Skipping malformed stream line %r: %s", data, e)
            return False
        if not isinstance(payload, dict):
            logger.warning("Skipping unexpected stream payload: %r", payload)
            return False

        if "error" in payload:
            self.fail(str(payload["error"]))
            return True

        changed = False
        if payload.get("reasoning_content"):
            if self._reasoning_started is None:
                self._reasoning_started = self._clock()
            self.message.reasoning_content += payload["reasoning_content"]
            changed = True
        if payload.get("content"):
            self._stop_reasoning_clock()
            self.message.content += payload["content"]
            changed = True
        if changed:
            self.message.status = MessageStatus.UPDATING
        return changed

    def abort(self) -> bool:
        """Stop here, keeping whatever content already arrived."""
        if self.finished:
            return False
        self._finish(MessageStatus.ABORT)
        return True

    def fail(self, detail: str) -> bool:
        if self.finished:
            return False
        self._finish(MessageStatus.ERROR)
        self.message.content = FAILURE_TEXT
        self.message.error = detail
        return True

    def _finish(self, status: MessageStatus) -> None:
        self._stop_reasoning_clock()
        self.message.status = status

    def _stop_reasoning_clock(self) -> None:
        if self._reasoning_started is not None and self.message.reasoning_duration is None:
            self.message.reasoning_duration = self._clock() - self._reasoning_started
