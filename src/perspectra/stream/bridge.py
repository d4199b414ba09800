"""Replay-buffered, cancellable channel over a single completion stream.

A ``StreamBridge`` consumes one ``CompletionStream`` in a background task and
records every event in an append-only log. Subscribers first replay the log,
then follow live appends, so a consumer that attaches late still sees the
full history in order.

The log is closed by exactly one terminal event. Natural completion, an
upstream error and ``abort()`` all go through the same latch; whichever
arrives first wins and the others become no-ops.

All methods must be called from the event loop that created the bridge.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable

from ..llm.models import CancelHandle, CompletionStream
from .events import StreamEvent

logger = logging.getLogger(__name__)


class StreamBridge:
    """Multicast replay log in front of one upstream completion."""

    def __init__(
        self,
        stream: CompletionStream | None = None,
        cancel_handle: CancelHandle | None = None,
        name: str | None = None,
    ):
        """Start consuming ``stream`` immediately.

        Args:
            stream: Upstream delta stream; None builds an idle bridge that is
                only useful together with ``close_with`` (see ``failed``)
            cancel_handle: Upstream cancel handle invoked by ``abort``
            name: Label used in logs and for the pump task

        Must be called with a running event loop when ``stream`` is given.
        """
        self._stream = stream
        self._cancel_handle = cancel_handle
        self._name = name or "bridge"
        self._log: list[StreamEvent] = []
        self._wakeup = asyncio.Event()
        self._closed = asyncio.Event()
        self._terminal_callbacks: list[Callable[[StreamEvent], None]] = []
        self._pump_task: asyncio.Task | None = None

        if stream is not None:
            loop = asyncio.get_running_loop()
            self._pump_task = loop.create_task(self._pump(), name=f"{self._name}-pump")

    @classmethod
    def failed(cls, message: str, name: str | None = None) -> "StreamBridge":
        """A bridge whose log is a single ``Error`` event."""
        bridge = cls(name=name)
        bridge.close_with(StreamEvent.error(message))
        return bridge

    @property
    def events(self) -> tuple[StreamEvent, ...]:
        """Snapshot of the log."""
        return tuple(self._log)

    @property
    def is_closed(self) -> bool:
        """Whether the terminal event has been appended."""
        return self._closed.is_set()

    @property
    def terminal_event(self) -> StreamEvent | None:
        if not self.is_closed:
            return None
        return self._log[-1]

    def add_terminal_callback(self, callback: Callable[[StreamEvent], None]) -> None:
        """Call ``callback(event)`` once the log is closed (now, if it already is)."""
        if self.is_closed:
            callback(self._log[-1])
        else:
            self._terminal_callbacks.append(callback)

    async def subscribe(self) -> AsyncIterator[StreamEvent]:
        """Replay the log, then follow live events until the terminal one."""
        index = 0
        while True:
            while index < len(self._log):
                event = self._log[index]
                index += 1
                yield event
                if event.is_terminal:
                    return
            await self._wakeup.wait()

    def abort(self) -> bool:
        """Cancel the upstream call and close the log with ``Aborted``.

        Returns:
            True if this call aborted the stream, False when the log was
            already closed (nothing is cancelled in that case)
        """
        if not self.close_with(StreamEvent.aborted()):
            return False

        logger.info("%s aborted", self._name)
        if self._cancel_handle is not None:
            self._cancel_handle.cancel()
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
        return True

    def close_with(self, event: StreamEvent) -> bool:
        """Append a terminal event unless the log is already closed."""
        if self.is_closed:
            return False
        self._append(event)
        self._closed.set()

        callbacks, self._terminal_callbacks = self._terminal_callbacks, []
        for callback in callbacks:
            callback(event)
        return True

    async def wait_closed(self) -> StreamEvent:
        """Wait for the terminal event and for the upstream to be released."""
        await self._closed.wait()
        if self._pump_task is not None:
            await asyncio.wait({self._pump_task})
        return self._log[-1]

    def _append(self, event: StreamEvent) -> None:
        self._log.append(event)
        wakeup, self._wakeup = self._wakeup, asyncio.Event()
        wakeup.set()

    async def _pump(self) -> None:
        stream = self._stream
        try:
            async for delta in stream:
                # Stop consuming once a terminal event is in, whatever produced it
                if self.is_closed:
                    break
                logger.debug("%s received delta: %r", self._name, delta.text)
                self._append(StreamEvent.of_delta(delta))
        except asyncio.CancelledError:
            self.close_with(StreamEvent.aborted())
            raise
        except Exception as e:
            logger.warning("%s upstream failed: %s", self._name, e)
            self.close_with(StreamEvent.error(str(e) or type(e).__name__))
        else:
            self.close_with(StreamEvent.done())
        finally:
            try:
                await stream.aclose()
            except Exception as e:
                logger.warning("%s failed to release upstream: %s", self._name, e)
