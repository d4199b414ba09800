"""Server-sent event encoding of a bridge subscription.

Wire format, one line group per event:

    data: {"content": "..."}            content delta
    data: {"reasoning_content": "..."}  reasoning delta
    data: {"error": "..."}              terminal failure
    data: [DONE]                        normal completion

An aborted stream writes nothing; the transport is simply closed.
"""

import json
import logging
from collections.abc import Callable
from typing import Protocol

from ..llm.models import DeltaKind
from .bridge import StreamBridge
from .events import EventType, StreamEvent

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class TransportClosed(Exception):
    """The peer is gone; nothing more can be written."""


class SseTransport(Protocol):
    """Byte sink for one SSE response."""

    @property
    def closed(self) -> bool:
        ...

    async def write(self, data: str) -> None:
        """Write one encoded event; raises TransportClosed when the peer is gone."""
        ...

    async def close(self) -> None:
        """Finish the response. Idempotent; never writes after ``mark_closed``."""
        ...

    def mark_closed(self) -> None:
        """Record that the peer disconnected."""
        ...


def format_data(payload: str) -> str:
    return f"data: {payload}\n\n"


def encode_event(event: StreamEvent) -> str | None:
    """Serialize one event, or None for events that never reach the wire."""
    if event.type is EventType.DELTA:
        key = "reasoning_content" if event.delta.kind is DeltaKind.REASONING else "content"
        return format_data(json.dumps({key: event.delta.text}, ensure_ascii=False))
    if event.type is EventType.DONE:
        return format_data(DONE_SENTINEL)
    if event.type is EventType.ERROR:
        return format_data(json.dumps({"error": event.message or ""}, ensure_ascii=False))
    return None


class SseEncoder:
    """Writes a bridge's events to a transport and reports peer disconnects.

    ``on_disconnect`` is the upstream cancellation path (normally
    ``ConversionSession.cancel``); it runs at most once.
    """

    def __init__(
        self,
        bridge: StreamBridge,
        transport: SseTransport,
        on_disconnect: Callable[[], object] | None = None,
    ):
        self._bridge = bridge
        self._transport = transport
        self._on_disconnect = on_disconnect
        self._disconnected = False
        self._written = 0

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    @property
    def events_written(self) -> int:
        return self._written

    async def run(self) -> None:
        """Stream events until a terminal one (or a disconnect), then close."""
        try:
            async for event in self._bridge.subscribe():
                if self._disconnected or self._transport.closed:
                    break

                line = encode_event(event)
                if line is not None:
                    try:
                        await self._transport.write(line)
                    except TransportClosed as e:
                        logger.info("Peer went away while writing: %s", e)
                        self.peer_disconnected()
                        break
                    self._written += 1

                if event.is_terminal:
                    break
        finally:
            await self._transport.close()

    def peer_disconnected(self) -> None:
        """Transport callback: the client is gone.

        Cancels upstream exactly once and stops further writes. Safe to call
        after the stream has already finished.
        """
        if self._disconnected:
            return
        self._disconnected = True
        self._transport.mark_closed()
        logger.info("Client disconnected after %d events", self._written)
        if self._on_disconnect is not None:
            self._on_disconnect()
