"""Event log, replay and SSE encoding for streamed completions."""

from .bridge import StreamBridge
from .events import EventType, StreamEvent
from .sse import DONE_SENTINEL, SseEncoder, SseTransport, TransportClosed, encode_event

__all__ = [
    "DONE_SENTINEL",
    "EventType",
    "SseEncoder",
    "SseTransport",
    "StreamBridge",
    "StreamEvent",
    "TransportClosed",
    "encode_event",
]
