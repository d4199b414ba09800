"""ASGI response that serves one conversion session as server-sent events."""

import asyncio
import logging
from collections.abc import Mapping

from starlette.responses import Response
from starlette.types import Message, Receive, Scope, Send

from ..session import ConversionSession
from ..stream.bridge import StreamBridge
from ..stream.sse import SseEncoder, TransportClosed

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class AsgiSseTransport:
    """``SseTransport`` over an ASGI ``send`` callable."""

    def __init__(self, send: Send):
        self._send = send
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, data: str) -> None:
        if self._closed:
            raise TransportClosed("response already closed")
        try:
            await self._send({
                "type": "http.response.body",
                "body": data.encode("utf-8"),
                "more_body": True,
            })
        except OSError as e:
            self._closed = True
            raise TransportClosed(str(e)) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._send({"type": "http.response.body", "body": b"", "more_body": False})
        except OSError as e:
            logger.debug("Peer gone before the response was finished: %s", e)

    def mark_closed(self) -> None:
        self._closed = True


class ConversionStreamResponse(Response):
    """Streams a session's bridge and turns ``http.disconnect`` into a cancel."""

    media_type = "text/event-stream"

    def __init__(
        self,
        session: ConversionSession,
        bridge: StreamBridge,
        status_code: int = 200,
        headers: Mapping[str, str] | None = None,
    ):
        # No body: keeps Content-Length out of the headers
        self.session = session
        self.bridge = bridge
        self.status_code = status_code
        self.background = None
        self.init_headers({**SSE_HEADERS, **(headers or {})})

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self.raw_headers,
        })

        encoder = SseEncoder(self.bridge, AsgiSseTransport(send), on_disconnect=self.session.cancel)
        watcher = asyncio.create_task(_watch_disconnect(receive, encoder))
        try:
            await encoder.run()
        finally:
            watcher.cancel()
            await asyncio.wait({watcher})
            # Server shutdown or handler cancellation lands here too
            self.session.cancel()


async def _watch_disconnect(receive: Receive, encoder: SseEncoder) -> None:
    while True:
        message: Message = await receive()
        if message["type"] == "http.disconnect":
            encoder.peer_disconnected()
            return
