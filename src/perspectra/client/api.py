"""HTTP client for a running relay."""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

import httpx

from ..errors import CompletionError
from .fold import MessageFold, SseLineBuffer
from .models import Message

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"

UpdateCallback = Callable[[Message], None]


class PerspectiveClient:
    """Streams perspective conversions from the relay into ``Message`` objects.

    Supports async context manager protocol:
        async with PerspectiveClient() as client:
            message = await client.convert("product-manager", "developer", text)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float | None = 60.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Relay root URL
            timeout: Request timeout in seconds, applies to each read of the stream
            client: Pre-built httpx client (tests pass one bound to an ASGI app)
        """
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def convert(
        self,
        source_role: str,
        target_role: str,
        content: str,
        on_update: UpdateCallback | None = None,
        message: Message | None = None,
    ) -> Message:
        """Request a conversion and fold its stream into an assistant message.

        Args:
            source_role: Source role id
            target_role: Target role id
            content: Text to convert
            on_update: Called with the message after every visible change
            message: Message to fill; a new assistant message when None

        Returns:
            The message in a terminal status (success or error). A stream that
            ends without a terminal line counts as an error.

        Raises:
            asyncio.CancelledError: Re-raised after the message is marked abort
        """
        message = message or Message(role="assistant")
        fold = MessageFold(message)
        fold.begin()
        _notify(on_update, message)

        body = {"sourceRole": source_role, "targetRole": target_role, "content": content}
        try:
            async with self._http.stream("POST", "/llm/perspective-convert", json=body) as response:
                if response.status_code >= 400:
                    await response.aread()
                    fold.fail(_error_message(response))
                    _notify(on_update, message)
                    return message

                buffer = SseLineBuffer()
                async for text in response.aiter_text():
                    if text and fold.receiving():
                        _notify(on_update, message)
                    for line in buffer.feed(text):
                        if fold.apply_line(line):
                            _notify(on_update, message)
                    if fold.finished:
                        break
                rest = buffer.flush()
                if rest is not None and fold.apply_line(rest):
                    _notify(on_update, message)
        except asyncio.CancelledError:
            if fold.abort():
                _notify(on_update, message)
            raise
        except httpx.HTTPError as e:
            logger.warning("Conversion request failed: %s", e)
            fold.fail(str(e) or type(e).__name__)
            _notify(on_update, message)
            return message

        if not fold.finished:
            fold.fail("stream ended before completion")
            _notify(on_update, message)
        return message

    async def chat(self, message: str) -> str:
        """Single-turn completion through ``/llm/chat``.

        Raises:
            CompletionError: The relay answered with an error status
        """
        response = await self._http.post("/llm/chat", json={"message": message})
        if response.status_code >= 400:
            raise CompletionError(_error_message(response))
        return response.json()["response"]

    async def close(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "PerspectiveClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def _notify(callback: UpdateCallback | None, message: Message) -> None:
    if callback is not None:
        callback(message)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"HTTP {response.status_code}"
