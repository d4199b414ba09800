import asyncio
from collections.abc import AsyncIterator, Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DeltaKind(str, Enum):
    """What part of the model output a delta belongs to."""

    CONTENT = "content"
    REASONING = "reasoning"


class Delta(BaseModel):
    """One incremental fragment of generated text."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Fragment text, exactly as produced")
    kind: DeltaKind = Field(default=DeltaKind.CONTENT)


class ChatMessage(BaseModel):
    """Represents a chat message sent to the backend."""

    model_config = ConfigDict(frozen=True)

    role: str = Field(description="Role of the message sender: 'system', 'user' or 'assistant'")
    content: str = Field(description="Content of the message")


class LLMResponse(BaseModel):
    """Response from a non-streaming completion."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(description="Generated text content")
    model: str = Field(description="Model that generated the response")
    usage: dict[str, int] | None = Field(
        default=None,
        description="Token usage information"
    )


class CancelHandle:
    """One-shot cancellation latch for a completion stream.

    ``cancel()`` may be called any number of times, before, during or after
    consumption; only the first call has an effect and runs the registered
    callbacks.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` on cancellation (immediately if already cancelled)."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()


class CompletionStream:
    """Lazy, single-pass async iterator of deltas with usage capture.

    Acts as an async iterator for deltas while storing token usage that
    becomes available at the end of the stream. Once the cancel handle fires,
    iteration ends quietly (no exception).

    Usage:
        stream, cancel = source.start(messages)
        async for delta in stream:
            print(delta.text, end="")
        print(stream.usage)  # {"prompt_tokens": 100, "completion_tokens": 50, ...}
    """

    def __init__(self, async_iter: AsyncIterator[Delta], cancel_handle: CancelHandle | None = None):
        """Initialize with an async iterator of deltas.

        Args:
            async_iter: Async iterator yielding deltas
            cancel_handle: Latch that stops the iteration; a new one when None
        """
        self._iter = async_iter
        self._usage: dict[str, Any] | None = None
        self._closed = False
        self.cancel_handle = cancel_handle or CancelHandle()
        self._cancel_requested = asyncio.Event()
        self.cancel_handle.add_callback(self._cancel_requested.set)

    @property
    def usage(self) -> dict[str, Any] | None:
        """Get token usage info (available after iteration completes)."""
        return self._usage

    def set_usage(self, usage: dict[str, Any]) -> None:
        """Set token usage info (called by provider at end of stream)."""
        self._usage = usage

    def __aiter__(self) -> "CompletionStream":
        return self

    async def __anext__(self) -> Delta:
        if self.cancel_handle.cancelled or self._closed:
            raise StopAsyncIteration

        # A read waiting on the network is interrupted by cancellation
        read = asyncio.ensure_future(self._read())
        stop = asyncio.ensure_future(self._cancel_requested.wait())
        try:
            await asyncio.wait({read, stop}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stop.cancel()
            if not read.done():
                read.cancel()
                await asyncio.wait({read})

        if self.cancel_handle.cancelled:
            if not read.cancelled():
                # Result or error of a read that raced the cancel is dropped
                read.exception()
            raise StopAsyncIteration
        return read.result()

    async def _read(self) -> Delta:
        return await self._iter.__anext__()

    async def aclose(self) -> None:
        """Release the underlying iterator (and its HTTP response). Idempotent."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._iter, "aclose", None)
        if aclose is not None:
            await aclose()
