from abc import ABC, abstractmethod
from typing import Any

from .models import CancelHandle, ChatMessage, CompletionStream, LLMResponse


class CompletionSource(ABC):
    """Abstract base class for language-model backends.

    This module hides the design decision of which backend is used.
    Implementations must handle provider-specific details like:
    - API client setup and authentication
    - Request/response format conversion
    - Mapping provider chunks onto content and reasoning deltas

    Supports async context manager protocol for proper resource cleanup:
        async with source:
            stream, cancel = source.start(messages)
        # Automatically cleaned up
    """

    @abstractmethod
    def start(
        self,
        messages: list[ChatMessage],
        **kwargs: Any
    ) -> tuple[CompletionStream, CancelHandle]:
        """Begin a streaming completion.

        The backend request is issued lazily, on first consumption of the
        returned stream, so this call never fails: network and API errors are
        raised while iterating.

        Args:
            messages: Ordered system/user messages
            **kwargs: Provider-specific parameters

        Returns:
            The delta stream and its cancel handle. Cancelling is idempotent
            and ends the stream without an error.
        """

    @abstractmethod
    async def chat_completion(
        self,
        messages: list[ChatMessage],
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a complete, non-streaming response.

        Raises:
            EmptyCompletionError: The backend returned no choices
        """

    @abstractmethod
    async def close(self) -> None:
        """Close any open connections or resources."""

    async def __aenter__(self) -> "CompletionSource":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup.

        Note: Suppresses "Event loop is closed" errors during cleanup.
        This is a known harmless race condition in httpx/anyio cleanup:
        https://github.com/encode/httpx/issues/914
        """
        try:
            await self.close()
        except RuntimeError as e:
            if "Event loop is closed" not in str(e):
                raise
