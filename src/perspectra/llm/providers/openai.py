"""OpenAI-compatible completion backend.

Uses the official OpenAI Python SDK (``AsyncOpenAI``). Any endpoint speaking
the Chat Completions protocol works through ``base_url``; reasoning models
that stream ``reasoning_content`` alongside ``content`` are mapped onto
reasoning deltas.
"""

import logging
from collections.abc import AsyncIterator, Callable
from typing import Any

from openai import AsyncOpenAI

from ...errors import EmptyCompletionError
from ..base import CompletionSource
from ..models import CancelHandle, ChatMessage, CompletionStream, Delta, DeltaKind, LLMResponse

logger = logging.getLogger(__name__)


class OpenAICompletionSource(CompletionSource):
    """OpenAI completion backend.

    Hidden design decisions:
    - API client initialization (base URL only passed when configured)
    - Message format conversion
    - Chunk to delta mapping, including reasoning content
    - Usage capture from the final chunk
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        base_url: str | None = None,
        max_tokens: int | None = 1000,
        temperature: float = 0.7,
        client: AsyncOpenAI | None = None,
        **client_kwargs: Any
    ):
        """Initialize the backend.

        Args:
            api_key: API key
            model: Default model to use
            base_url: Optional OpenAI-compatible endpoint
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            client: Pre-built client (mainly for tests)
            **client_kwargs: Additional kwargs for AsyncOpenAI client
        """
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

        if client is None:
            options: dict[str, Any] = {"api_key": api_key, **client_kwargs}
            if base_url:
                options["base_url"] = base_url
            client = AsyncOpenAI(**options)
        self._client = client

        logger.info("Completion client initialized with baseURL: %s", base_url or "default")

    @property
    def model(self) -> str:
        """Get the default model name."""
        return self._model

    def start(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        **kwargs: Any
    ) -> tuple[CompletionStream, CancelHandle]:
        """Begin a streaming chat completion.

        Args:
            messages: Ordered system/user messages
            model: Model to use (overrides default)
            **kwargs: Additional Chat Completions parameters

        Returns:
            Delta stream and its cancel handle
        """
        request_params: dict[str, Any] = {
            "model": model or self._model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "stream": True,
            **kwargs,
        }
        if self._max_tokens is not None:
            request_params.setdefault("max_tokens", self._max_tokens)
        request_params.setdefault("temperature", self._temperature)

        cancel_handle = CancelHandle()
        stream = CompletionStream(
            self._delta_generator(request_params, lambda usage: stream.set_usage(usage)),
            cancel_handle,
        )
        return stream, cancel_handle

    async def _delta_generator(
        self,
        request_params: dict[str, Any],
        on_usage: Callable[[dict[str, Any]], None],
    ) -> AsyncIterator[Delta]:
        """Internal generator that yields deltas and captures usage."""
        stream = await self._client.chat.completions.create(**request_params)

        try:
            async for chunk in stream:
                if getattr(chunk, "usage", None) is not None:
                    on_usage({
                        "prompt_tokens": chunk.usage.prompt_tokens,
                        "completion_tokens": chunk.usage.completion_tokens,
                        "total_tokens": chunk.usage.total_tokens,
                    })
                if not chunk.choices:
                    continue

                delta = chunk.choices[0].delta
                if delta is None:
                    continue
                # Not part of the SDK's typed delta; set by reasoning models
                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield Delta(text=reasoning, kind=DeltaKind.REASONING)
                if delta.content:
                    yield Delta(text=delta.content, kind=DeltaKind.CONTENT)
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                await close()

    async def chat_completion(
        self,
        messages: list[ChatMessage],
        model: str | None = None,
        **kwargs: Any
    ) -> LLMResponse:
        """Generate a chat completion.

        Args:
            messages: Conversation messages
            model: Model to use (overrides default)
            **kwargs: Additional Chat Completions parameters

        Returns:
            LLMResponse with generated content

        Raises:
            EmptyCompletionError: No choice in the response
        """
        model_to_use = model or self._model
        request_params: dict[str, Any] = {
            "model": model_to_use,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
            "temperature": self._temperature,
            **kwargs,
        }
        if self._max_tokens is not None:
            request_params.setdefault("max_tokens", self._max_tokens)

        completion = await self._client.chat.completions.create(**request_params)

        if not completion.choices:
            raise EmptyCompletionError()
        content = completion.choices[0].message.content
        if content is None:
            raise EmptyCompletionError()

        usage = None
        if getattr(completion, "usage", None):
            usage = {
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens
            }

        return LLMResponse(
            content=content,
            model=getattr(completion, "model", None) or model_to_use,
            usage=usage
        )

    async def close(self) -> None:
        """Close the OpenAI client.

        Note: Uses the OpenAI SDK's async context manager for proper cleanup.
        See: https://github.com/openai/openai-python#async-usage
        """
        await self._client.close()
