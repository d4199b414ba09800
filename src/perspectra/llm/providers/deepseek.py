from typing import Any

from .openai import OpenAICompletionSource


class DeepSeekCompletionSource(OpenAICompletionSource):
    """DeepSeek backend through its OpenAI-compatible API.

    ``deepseek-reasoner`` streams its chain of thought as
    ``reasoning_content``, which surfaces as reasoning deltas.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "deepseek-chat",
        base_url: str | None = "https://api.deepseek.com",
        **kwargs: Any
    ):
        """Initialize DeepSeek backend.

        Args:
            api_key: DeepSeek API key
            model: Default model ('deepseek-chat' or 'deepseek-reasoner')
            base_url: DeepSeek API base URL (default: https://api.deepseek.com)
            **kwargs: Passed to OpenAICompletionSource
        """
        super().__init__(api_key=api_key, model=model, base_url=base_url, **kwargs)
