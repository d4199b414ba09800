from typing import Any

from .base import CompletionSource
from .providers import DeepSeekCompletionSource, OpenAICompletionSource


def create_completion_source(provider: str, **config: Any) -> CompletionSource:
    """Create a completion backend.

    This factory function hides the instantiation logic for different providers.

    Args:
        provider: Provider type ('openai', 'deepseek')
        **config: Provider-specific configuration
            For OpenAI:
                - api_key: str (required)
                - model: str (default: 'gpt-3.5-turbo')
                - base_url: str | None
                - max_tokens: int | None (default: 1000)
                - temperature: float (default: 0.7)
            For DeepSeek:
                - api_key: str (required)
                - model: str (default: 'deepseek-chat')
                - base_url: str (default: 'https://api.deepseek.com')

    Returns:
        Initialized completion source

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> source = create_completion_source(
        ...     "deepseek",
        ...     api_key="sk-...",
        ...     model="deepseek-reasoner"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI provider requires 'api_key' in config")
        return OpenAICompletionSource(**config)

    if provider_lower == "deepseek":
        if "api_key" not in config:
            raise TypeError("DeepSeek provider requires 'api_key' in config")
        return DeepSeekCompletionSource(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'openai', 'deepseek'"
    )
