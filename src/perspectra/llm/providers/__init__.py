from .deepseek import DeepSeekCompletionSource
from .openai import OpenAICompletionSource

__all__ = ["DeepSeekCompletionSource", "OpenAICompletionSource"]
