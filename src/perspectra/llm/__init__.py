from .base import CompletionSource
from .factory import create_completion_source
from .models import CancelHandle, ChatMessage, CompletionStream, Delta, DeltaKind, LLMResponse
from .providers import DeepSeekCompletionSource, OpenAICompletionSource

__all__ = [
    "CancelHandle",
    "ChatMessage",
    "CompletionSource",
    "CompletionStream",
    "DeepSeekCompletionSource",
    "Delta",
    "DeltaKind",
    "LLMResponse",
    "OpenAICompletionSource",
    "create_completion_source",
]
