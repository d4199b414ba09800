"""
Perspectra: streaming perspective conversion between workplace roles.

A request names a source role, a target role and a piece of text; the relay
asks a language model to restate the text from the target role's point of
view and streams the answer back as server-sent events.
"""

__version__ = "0.1.0"

from .errors import (
    CompletionError,
    InvalidRequestError,
    PerspectraError,
    RoleConfigurationMissingError,
    RoleNotFoundError,
)
from .roles import RoleConfig, RoleRegistry, load_roles_config
from .session import ConversionRequest, ConversionSession, SessionState
from .stream import StreamBridge, StreamEvent

__all__ = [
    "CompletionError",
    "ConversionRequest",
    "ConversionSession",
    "InvalidRequestError",
    "PerspectraError",
    "RoleConfig",
    "RoleConfigurationMissingError",
    "RoleNotFoundError",
    "RoleRegistry",
    "SessionState",
    "StreamBridge",
    "StreamEvent",
    "load_roles_config",
]
