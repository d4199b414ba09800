"""HTTP surface of the relay."""

from .app import create_app
from .responses import AsgiSseTransport, ConversionStreamResponse

__all__ = ["AsgiSseTransport", "ConversionStreamResponse", "create_app"]
