"""
Maritime Telemetry Stream

Pushes synthetic port and vessel telemetry to dashboard clients over WebSocket,
with a reconnecting client counterpart.
"""

from .config import StreamConfig
from .envelope import Category, Envelope, EnvelopeError, ParseError, ShapeError, decode, encode
from .telemetry import MaritimeDataGenerator

__version__ = "0.1.0"

__all__ = [
    "Category",
    "Envelope",
    "EnvelopeError",
    "MaritimeDataGenerator",
    "ParseError",
    "ShapeError",
    "StreamConfig",
    "decode",
    "encode",
]
