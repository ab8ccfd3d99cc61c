"""chatstream - live text-chunk connections over WebSocket or HTTP streaming.

One contract for two transports:
- WebSocketConnection: duplex, caller sends and server pushes
- HTTPStreamConnection: one POST, then a streamed response body

Plus the pieces that sit around them: provider adapters, chunk transformers
and a key-injecting streaming proxy.
"""

from .connection import (
    BaseConnection,
    ConnectionKind,
    HealthState,
    HTTPStreamConnection,
    RetryPolicy,
    WebSocketConnection,
    new_connection,
)
from .exceptions import (
    ChatStreamError,
    MalformedChunkError,
    MissingPayloadError,
    NotConnectedError,
    TransportError,
)
from .transformer import SSEParser, wrap

__version__ = "0.1.0"

__all__ = [
    "BaseConnection",
    "ChatStreamError",
    "ConnectionKind",
    "HTTPStreamConnection",
    "HealthState",
    "MalformedChunkError",
    "MissingPayloadError",
    "NotConnectedError",
    "RetryPolicy",
    "SSEParser",
    "TransportError",
    "WebSocketConnection",
    "new_connection",
    "wrap",
]
