"""Live text-chunk connections over WebSocket or HTTP streaming.

Provides:
- WebSocketConnection: persistent duplex socket with bounded reconnect
- HTTPStreamConnection: one POST, then a streamed response body
- new_connection: pick a transport by kind
"""

from .base import BaseConnection, ConnectionKind, DuplexConnection, MessageHandler
from .factory import create_stream_connection, create_websocket_connection, new_connection
from .http_stream import HTTPStreamConnection
from .state import ConnectionState, HealthState, RetryPolicy, backoff_delay, can_retry
from .websocket import WebSocketConnection

__all__ = [
    "BaseConnection",
    "ConnectionKind",
    "ConnectionState",
    "DuplexConnection",
    "HTTPStreamConnection",
    "HealthState",
    "MessageHandler",
    "RetryPolicy",
    "WebSocketConnection",
    "backoff_delay",
    "can_retry",
    "create_stream_connection",
    "create_websocket_connection",
    "new_connection",
]
