"""Factory for creating connections by kind."""

from __future__ import annotations

from typing import Any

from .base import BaseConnection, ConnectionKind
from .http_stream import HTTPStreamConnection
from .state import RetryPolicy
from .websocket import WebSocketConnection

_CONNECTION_CLASSES: dict[ConnectionKind, type[BaseConnection]] = {
    ConnectionKind.WEBSOCKET: WebSocketConnection,
    ConnectionKind.SSE: HTTPStreamConnection,
}


def new_connection(
    kind: ConnectionKind | str,
    url: str,
    *,
    policy: RetryPolicy | None = None,
    **options: Any,
) -> BaseConnection:
    """Create a connection of the given kind. Performs no I/O.

    Args:
        kind: "websocket" or "sse"
        url: Endpoint to connect to
        policy: Reconnect policy (default: RetryPolicy())
        **options: Transport-specific arguments, e.g. ``opener`` for
            WebSocket or ``client``/``timeout``/``headers`` for SSE

    Returns:
        An unconnected WebSocketConnection or HTTPStreamConnection

    Raises:
        ValueError: If kind is not a known connection kind
    """
    connection_class = _CONNECTION_CLASSES[ConnectionKind(kind)]
    return connection_class(url, policy=policy, **options)


def create_websocket_connection(
    url: str,
    max_retries: int | None = 3,
    backoff_step: float = 1.0,
) -> WebSocketConnection:
    """Create a WebSocket connection with a bounded retry policy."""
    policy = RetryPolicy(max_retries=max_retries, backoff_step=backoff_step)
    return WebSocketConnection(url, policy=policy)


def create_stream_connection(
    url: str,
    restart: bool = False,
    timeout: float = 30.0,
) -> HTTPStreamConnection:
    """Create an HTTP stream connection.

    Args:
        url: Streaming endpoint
        restart: Re-issue the request after the body ends
        timeout: Connect timeout in seconds (reads never time out)
    """
    return HTTPStreamConnection(url, policy=RetryPolicy(enabled=restart), timeout=timeout)
