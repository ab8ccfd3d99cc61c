"""Exception types raised by chatstream.

Structural misuse (sending on a closed socket, connecting without a payload)
raises immediately. Transient network drops are recovered by the reconnect
loop and never surface here.
"""

from __future__ import annotations


class ChatStreamError(Exception):
    """Base class for all chatstream errors."""


class NotConnectedError(ChatStreamError, ConnectionError):
    """Raised when sending on a connection that is not connected."""


class MissingPayloadError(ChatStreamError, ValueError):
    """Raised when an HTTP stream connection is opened without a payload."""


class TransportError(ChatStreamError, ConnectionError):
    """Raised when a handshake or stream request fails.

    Only the caller's own ``connect()`` attempt sees this. Failures of
    scheduled reconnects are handled by the retry policy.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class MalformedChunkError(ChatStreamError, ValueError):
    """Raised when a chunk cannot be parsed as structured data."""

    def __init__(self, message: str, chunk: str):
        super().__init__(message)
        self.chunk = chunk


class UnknownProviderError(ChatStreamError, ValueError):
    """Raised when no adapter is registered for a provider name."""


class InvalidTransitionError(ChatStreamError, ValueError):
    """Raised when a health state transition is not allowed."""
