"""Connection contract shared by every chatstream transport.

Architecture:
- BaseConnection owns what both transports have in common: the immutable
  state record, the single message handler, the retry scheduler and the
  cancellation handle for whatever is in flight.
- WebSocketConnection adds a persistent duplex socket and ``send``.
- HTTPStreamConnection POSTs one payload and consumes the response body.

Callers pick capabilities by ``kind`` (or ``supports_send``), not by probing
for methods.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Protocol, TypeVar, runtime_checkable

from ..exceptions import TransportError
from .state import (
    ConnectionState,
    HealthState,
    RetryPolicy,
    backoff_delay,
    begin_retry,
    can_retry,
    disarmed,
    faulted,
    retry_scheduled,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MessageHandler = Callable[[str], None]


class ConnectionKind(str, Enum):
    """Transport variants known to the factory."""

    WEBSOCKET = "websocket"
    SSE = "sse"


@runtime_checkable
class DuplexConnection(Protocol):
    """Optional capability: caller-initiated sends over a live link."""

    async def send(self, data: str) -> None:
        """Send one message.

        Raises:
            NotConnectedError: If the connection is not connected
        """
        ...


def _ignore(chunk: str) -> None:
    pass


class BaseConnection(ABC):
    """Base class for connections with common functionality.

    Provides:
    - Health state record and read-only views of it
    - Single-handler message delivery
    - Retry scheduling with capped backoff
    - Cancellation handle management
    """

    kind: ConnectionKind
    supports_send: bool = False

    def __init__(self, url: str, policy: RetryPolicy | None = None):
        self.url = url
        self.policy = policy or RetryPolicy()
        self._state = ConnectionState()
        self._handler: MessageHandler = _ignore
        self._task: asyncio.Task[Any] | None = None
        self._lock = asyncio.Lock()
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def state(self) -> ConnectionState:
        """Last recorded state transition."""
        return self._state

    @property
    def health(self) -> HealthState:
        """Current health of the connection."""
        return self._state.health

    @property
    def retry_count(self) -> int:
        return self._state.retry_count

    @property
    def should_retry(self) -> bool:
        return self._state.should_retry

    @property
    def is_connected(self) -> bool:
        return self.health is HealthState.CONNECTED

    def on_message(self, handler: MessageHandler) -> None:
        """Register the message handler, replacing any previous one."""
        self._handler = handler

    async def wait_closed(self) -> None:
        """Wait until the connection settles.

        Returns once the connection is closed explicitly, its stream ends with
        no retry pending, or its retries are exhausted.
        """
        await self._settled.wait()

    @abstractmethod
    async def connect(self, payload: str | None = None) -> None:
        """Open the connection.

        Raises:
            TransportError: If the caller's own attempt fails
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection and disable retries. Never raises."""
        ...

    @abstractmethod
    async def _discard(self, handle: Any) -> None:
        """Release a transport handle that is no longer wanted."""
        ...

    # Delivery

    def _deliver(self, chunk: str) -> None:
        try:
            self._handler(chunk)
        except Exception:
            logger.exception(f"Message handler failed for {self.url}")

    # Task management

    async def _run_handshake(self, opening: Awaitable[T]) -> T | None:
        """Run a handshake as the cancellable in-flight task.

        Returns the opened handle, or None when close() interrupted the
        handshake. A failed handshake marks the connection as errored and
        raises TransportError.
        """
        task = asyncio.ensure_future(opening)
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            # The caller gave up on connect(); tear the attempt down
            task.cancel()
            if self._task is task:
                self._task = None
                self._state = disarmed(faulted(self._state))
                self._settled.set()
                if task.done() and not task.cancelled() and task.exception() is None:
                    await self._discard(task.result())
            raise

        if self._task is not task:
            # close() ran while the handshake was in flight
            if not task.cancelled() and task.exception() is None:
                await self._discard(task.result())
            return None

        self._task = None
        if task.cancelled():
            self._settled.set()
            return None
        error = task.exception()
        if error is not None:
            self._state = faulted(self._state)
            self._settled.set()
            if isinstance(error, TransportError):
                raise error
            raise TransportError(f"Failed to connect to {self.url}: {error}") from error
        return task.result()

    async def _cancel_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    # Retry scheduling

    def _retry_or_settle(self, attempt: Callable[[], Awaitable[None]]) -> None:
        """Schedule ``attempt`` after the backoff delay, or settle for good."""
        if not self._state.should_retry:
            self._settle()
            return

        if not can_retry(self.policy, self._state):
            logger.warning(
                f"{self.kind.value} connection to {self.url} closed. "
                f"Max reconnect limit reached ({self.policy.max_retries})."
            )
            self._settle()
            return

        delay = backoff_delay(self.policy, self._state.retry_count)
        self._state = retry_scheduled(self._state)
        logger.info(
            f"Reconnecting {self.kind.value} {self.url} in {delay:.1f}s "
            f"(attempt {self._state.retry_count})"
        )
        self._task = asyncio.create_task(self._retry_after(delay, attempt))

    async def _retry_after(self, delay: float, attempt: Callable[[], Awaitable[None]]) -> None:
        await asyncio.sleep(delay)
        self._state = begin_retry(self._state)
        await attempt()

    def _settle(self) -> None:
        self._task = None
        self._settled.set()

    async def __aenter__(self) -> BaseConnection:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
