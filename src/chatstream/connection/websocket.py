"""WebSocket transport for full-duplex communication.

Wire format:
- Outbound: text frames sent verbatim via ``send``
- Inbound: every frame forwarded verbatim to the message handler

The socket primitive is injected as an ``opener`` so tests can hand in
deterministic fakes. The default opener uses the ``websockets`` package.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any, Protocol

import websockets
from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ..exceptions import NotConnectedError
from .base import BaseConnection, ConnectionKind
from .state import (
    HealthState,
    RetryPolicy,
    begin_connect,
    closed,
    disarmed,
    ended,
    faulted,
    opened,
)

logger = logging.getLogger(__name__)


class SocketLike(Protocol):
    """The parts of a websockets client connection this transport uses."""

    async def send(self, message: str) -> None: ...

    async def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[str]: ...


SocketOpener = Callable[[str], Awaitable[SocketLike]]


async def open_websocket(url: str) -> SocketLike:
    """Default opener: a websockets client connection with keepalive pings."""
    return await websockets.connect(url, ping_interval=30, ping_timeout=10)


class WebSocketConnection(BaseConnection):
    """Persistent duplex connection with bounded auto-reconnect.

    Usage:
        conn = WebSocketConnection("ws://localhost:39300/stream")
        conn.on_message(print)
        await conn.connect()
        await conn.send("hello")
        ...
        await conn.close()
    """

    kind = ConnectionKind.WEBSOCKET
    supports_send = True

    def __init__(
        self,
        url: str,
        policy: RetryPolicy | None = None,
        opener: SocketOpener | None = None,
    ):
        super().__init__(url, policy)
        self._opener = opener or open_websocket
        self._ws: SocketLike | None = None

    @property
    def health(self) -> HealthState:
        """Current health, checked against the live socket when possible."""
        recorded = self._state.health
        ws = self._ws
        if recorded is HealthState.CONNECTED and ws is not None:
            live = getattr(ws, "state", None)
            if isinstance(live, State) and live is not State.OPEN:
                return HealthState.CLOSED
        return recorded

    async def connect(self, payload: str | None = None) -> None:
        """Open the socket. No-op if already connected.

        Args:
            payload: Optional first message to send once the socket is open
        """
        async with self._lock:
            if self.health is HealthState.CONNECTED:
                return

            await self._cancel_task()
            await self._drop_socket()
            self._state = begin_connect(self._state, self.policy)
            self._settled.clear()

            ws = await self._run_handshake(self._opener(self.url))
            if ws is None:
                return
            self._attach(ws)

        if payload is not None:
            await self.send(payload)

    async def send(self, data: str) -> None:
        """Send a text message.

        Raises:
            NotConnectedError: If the socket is not connected
        """
        ws = self._ws
        if ws is None or self.health is not HealthState.CONNECTED:
            raise NotConnectedError(f"WebSocket not connected (state: {self.health.value})")
        await ws.send(data)

    async def close(self) -> None:
        """Disable retries, stop the reader and close the socket."""
        self._state = disarmed(self._state)
        await self._cancel_task()
        await self._drop_socket()
        if self._state.health is not HealthState.CLOSED:
            logger.info("WebSocket state -> CLOSED")
        self._state = closed(self._state)
        self._settled.set()

    def _attach(self, ws: SocketLike) -> None:
        self._ws = ws
        self._state = opened(self._state)
        logger.info("WebSocket state -> OPEN")
        self._task = asyncio.create_task(self._read_loop(ws))

    async def _read_loop(self, ws: SocketLike) -> None:
        """Forward inbound frames until the socket goes away."""
        error: BaseException | None = None
        try:
            async for message in ws:
                if ws is not self._ws:
                    return
                self._deliver(message)
        except (ConnectionClosed, OSError) as e:
            error = e

        if ws is not self._ws:
            # Closed by the caller, late events are ignored
            return

        self._ws = None
        if error is not None:
            logger.warning(f"WebSocket error: {error}")
            self._state = faulted(self._state)
        else:
            logger.info("WebSocket state -> CLOSED")
            self._state = ended(self._state)
        self._retry_or_settle(self._reconnect)

    async def _reconnect(self) -> None:
        try:
            ws = await self._opener(self.url)
        except Exception as e:
            logger.warning(f"WebSocket reconnect to {self.url} failed: {e}")
            self._state = faulted(self._state)
            self._retry_or_settle(self._reconnect)
            return
        self._attach(ws)

    async def _drop_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await self._discard(ws)

    async def _discard(self, handle: Any) -> None:
        try:
            await handle.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing WebSocket: {e}")
