"""HTTP streaming transport (POST + streamed response body).

The caller supplies exactly one request payload at connect time. The
connection then reads the response body chunk by chunk and forwards each
decoded chunk to the message handler. There is no ``send``: after the
handshake the link is receive-only.

Works against any endpoint that streams its body, including
``text/event-stream`` responses from the chatstream proxy.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from ..exceptions import MissingPayloadError, TransportError
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

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "text/event-stream",
}


class HTTPStreamConnection(BaseConnection):
    """Push-stream connection over a single streamed HTTP response.

    Handles:
    - One POST carrying the payload, bound to a cancellable task
    - Incremental decoding of the response body
    - Optional restart of the same request after the body ends

    Usage:
        conn = HTTPStreamConnection("http://localhost:4096/api/stream")
        conn.on_message(print)
        await conn.connect('{"provider": "openai", "messages": [...]}')
        await conn.wait_closed()
    """

    kind = ConnectionKind.SSE
    supports_send = False

    def __init__(
        self,
        url: str,
        policy: RetryPolicy | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(url, policy)
        self.timeout = timeout
        self.headers = {**DEFAULT_HEADERS, **(headers or {})}
        self._client = client
        self._owns_client = client is None
        self._response: httpx.Response | None = None
        self._payload: str | None = None

    async def connect(self, payload: str | None = None) -> None:
        """POST the payload and start streaming the response body.

        Returns once the response headers are in; chunks are delivered to the
        handler in the background.

        Raises:
            MissingPayloadError: If no payload is given
            TransportError: If the request fails or is not successful
        """
        if not payload:
            raise MissingPayloadError("HTTP stream connections need a request payload")

        async with self._lock:
            await self._cancel_task()
            await self._drop_response()
            self._payload = payload
            self._state = begin_connect(self._state, self.policy)
            self._settled.clear()

            response = await self._run_handshake(self._open(payload))
            if response is None:
                return
            self._attach(response)

    async def close(self) -> None:
        """Disable retries, cancel the in-flight request and release the client."""
        self._state = disarmed(self._state)
        await self._cancel_task()
        await self._drop_response()
        if self._owns_client and self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
        if self._state.health is not HealthState.CLOSED:
            logger.info("HTTP stream state -> CLOSED")
        self._state = closed(self._state)
        self._settled.set()

    def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, read=None),  # No read timeout for streams
            )
        return self._client

    async def _open(self, payload: str) -> httpx.Response:
        """Send the request and validate the response head."""
        client = self._ensure_client()
        request = client.build_request("POST", self.url, content=payload, headers=self.headers)
        try:
            response = await client.send(request, stream=True)
        except httpx.RequestError as e:
            raise TransportError(f"Stream request to {self.url} failed: {e}") from e

        if not response.is_success:
            await response.aclose()
            raise TransportError(
                f"Stream request to {self.url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if response.status_code == httpx.codes.NO_CONTENT:
            await response.aclose()
            raise TransportError(
                f"Stream request to {self.url} returned no body",
                status_code=response.status_code,
            )
        return response

    def _attach(self, response: httpx.Response) -> None:
        self._response = response
        # The counter keeps growing across restarts so the delay backs off
        self._state = opened(self._state, reset_retries=False)
        logger.info(f"HTTP stream state -> OPEN ({response.status_code})")
        self._task = asyncio.create_task(self._read_loop(response))

    async def _read_loop(self, response: httpx.Response) -> None:
        """Forward decoded body chunks until the body ends."""
        error: Exception | None = None
        try:
            async for text in response.aiter_text():
                if response is not self._response:
                    return
                self._deliver(text)
        except httpx.HTTPError as e:
            error = e
        finally:
            await response.aclose()

        if response is not self._response:
            return

        self._response = None
        if error is not None:
            logger.warning(f"HTTP stream error: {error}")
            self._state = faulted(self._state)
        else:
            logger.info("HTTP stream state -> CLOSED")
            self._state = ended(self._state)
        self._retry_or_settle(self._restart)

    async def _restart(self) -> None:
        """Issue the original request again."""
        assert self._payload is not None
        try:
            response = await self._open(self._payload)
        except Exception as e:
            logger.warning(f"HTTP stream restart failed: {e}")
            self._state = faulted(self._state)
            self._retry_or_settle(self._restart)
            return
        self._attach(response)

    async def _drop_response(self) -> None:
        response, self._response = self._response, None
        if response is not None:
            await self._discard(response)

    async def _discard(self, handle: Any) -> None:
        await handle.aclose()
