"""Pytest configuration and shared fixtures.

The transports take their I/O primitives through the constructor, so the
fakes here stand in for a websockets client connection and its opener.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import pytest
from websockets.protocol import State

_CLOSED = object()


class FakeSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, messages: list[str] | None = None):
        self.state = State.OPEN
        self.sent: list[str] = []
        self.close_calls = 0
        self._inbox: asyncio.Queue[Any] = asyncio.Queue()
        for message in messages or []:
            self._inbox.put_nowait(message)

    def push(self, message: str) -> None:
        """Simulate a frame from the server."""
        self._inbox.put_nowait(message)

    def drop(self, error: BaseException | None = None) -> None:
        """Simulate the server going away, cleanly or with an error."""
        self._inbox.put_nowait(error if error is not None else _CLOSED)

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.close_calls += 1
        self.state = State.CLOSED
        self._inbox.put_nowait(_CLOSED)

    def __aiter__(self) -> FakeSocket:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _CLOSED:
            self.state = State.CLOSED
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            self.state = State.CLOSED
            raise item
        return item


class FakeOpener:
    """Hands out scripted outcomes, one per connection attempt."""

    def __init__(self, outcomes: list[FakeSocket | BaseException]):
        self._outcomes = list(outcomes)
        self.urls: list[str] = []

    @property
    def calls(self) -> int:
        return len(self.urls)

    async def __call__(self, url: str) -> FakeSocket:
        self.urls.append(url)
        if not self._outcomes:
            raise ConnectionRefusedError("no more scripted sockets")
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def make_socket() -> Callable[..., FakeSocket]:
    return FakeSocket


@pytest.fixture
def make_opener() -> Callable[[list[FakeSocket | BaseException]], FakeOpener]:
    return FakeOpener


@pytest.fixture
def eventually() -> Callable[..., Awaitable[None]]:
    """Poll a condition while letting background tasks run."""

    async def wait(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.001)

    return wait
