"""Chunk transformers.

Turn raw transport chunks into domain values. Transformers are stateless and
know nothing about connection state; callers apply them to whatever their
message handler receives.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any, TypeVar

from .exceptions import MalformedChunkError

T = TypeVar("T")

ChunkTransformer = Callable[[str], T]

DONE_SENTINEL = "[DONE]"


def wrap(extractor: Callable[[Any], T]) -> ChunkTransformer[T]:
    """Build a transformer that parses a JSON chunk and applies ``extractor``.

    Raises:
        MalformedChunkError: From the returned function, if the chunk is not JSON
    """

    def transform(raw: str) -> T:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedChunkError(f"Chunk is not valid JSON: {e}", chunk=raw) from e
        return extractor(data)

    return transform


class SSEParser:
    """Incremental ``text/event-stream`` framing.

    Chunks from an HTTP stream do not respect line boundaries, so a trailing
    partial line is kept until the next chunk completes it. An event is
    dispatched at the blank line that ends it, with its ``data`` lines joined
    by newlines. Other fields are ignored.

    Usage:
        parser = SSEParser()
        for data in parser.feed(chunk):
            text = transformer(data)
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._data: list[str] = []

    def feed(self, chunk: str) -> list[str]:
        """Add a chunk and return the data of every event it completed."""
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split("\n")

        payloads: list[str] = []
        for line in lines:
            line = line.rstrip("\r")
            if not line:
                payloads.extend(self._dispatch())
            elif line.startswith("data:"):
                self._data.append(line[5:].removeprefix(" "))
            # comments and event/id/retry fields fall through
        return payloads

    def flush(self) -> list[str]:
        """Dispatch an event left open when the stream ended."""
        rest, self._buffer = self._buffer, ""
        payloads = self.feed(rest + "\n") if rest else []
        return payloads + self._dispatch()

    def _dispatch(self) -> list[str]:
        if not self._data:
            return []
        data = "\n".join(self._data)
        self._data = []
        if data == DONE_SENTINEL:
            return []
        return [data]
