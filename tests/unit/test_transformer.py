"""Unit tests for chunk transformers and SSE framing."""

from __future__ import annotations

import pytest

from chatstream.exceptions import MalformedChunkError
from chatstream.transformer import SSEParser, wrap


class TestWrap:
    """Tests for wrap()."""

    def test_applies_extractor_to_parsed_chunk(self) -> None:
        transform = wrap(lambda data: data["text"].upper())
        assert transform('{"text": "hi"}') == "HI"

    def test_is_stateless(self) -> None:
        transform = wrap(lambda data: data["n"])
        assert [transform('{"n": 1}'), transform('{"n": 2}'), transform('{"n": 1}')] == [1, 2, 1]

    def test_malformed_chunk(self) -> None:
        transform = wrap(lambda data: data)

        with pytest.raises(MalformedChunkError) as exc_info:
            transform("data: {not json")

        assert exc_info.value.chunk == "data: {not json"
        assert isinstance(exc_info.value, ValueError)

    def test_extractor_errors_propagate(self) -> None:
        transform = wrap(lambda data: data["missing"])
        with pytest.raises(KeyError):
            transform("{}")


class TestSSEParser:
    """Tests for SSEParser."""

    def test_single_event(self) -> None:
        parser = SSEParser()
        assert parser.feed('data: {"a": 1}\n\n') == ['{"a": 1}']

    def test_event_split_across_chunks(self) -> None:
        parser = SSEParser()

        assert parser.feed('data: {"te') == []
        assert parser.feed('xt": "x"}\n') == []
        assert parser.feed("\n") == ['{"text": "x"}']

    def test_multiple_events_in_one_chunk(self) -> None:
        parser = SSEParser()
        chunk = "data: 1\n\ndata: 2\n\ndata: 3\n\n"
        assert parser.feed(chunk) == ["1", "2", "3"]

    def test_multiline_data_joined(self) -> None:
        parser = SSEParser()
        chunk = 'data: {"text":\ndata: "x"}\n\n'
        assert parser.feed(chunk) == ['{"text":\n"x"}']

    def test_ignores_other_fields(self) -> None:
        parser = SSEParser()
        chunk = ": keepalive\nevent: content_block_delta\nid: 7\ndata: x\n\n"
        assert parser.feed(chunk) == ["x"]

    def test_event_without_data_is_skipped(self) -> None:
        parser = SSEParser()
        assert parser.feed("event: ping\n\n: comment\n\n") == []

    def test_crlf_line_endings(self) -> None:
        parser = SSEParser()
        assert parser.feed("data: x\r\n\r\n") == ["x"]

    def test_done_sentinel_dropped(self) -> None:
        parser = SSEParser()
        assert parser.feed("data: a\n\ndata: [DONE]\n\n") == ["a"]

    def test_data_without_space(self) -> None:
        parser = SSEParser()
        assert parser.feed("data:x\n\n") == ["x"]

    def test_flush_dispatches_open_event(self) -> None:
        parser = SSEParser()
        assert parser.feed("data: a\ndata: tail") == []
        assert parser.flush() == ["a\ntail"]
        assert parser.flush() == []
