"""Unit tests for provider adapters and settings."""

from __future__ import annotations

import json

import pytest

from chatstream.config import Settings
from chatstream.exceptions import MalformedChunkError, UnknownProviderError
from chatstream.providers import (
    PROVIDERS,
    ChatMessage,
    StreamRequest,
    anthropic,
    get_provider,
    openai,
)

MESSAGES = [ChatMessage(role="user", content="hi")]


class TestOpenAI:
    """Tests for the OpenAI adapter."""

    def test_headers(self) -> None:
        headers = openai.headers("sk-test")
        assert headers["Authorization"] == "Bearer sk-test"
        assert headers["Content-Type"] == "application/json"

    def test_payload_default_model(self) -> None:
        payload = openai.payload_for(MESSAGES)
        assert payload == {
            "model": "gpt-4o",
            "messages": [{"role": "user", "content": "hi"}],
            "stream": True,
        }

    def test_payload_explicit_model(self) -> None:
        assert openai.payload_for(MESSAGES, "gpt-4o-mini")["model"] == "gpt-4o-mini"

    def test_transformer_extracts_delta(self) -> None:
        chunk = json.dumps({"choices": [{"delta": {"content": "Hel"}}]})
        assert openai.transformer(chunk) == "Hel"

    @pytest.mark.parametrize(
        "chunk",
        [
            {"choices": [{"delta": {}}]},
            {"choices": [{"delta": {"content": None}}]},
            {"choices": []},
            {},
        ],
    )
    def test_transformer_defaults_to_empty(self, chunk) -> None:
        assert openai.transformer(json.dumps(chunk)) == ""

    def test_transformer_malformed(self) -> None:
        with pytest.raises(MalformedChunkError):
            openai.transformer("{")


class TestAnthropic:
    """Tests for the Anthropic adapter."""

    def test_headers(self) -> None:
        headers = anthropic.headers("key")
        assert headers["x-api-key"] == "key"
        assert headers["anthropic-version"] == "2023-06-01"

    def test_payload(self) -> None:
        payload = anthropic.payload_for(MESSAGES)
        assert payload["model"] == "claude-sonnet-4-5"
        assert payload["max_tokens"] == 1024
        assert payload["stream"] is True

    def test_transformer(self) -> None:
        chunk = json.dumps({"type": "content_block_delta", "delta": {"text": "lo"}})
        assert anthropic.transformer(chunk) == "lo"

    def test_transformer_non_delta_event(self) -> None:
        assert anthropic.transformer(json.dumps({"type": "message_start"})) == ""


class TestRegistry:
    """Tests for provider lookup and request models."""

    def test_registered_providers(self) -> None:
        assert set(PROVIDERS) == {"openai", "anthropic"}

    def test_get_provider(self) -> None:
        assert get_provider("anthropic") is anthropic

    def test_unknown_provider(self) -> None:
        with pytest.raises(UnknownProviderError, match="openai"):
            get_provider("mystery")

    def test_stream_request_parses(self) -> None:
        request = StreamRequest.model_validate(
            {"provider": "openai", "messages": [{"role": "user", "content": "x"}]}
        )
        assert request.model is None
        assert request.messages[0].content == "x"


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch) -> None:
        for name in ("HOST", "PORT", "UPSTREAM_TIMEOUT", "LOG_LEVEL"):
            monkeypatch.delenv(f"CHATSTREAM_{name}", raising=False)

        settings = Settings.from_env()

        assert settings.host == "127.0.0.1"
        assert settings.port == 4096
        assert settings.log_level == "WARNING"

    def test_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("CHATSTREAM_PORT", "8080")
        monkeypatch.setenv("CHATSTREAM_UPSTREAM_TIMEOUT", "5")
        monkeypatch.setenv("CHATSTREAM_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.port == 8080
        assert settings.upstream_timeout == 5.0
        assert settings.log_level == "DEBUG"

    def test_secret_for(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-live")
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        settings = Settings()

        assert settings.secret_for(openai) == "sk-live"
        assert settings.secret_for(anthropic) is None

    def test_empty_secret_is_missing(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "")
        assert Settings().secret_for(openai) is None
