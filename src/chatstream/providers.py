"""Upstream LLM provider adapters.

Each adapter is plain data: where to POST, how to authenticate, how to shape
the request body and how to pull text out of one streamed chunk. The proxy
uses the first three; callers use ``transformer`` on the chunks they receive.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from .exceptions import UnknownProviderError
from .transformer import ChunkTransformer, wrap


class ChatMessage(BaseModel):
    """One chat turn."""

    role: str
    content: str


class StreamRequest(BaseModel):
    """Body accepted by the proxy's stream endpoint.

    Example:
        {
            "provider": "openai",
            "messages": [{"role": "user", "content": "hi"}],
            "model": "gpt-4o"
        }
    """

    provider: str
    messages: list[ChatMessage] = Field(default_factory=list)
    model: str | None = None


@dataclass(frozen=True)
class ProviderAdapter:
    """How to talk to one upstream provider."""

    name: str
    url: str
    env_var: str
    default_model: str
    headers: Callable[[str], dict[str, str]]
    build_payload: Callable[[list[dict[str, Any]], str], dict[str, Any]]
    transformer: ChunkTransformer[str]

    def payload_for(self, messages: list[ChatMessage], model: str | None = None) -> dict[str, Any]:
        """Build the upstream body, falling back to the default model."""
        return self.build_payload(
            [message.model_dump() for message in messages],
            model or self.default_model,
        )


def _openai_text(data: Any) -> str:
    choices = data.get("choices") or [{}]
    return (choices[0].get("delta") or {}).get("content") or ""


def _anthropic_text(data: Any) -> str:
    return (data.get("delta") or {}).get("text") or ""


openai = ProviderAdapter(
    name="openai",
    url="https://api.openai.com/v1/chat/completions",
    env_var="OPENAI_API_KEY",
    default_model="gpt-4o",
    headers=lambda api_key: {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    },
    build_payload=lambda messages, model: {
        "model": model,
        "messages": messages,
        "stream": True,
    },
    transformer=wrap(_openai_text),
)

anthropic = ProviderAdapter(
    name="anthropic",
    url="https://api.anthropic.com/v1/messages",
    env_var="ANTHROPIC_API_KEY",
    default_model="claude-sonnet-4-5",
    headers=lambda api_key: {
        "Content-Type": "application/json",
        "x-api-key": api_key,
        "anthropic-version": "2023-06-01",
    },
    build_payload=lambda messages, model: {
        "model": model,
        "messages": messages,
        "max_tokens": 1024,
        "stream": True,
    },
    transformer=wrap(_anthropic_text),
)

PROVIDERS: dict[str, ProviderAdapter] = {
    openai.name: openai,
    anthropic.name: anthropic,
}


def get_provider(name: str) -> ProviderAdapter:
    """Look up a provider adapter by name.

    Raises:
        UnknownProviderError: If no adapter is registered under ``name``
    """
    try:
        return PROVIDERS[name]
    except KeyError:
        known = ", ".join(sorted(PROVIDERS))
        raise UnknownProviderError(f"Unknown provider '{name}' (known: {known})") from None
