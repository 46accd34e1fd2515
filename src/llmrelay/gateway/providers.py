"""Upstream provider definitions.

Each provider knows three things the relay cannot guess:

- where its chat endpoint lives (relative to a base URL),
- how the API key is attached (always a header, never the JSON body),
- how the inbound body is reshaped (defaults, provider-only fields).

Relay routes pair a provider with a mode (buffered or streaming); see
``RelayRoute`` in ``llmrelay.gateway.relay_proxy``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_MAX_TOKENS = 6000

ANTHROPIC_VERSION = "2023-06-01"


@dataclass(frozen=True)
class Provider:
    """Base provider: OpenAI-style chat completions with a bearer key.

    Attributes:
        name: Short name used in logs and trace IDs.
        key_name: Configuration name of the API key (also its env var).
        endpoint: Path appended to the configured base URL.
        default_model: Model used when the caller sends none.
    """

    name: str
    key_name: str
    endpoint: str
    default_model: str

    def build_payload(self, body: dict[str, Any], *, stream: bool = False) -> dict[str, Any]:
        """Reshape an inbound body into the upstream JSON payload."""
        payload: dict[str, Any] = {
            "model": body.get("model") or self.default_model,
            "max_tokens": body.get("max_tokens") or DEFAULT_MAX_TOKENS,
            "messages": body["messages"],
        }
        if stream:
            payload["stream"] = True
        return payload

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}


@dataclass(frozen=True)
class AnthropicProvider(Provider):
    """Anthropic Messages API (``x-api-key`` header, optional ``system``)."""

    version: str = ANTHROPIC_VERSION

    def build_payload(self, body: dict[str, Any], *, stream: bool = False) -> dict[str, Any]:
        payload = super().build_payload(body, stream=stream)
        if body.get("system"):
            payload["system"] = body["system"]
        return payload

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {"x-api-key": api_key, "anthropic-version": self.version}


@dataclass(frozen=True)
class OpenRouterProvider(Provider):
    """OpenRouter Chat Completions API.

    OpenRouter accepts optional app attribution headers; they are sent only
    when configured.
    """

    referer: str | None = None
    title: str | None = None

    def auth_headers(self, api_key: str) -> dict[str, str]:
        headers = super().auth_headers(api_key)
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.title:
            headers["X-Title"] = self.title
        return headers


ANTHROPIC = AnthropicProvider(
    name="anthropic",
    key_name="ANTHROPIC_API_KEY",
    endpoint="/v1/messages",
    default_model="claude-sonnet-4-20250514",
)

OPENROUTER = OpenRouterProvider(
    name="openrouter",
    key_name="OPENROUTER_API_KEY",
    endpoint="/v1/chat/completions",
    default_model="anthropic/claude-sonnet-4",
)
