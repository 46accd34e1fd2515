"""Tests for upstream provider payloads and auth headers."""

from dataclasses import replace

from llmrelay.gateway.providers import ANTHROPIC, DEFAULT_MAX_TOKENS, OPENROUTER

MESSAGES = [{"role": "user", "content": "hi"}]


class TestAnthropicProvider:
    def test_defaults_substituted(self):
        payload = ANTHROPIC.build_payload({"messages": MESSAGES})

        assert payload == {
            "model": "claude-sonnet-4-20250514",
            "max_tokens": DEFAULT_MAX_TOKENS,
            "messages": MESSAGES,
        }

    def test_falsy_values_fall_back_to_defaults(self):
        payload = ANTHROPIC.build_payload({"model": "", "max_tokens": 0, "messages": MESSAGES})

        assert payload["model"] == "claude-sonnet-4-20250514"
        assert payload["max_tokens"] == 6000

    def test_system_forwarded_when_present(self):
        payload = ANTHROPIC.build_payload({"system": "Be brief.", "messages": MESSAGES})

        assert payload["system"] == "Be brief."

    def test_empty_system_dropped(self):
        payload = ANTHROPIC.build_payload({"system": "", "messages": MESSAGES})

        assert "system" not in payload

    def test_unknown_fields_not_forwarded(self):
        payload = ANTHROPIC.build_payload({"messages": MESSAGES, "temperature": 2, "api_key": "x"})

        assert set(payload) == {"model", "max_tokens", "messages"}

    def test_messages_forwarded_verbatim(self):
        messages = [
            {"role": "user", "content": [{"type": "text", "text": "look"}]},
            {"role": "assistant", "content": "ok"},
        ]

        assert ANTHROPIC.build_payload({"messages": messages})["messages"] is messages

    def test_auth_headers(self):
        assert ANTHROPIC.auth_headers("sk-ant") == {
            "x-api-key": "sk-ant",
            "anthropic-version": "2023-06-01",
        }


class TestOpenRouterProvider:
    def test_caller_values_kept(self):
        payload = OPENROUTER.build_payload(
            {"model": "openai/gpt-4o", "max_tokens": 50, "messages": MESSAGES}
        )

        assert payload == {"model": "openai/gpt-4o", "max_tokens": 50, "messages": MESSAGES}

    def test_system_not_forwarded(self):
        payload = OPENROUTER.build_payload({"system": "Be brief.", "messages": MESSAGES})

        assert "system" not in payload

    def test_stream_flag(self):
        payload = OPENROUTER.build_payload({"messages": MESSAGES}, stream=True)

        assert payload["stream"] is True

    def test_bearer_auth(self):
        assert OPENROUTER.auth_headers("sk-or") == {"Authorization": "Bearer sk-or"}

    def test_attribution_headers_when_configured(self):
        provider = replace(OPENROUTER, referer="https://app.example", title="Chat")

        assert provider.auth_headers("sk-or") == {
            "Authorization": "Bearer sk-or",
            "HTTP-Referer": "https://app.example",
            "X-Title": "Chat",
        }
