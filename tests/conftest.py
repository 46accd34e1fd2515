"""Pytest configuration and fixtures."""

import pytest

# Environment variables read by the composition layer and logging setup
RELAY_ENV_VARS = (
    "LLMRELAY_CONFIG",
    "LLMRELAY_LOG_LEVEL",
    "LLMRELAY_LOG_FORMAT",
    "LLMRELAY_LOG_FILE",
    "RELAY_HOST",
    "RELAY_PORT",
    "RELAY_ALLOWED_ORIGINS",
    "RELAY_ALLOWED_ORIGIN_SUFFIXES",
    "RELAY_CORS_MAX_AGE",
    "RELAY_CONNECT_TIMEOUT",
    "RELAY_READ_TIMEOUT",
    "RELAY_MAX_BODY_SIZE",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_BASE_URL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "OPENROUTER_REFERER",
    "OPENROUTER_TITLE",
)


@pytest.fixture(autouse=True)
def clean_relay_env(monkeypatch):
    """Keep the developer's real keys and relay settings out of tests."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def relay_yaml(tmp_path):
    """Write a relay YAML config and return its path."""

    def _write(content: str) -> str:
        path = tmp_path / "relay.yaml"
        path.write_text(content)
        return str(path)

    return _write


@pytest.fixture
def restore_root_logger(monkeypatch):
    """Snapshot and restore root logger state around a test."""
    import logging

    import llmrelay.core.logging_config as logging_config

    monkeypatch.setattr(logging_config, "_configured", False)
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    access_level = logging.getLogger("aiohttp.access").level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("aiohttp.access").setLevel(access_level)
