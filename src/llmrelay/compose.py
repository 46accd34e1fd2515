"""Composition helpers: build a configured relay from args, env and YAML.

Configuration priority:
1. Function arguments (highest)
2. Environment variables
3. Config file (``config_file`` argument or ``LLMRELAY_CONFIG`` env var)
4. Defaults from ``RelayConfig``

Example config file::

    host: 0.0.0.0
    port: 8080
    allowed_origins:
      - https://tals-dotcom.github.io
    allowed_origin_suffixes:
      - .vercel.app
    openrouter_title: My Chat App
    read_timeout: 120
    max_body_size: 1048576
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

if TYPE_CHECKING:
    from llmrelay.gateway.relay_proxy import RelayConfig, RelayServer

CONFIG_ENV_KEY = "LLMRELAY_CONFIG"


def _load_config_file(config_file: str | None) -> dict[str, Any]:
    """Load the YAML config file, or return {} if none is configured."""
    config_path = config_file or os.environ.get(CONFIG_ENV_KEY)
    if not config_path:
        return {}
    try:
        content = Path(config_path).read_text()
    except FileNotFoundError as err:
        raise ValueError(f"Config file not found: {config_path}") from err
    file_config = yaml.safe_load(content) or {}
    if not isinstance(file_config, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")
    return file_config


def _make_resolver(
    file_config: dict[str, Any],
) -> Callable[[Any, str, str, Any], Any]:
    """Return a get_value(arg, env_key, file_key, default) function."""

    def get_value(arg: Any, env_key: str, file_key: str, default: Any) -> Any:
        if arg is not None:
            return arg
        env_val = os.environ.get(env_key)
        if env_val:
            return env_val
        file_val = file_config.get(file_key)
        if file_val is not None and file_val != "":
            return file_val
        return default

    return get_value


def _as_tuple(value: str | Iterable[str]) -> tuple[str, ...]:
    """Normalize a comma-separated string or list into a tuple of strings."""
    items = value.split(",") if isinstance(value, str) else value
    return tuple(str(item).strip() for item in items if str(item).strip())


def _as_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Invalid port: {value!r}") from err
    if not 0 <= port <= 65535:
        raise ValueError(f"Port out of range: {port}")
    return port


def _as_positive(value: Any, name: str, kind: Callable[[Any], Any]) -> Any:
    """Convert ``value`` with ``kind`` (int or float) and require it to be > 0."""
    try:
        number = kind(value)
    except (TypeError, ValueError) as err:
        raise ValueError(f"Invalid {name}: {value!r}") from err
    if number <= 0:
        raise ValueError(f"{name} must be positive: {number}")
    return number


def build_relay_config(
    host: str | None = None,
    port: int | None = None,
    anthropic_api_key: str | None = None,
    openrouter_api_key: str | None = None,
    allowed_origins: Iterable[str] | None = None,
    allowed_origin_suffixes: Iterable[str] | None = None,
    config_file: str | None = None,
) -> RelayConfig:
    """Resolve a ``RelayConfig`` from arguments, environment and config file.

    Missing API keys are not an error here: the affected routes answer 500
    until a key is configured.

    Raises:
        ValueError: If the config file is missing/malformed or a value is invalid.
    """
    from llmrelay.gateway.relay_proxy import RelayConfig

    defaults = RelayConfig()
    get_value = _make_resolver(_load_config_file(config_file))

    return RelayConfig(
        host=str(get_value(host, "RELAY_HOST", "host", defaults.host)),
        port=_as_port(get_value(port, "RELAY_PORT", "port", defaults.port)),
        anthropic_api_key=str(
            get_value(anthropic_api_key, "ANTHROPIC_API_KEY", "anthropic_api_key", "")
        ).strip(),
        openrouter_api_key=str(
            get_value(openrouter_api_key, "OPENROUTER_API_KEY", "openrouter_api_key", "")
        ).strip(),
        anthropic_base_url=str(
            get_value(None, "ANTHROPIC_BASE_URL", "anthropic_base_url", defaults.anthropic_base_url)
        ),
        openrouter_base_url=str(
            get_value(
                None, "OPENROUTER_BASE_URL", "openrouter_base_url", defaults.openrouter_base_url
            )
        ),
        allowed_origins=_as_tuple(
            get_value(
                allowed_origins or None,
                "RELAY_ALLOWED_ORIGINS",
                "allowed_origins",
                defaults.allowed_origins,
            )
        ),
        allowed_origin_suffixes=_as_tuple(
            get_value(
                allowed_origin_suffixes or None,
                "RELAY_ALLOWED_ORIGIN_SUFFIXES",
                "allowed_origin_suffixes",
                defaults.allowed_origin_suffixes,
            )
        ),
        cors_max_age=_as_positive(
            get_value(None, "RELAY_CORS_MAX_AGE", "cors_max_age", defaults.cors_max_age),
            "cors_max_age",
            int,
        ),
        connect_timeout=_as_positive(
            get_value(None, "RELAY_CONNECT_TIMEOUT", "connect_timeout", defaults.connect_timeout),
            "connect_timeout",
            float,
        ),
        read_timeout=_as_positive(
            get_value(None, "RELAY_READ_TIMEOUT", "read_timeout", defaults.read_timeout),
            "read_timeout",
            float,
        ),
        max_body_size=_as_positive(
            get_value(None, "RELAY_MAX_BODY_SIZE", "max_body_size", defaults.max_body_size),
            "max_body_size",
            int,
        ),
        openrouter_referer=get_value(None, "OPENROUTER_REFERER", "openrouter_referer", None),
        openrouter_title=get_value(None, "OPENROUTER_TITLE", "openrouter_title", None),
    )


def create_relay_server(**kwargs: Any) -> RelayServer:
    """Build a ``RelayServer`` from resolved configuration.

    Accepts the same keyword arguments as ``build_relay_config``.
    """
    from llmrelay.gateway.relay_proxy import RelayServer

    return RelayServer(config=build_relay_config(**kwargs))


async def create_relay(**kwargs: Any) -> None:
    """Create and run a relay server.

    This is a convenience function that blocks until stopped.

    Example:
        >>> # export ANTHROPIC_API_KEY=sk-ant-...
        >>> await create_relay(port=8080)
    """
    config = await asyncio.to_thread(build_relay_config, **kwargs)
    from llmrelay.gateway.relay_proxy import RelayServer

    server = RelayServer(config=config)
    await server.serve()
