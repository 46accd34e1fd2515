"""llmrelay - CORS-aware relay for browser chat-completion clients.

Holds provider API keys server-side, enforces an origin allow-list and
relays chat-completion requests to Anthropic or OpenRouter, including
server-sent-event streams.

Layers:
    core/       Process-level setup (logging)
    gateway/    Relay server, CORS gate, providers, tracing
    frontends/  Command-line interface

Quick Start:
    >>> from llmrelay.gateway import RelayConfig, RelayServer
    >>> server = RelayServer(config=RelayConfig(anthropic_api_key="sk-ant-..."))
    >>> await server.serve()
"""

from llmrelay.__version__ import __version__

__all__ = [
    "__version__",
]
