"""llmrelay gateway - relays browser chat requests to upstream LLM APIs.

Components:
- Relay server: method dispatch, origin gate, key injection, response relay
- CORS: pluggable origin predicate and header construction
- Providers: upstream endpoint, auth header and payload shape per API

Usage:
    from llmrelay.gateway import RelayConfig, RelayServer
    import asyncio

    async def main():
        config = RelayConfig(
            openrouter_api_key="sk-or-...",
            allowed_origin_suffixes=(".vercel.app",),
        )
        server = RelayServer(config=config)
        await server.serve()

    asyncio.run(main())
"""

from llmrelay.gateway.cors import OriginAllowList, OriginPredicate, cors_headers
from llmrelay.gateway.providers import ANTHROPIC, OPENROUTER, Provider
from llmrelay.gateway.relay_proxy import RelayConfig, RelayRoute, RelayServer
from llmrelay.gateway.tracing import RequestTracer

__all__ = [
    "ANTHROPIC",
    "OPENROUTER",
    "OriginAllowList",
    "OriginPredicate",
    "Provider",
    "RelayConfig",
    "RelayRoute",
    "RelayServer",
    "RequestTracer",
    "cors_headers",
]
