"""Browser-facing relay server for chat-completion APIs.

Exposes one route per provider variant:

    /api/anthropic           Anthropic Messages API, buffered
    /api/openrouter          OpenRouter Chat Completions, buffered
    /api/openrouter/stream   OpenRouter Chat Completions, SSE passthrough

Each relay request:
1. Answers CORS preflight (OPTIONS) and rejects other non-POST methods
2. Rejects origins that are present but not on the allow-list
3. Attaches the server-held API key for the route's provider
4. Forwards the reshaped body upstream
5. Relays status and body back (or streams SSE bytes unmodified)

The 403 forbidden-origin response is the only one sent without CORS headers.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import aclosing
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import aiohttp
    from aiohttp import web

from llmrelay.gateway.cors import (
    DEFAULT_ALLOWED_ORIGIN,
    DEFAULT_MAX_AGE,
    OriginAllowList,
    OriginPredicate,
    cors_headers,
    is_forbidden,
)
from llmrelay.gateway.errors import (
    FORBIDDEN_ORIGIN,
    INVALID_MESSAGES,
    METHOD_NOT_ALLOWED,
    REQUEST_TOO_LARGE,
    MAX_ERROR_TEXT,
    error_response,
    not_configured,
    wrap_upstream_text,
)
from llmrelay.gateway.providers import ANTHROPIC, OPENROUTER, Provider
from llmrelay.gateway.tracing import RequestTracer

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


@dataclass
class RelayConfig:
    """Configuration for the relay server.

    API keys are injected here rather than read from the environment at
    request time; see ``llmrelay.compose.create_relay`` for env resolution.
    """

    host: str = "127.0.0.1"
    port: int = 3458

    # Provider credentials (empty = not configured, requests get a 500)
    anthropic_api_key: str = ""
    openrouter_api_key: str = ""

    # Upstream base URLs
    anthropic_base_url: str = "https://api.anthropic.com"
    openrouter_base_url: str = "https://openrouter.ai/api"

    # Origin allow-list
    allowed_origins: tuple[str, ...] = (DEFAULT_ALLOWED_ORIGIN,)
    allowed_origin_suffixes: tuple[str, ...] = ()  # e.g. (".vercel.app",)
    cors_max_age: int = DEFAULT_MAX_AGE

    # Client configuration
    connect_timeout: float = 10.0
    read_timeout: float = 300.0

    # Request limits
    max_body_size: int = 10 * 1024 * 1024  # 10MB

    # Optional OpenRouter app attribution
    openrouter_referer: str | None = None
    openrouter_title: str | None = None


@dataclass(frozen=True)
class RelayRoute:
    """One relay endpoint: a path, the provider behind it, and the relay mode."""

    path: str
    provider: Provider
    streaming: bool = False


@dataclass
class RelayServer:
    """Relays browser chat-completion requests to upstream LLM APIs.

    Example:
        >>> config = RelayConfig(anthropic_api_key="sk-ant-...")
        >>> server = RelayServer(config=config)
        >>> await server.serve()

    ``is_allowed`` replaces the allow-list built from ``config`` when given.
    """

    config: RelayConfig
    is_allowed: OriginPredicate | None = None
    _app: Any = None  # aiohttp.web.Application
    _runner: Any = None  # aiohttp.web.AppRunner
    _session: Any = None  # aiohttp.ClientSession
    _shutdown_event: asyncio.Event = field(default_factory=asyncio.Event)
    _tracer: RequestTracer = field(default_factory=RequestTracer)
    _routes: tuple[RelayRoute, ...] = field(init=False)

    def __post_init__(self) -> None:
        if self.is_allowed is None:
            self.is_allowed = OriginAllowList(
                exact=tuple(self.config.allowed_origins),
                suffixes=tuple(self.config.allowed_origin_suffixes),
            )

        openrouter = replace(
            OPENROUTER,
            referer=self.config.openrouter_referer,
            title=self.config.openrouter_title,
        )
        self._routes = (
            RelayRoute("/api/anthropic", ANTHROPIC),
            RelayRoute("/api/openrouter", openrouter),
            RelayRoute("/api/openrouter/stream", openrouter, streaming=True),
        )

    @property
    def routes(self) -> tuple[RelayRoute, ...]:
        return self._routes

    @property
    def bound_port(self) -> int | None:
        """Actual listening port (useful when configured with port 0)."""
        if not self._runner or not self._runner.addresses:
            return None
        return self._runner.addresses[0][1]

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all relay routes."""
        from aiohttp import web

        app = web.Application(client_max_size=self.config.max_body_size)
        for route in self._routes:
            # "*" so that OPTIONS and unsupported methods reach the relay
            app.router.add_route("*", route.path, self._make_handler(route))
        app.router.add_get("/health", self._handle_health)
        return app

    async def start(self) -> None:
        """Open the upstream session and start listening."""
        try:
            import aiohttp
            from aiohttp import web
        except ImportError as err:
            raise ImportError(
                "aiohttp is required for the relay. Install with: pip install llmrelay"
            ) from err

        timeout = aiohttp.ClientTimeout(
            connect=self.config.connect_timeout,
            total=self.config.read_timeout,
        )
        self._session = aiohttp.ClientSession(
            timeout=timeout,
            headers={"content-type": "application/json"},
        )

        self._app = self.build_app()
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await site.start()

        logger.info(
            "Relay listening on http://%s:%d",
            self.config.host,
            self.bound_port or self.config.port,
        )
        for route in self._routes:
            logger.info(
                "  %s -> %s (%s%s)",
                route.path,
                self._upstream_url(route.provider),
                "streaming" if route.streaming else "buffered",
                "" if self._api_key(route.provider) else f", {route.provider.key_name} missing",
            )

    async def serve(self) -> None:
        """Start the relay and block until shutdown."""
        await self.start()
        await self._shutdown_event.wait()

    async def shutdown(self) -> None:
        """Shutdown the server gracefully."""
        logger.info("Shutting down relay...")
        if self._session:
            await self._session.close()
            self._session = None
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
        # Set last so serve() returns only after cleanup has finished
        self._shutdown_event.set()

    # ------------------------------------------------------------------
    # Provider lookups
    # ------------------------------------------------------------------

    def _api_key(self, provider: Provider) -> str:
        if provider.name == ANTHROPIC.name:
            return self.config.anthropic_api_key
        if provider.name == OPENROUTER.name:
            return self.config.openrouter_api_key
        raise ValueError(f"Unknown provider: {provider.name!r}")

    def _upstream_url(self, provider: Provider) -> str:
        if provider.name == ANTHROPIC.name:
            base_url = self.config.anthropic_base_url
        elif provider.name == OPENROUTER.name:
            base_url = self.config.openrouter_base_url
        else:
            raise ValueError(f"Unknown provider: {provider.name!r}")
        return f"{base_url.rstrip('/')}{provider.endpoint}"

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Handle GET /health - health check endpoint."""
        from aiohttp import web

        return web.json_response({"status": "ok"})

    def _make_handler(
        self, route: RelayRoute
    ) -> Callable[[web.Request], Awaitable[web.StreamResponse]]:
        async def handler(request: web.Request) -> web.StreamResponse:
            return await self._handle_relay(request, route)

        return handler

    async def _handle_relay(self, request: web.Request, route: RelayRoute) -> web.StreamResponse:
        """Handle one relay request: dispatch, validate, forward."""
        from aiohttp import web

        assert self.is_allowed is not None
        started = time.monotonic()
        origin = request.headers.get("Origin", "")
        cors = cors_headers(origin, self.is_allowed, self.config.cors_max_age)

        # CORS preflight
        if request.method == "OPTIONS":
            return web.Response(status=204, headers=cors)

        if request.method != "POST":
            return error_response(METHOD_NOT_ALLOWED, 405, cors)

        # No CORS headers on this one
        if is_forbidden(origin, self.is_allowed):
            logger.warning("Rejected %s from forbidden origin %r", route.path, origin)
            return error_response(FORBIDDEN_ORIGIN, 403)

        provider = route.provider
        api_key = self._api_key(provider)
        if not api_key:
            logger.error("%s is not configured; cannot serve %s", provider.key_name, route.path)
            return error_response(not_configured(provider.key_name), 500, cors)

        trace_id = provider.name
        try:
            raw_body = await request.read()
            body = _parse_body(raw_body)
            trace_id = self._tracer.generate_trace_id(body, provider.name)
            self._tracer.log_request(
                trace_id,
                request.method,
                route.path,
                body_size=len(raw_body),
                msg_count=_message_count(body),
            )
            _log_request_shape(trace_id, body)

            if not isinstance(body.get("messages"), list):
                return error_response(INVALID_MESSAGES, 400, cors)

            payload = provider.build_payload(body, stream=route.streaming)
            url = self._upstream_url(provider)
            headers = provider.auth_headers(api_key)
            logger.info(
                "[%s] Forwarding to %s (model=%s, stream=%s)",
                trace_id,
                url,
                payload["model"],
                route.streaming,
            )

            if route.streaming:
                return await self._relay_streaming(
                    request, url, payload, headers, cors, trace_id, started
                )
            return await self._relay_buffered(url, payload, headers, cors, trace_id, started)

        except web.HTTPRequestEntityTooLarge:
            logger.warning(
                "Rejected %s: body exceeds %d bytes", route.path, self.config.max_body_size
            )
            return error_response(REQUEST_TOO_LARGE, 413, cors)

        except Exception as e:
            logger.exception("[%s] Proxy error", trace_id)
            self._tracer.log_response(
                trace_id, 502, time.monotonic() - started, error=str(e)
            )
            return error_response(f"Proxy error: {e}", 502, cors)

    async def _relay_buffered(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        cors: dict[str, str],
        trace_id: str,
        started: float,
    ) -> web.Response:
        """Await the full upstream response and relay it as JSON."""
        from aiohttp import web

        async with self._session.post(url, json=payload, headers=headers) as upstream_response:
            status = upstream_response.status
            raw = await upstream_response.read()

        data = _parse_upstream_json(raw)
        _log_upstream_result(trace_id, status, data)

        response = web.json_response(data, status=status, headers=cors)
        self._tracer.log_response(
            trace_id,
            status,
            time.monotonic() - started,
            response_size=len(response.body or b""),
        )
        return response

    async def _relay_streaming(
        self,
        request: web.Request,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        cors: dict[str, str],
        trace_id: str,
        started: float,
    ) -> web.StreamResponse:
        """Relay upstream SSE bytes to the caller as they arrive.

        Upstream failures are answered as JSON before any stream is opened.
        Once status 200 is committed, errors can only end the stream.
        """
        from aiohttp import web

        async with self._session.post(url, json=payload, headers=headers) as upstream_response:
            status = upstream_response.status
            if not 200 <= status < 300:
                raw = await upstream_response.read()
                logger.error(
                    "[%s] Upstream error %d: %s",
                    trace_id,
                    status,
                    raw[:MAX_ERROR_TEXT].decode("utf-8", errors="replace"),
                )
                self._tracer.log_response(
                    trace_id, status, time.monotonic() - started, error=f"upstream {status}"
                )
                return web.json_response(_parse_upstream_json(raw), status=status, headers=cors)

            response = web.StreamResponse(status=200, headers={**cors, **SSE_HEADERS})
            await response.prepare(request)

            chunk_count, byte_count = 0, 0
            try:
                chunk_count, byte_count = await relay_chunks(
                    iter_upstream_chunks(upstream_response.content, trace_id),
                    response,
                    trace_id,
                )
            except Exception:
                logger.exception("[%s] Error during streaming", trace_id)

        logger.info("[%s] Stream complete, forwarded %d chunks", trace_id, chunk_count)
        try:
            await response.write_eof()
        except ConnectionResetError:
            logger.debug("[%s] Client closed connection before end of stream", trace_id)

        self._tracer.log_response(
            trace_id, 200, time.monotonic() - started, response_size=byte_count
        )
        return response


# ---------------------------------------------------------------------------
# Stream relay
# ---------------------------------------------------------------------------


async def iter_upstream_chunks(
    content: aiohttp.StreamReader,
    trace_id: str,
) -> AsyncGenerator[bytes, None]:
    """Yield upstream body chunks as they arrive, unmodified.

    A read failure ends the sequence instead of raising.
    """
    try:
        async for chunk in content.iter_any():
            yield chunk
    except Exception:
        logger.exception("[%s] Upstream read failed mid-stream", trace_id)


async def relay_chunks(
    chunks: AsyncGenerator[bytes, None],
    response: web.StreamResponse,
    trace_id: str,
) -> tuple[int, int]:
    """Write each chunk to ``response`` in order.

    Stops early if the caller disconnects. Returns (chunk count, byte count).
    """
    chunk_count = 0
    byte_count = 0
    async with aclosing(chunks):
        async for chunk in chunks:
            try:
                await response.write(chunk)
            except ConnectionResetError:
                logger.debug("[%s] Client disconnected during streaming", trace_id)
                break
            chunk_count += 1
            byte_count += len(chunk)
            logger.debug("[%s] Chunk %d: %d bytes", trace_id, chunk_count, len(chunk))
    return chunk_count, byte_count


# ---------------------------------------------------------------------------
# Body helpers
# ---------------------------------------------------------------------------


def _parse_body(raw: bytes) -> dict[str, Any]:
    """Parse an inbound JSON body; anything but a JSON object becomes ``{}``."""
    try:
        body = json.loads(raw) if raw else {}
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _parse_upstream_json(raw: bytes) -> Any:
    """Parse an upstream body, wrapping non-JSON text in an error object."""
    try:
        return json.loads(raw)
    except ValueError:
        return wrap_upstream_text(raw.decode("utf-8", errors="replace"))


def _message_count(body: dict[str, Any]) -> int:
    messages = body.get("messages")
    return len(messages) if isinstance(messages, list) else 0


def _log_request_shape(trace_id: str, body: dict[str, Any]) -> None:
    """Log model, budget and message shape. Never message content."""
    messages = body.get("messages")
    first = messages[0] if isinstance(messages, list) and messages else None
    first_role = first.get("role") if isinstance(first, dict) else None
    first_content = first.get("content") if isinstance(first, dict) else None
    logger.debug(
        "[%s] Request: model=%s, max_tokens=%s, messages=%d, first_role=%s, first_content_len=%s",
        trace_id,
        body.get("model"),
        body.get("max_tokens"),
        _message_count(body),
        first_role,
        len(first_content) if isinstance(first_content, (str, list)) else None,
    )


def _log_upstream_result(trace_id: str, status: int, data: Any) -> None:
    if not isinstance(data, dict):
        logger.info("[%s] Upstream status=%d (non-object body)", trace_id, status)
        return
    choices = data.get("choices", data.get("content"))
    logger.info(
        "[%s] Upstream status=%d, has_choices=%s, choices=%s, error=%s",
        trace_id,
        status,
        choices is not None,
        len(choices) if isinstance(choices, list) else 0,
        data.get("error"),
    )
