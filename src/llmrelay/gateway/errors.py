"""Shared error responses for the relay.

Every locally generated failure uses the same JSON shape: ``{"error": str}``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from aiohttp import web

# Error messages
METHOD_NOT_ALLOWED = "Method not allowed"
FORBIDDEN_ORIGIN = "Forbidden origin"
INVALID_MESSAGES = "Missing or invalid 'messages' field"
REQUEST_TOO_LARGE = "Request body too large"

# Upstream error text is truncated to this many characters when it is not JSON
MAX_ERROR_TEXT = 500


def error_response(
    message: str,
    status: int,
    headers: dict[str, str] | None = None,
) -> web.Response:
    """Create a JSON error response."""
    from aiohttp import web

    return web.json_response({"error": message}, status=status, headers=headers)


def not_configured(key_name: str) -> str:
    return f"{key_name} not configured"


def wrap_upstream_text(text: str) -> dict[str, str]:
    """Wrap a non-JSON upstream body as a synthetic error object."""
    return {"error": text[:MAX_ERROR_TEXT]}
