"""Origin allow-list and CORS header construction for the relay.

The relay never decides on its own which browser origins may call it. It
is handed an ``OriginPredicate`` (any ``(origin) -> bool`` callable) and
uses it for two things:

1. Rejecting requests whose ``Origin`` header is present but not allowed.
2. Filling ``Access-Control-Allow-Origin`` on every other response.

``OriginAllowList`` is the default predicate: a small table of exact
origins plus suffix rules for preview-hosting domains (e.g. every
``https://<branch>.vercel.app`` deployment).

Example:
    >>> allow = OriginAllowList(
    ...     exact=("https://tals-dotcom.github.io",),
    ...     suffixes=(".vercel.app",),
    ... )
    >>> allow("https://my-branch.vercel.app")
    True
    >>> allow("http://my-branch.vercel.app")
    False
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

OriginPredicate = Callable[[str], bool]

DEFAULT_ALLOWED_ORIGIN = "https://tals-dotcom.github.io"

ALLOW_METHODS = "POST, OPTIONS"
ALLOW_HEADERS = "Content-Type"
DEFAULT_MAX_AGE = 86400


@dataclass(frozen=True)
class OriginAllowList:
    """Exact-match and suffix-pattern origin rules.

    Attributes:
        exact: Origins allowed verbatim (scheme + host + optional port).
        suffixes: Host suffixes allowed for any subdomain, e.g. ``.vercel.app``.
            A suffix without a leading dot is treated as if it had one.
        scheme: Scheme prefix required by suffix rules.
    """

    exact: tuple[str, ...] = (DEFAULT_ALLOWED_ORIGIN,)
    suffixes: tuple[str, ...] = ()
    scheme: str = "https://"

    def __call__(self, origin: str) -> bool:
        if not origin:
            return False
        if origin in self.exact:
            return True
        # Suffix rules only apply over the expected scheme
        if not origin.startswith(self.scheme):
            return False
        return any(origin.endswith(_dotted(suffix)) for suffix in self.suffixes if suffix)


def _dotted(suffix: str) -> str:
    """Anchor a suffix rule at a label boundary (``vercel.app`` -> ``.vercel.app``)."""
    return suffix if suffix.startswith(".") else f".{suffix}"


def cors_headers(
    origin: str,
    is_allowed: OriginPredicate,
    max_age: int = DEFAULT_MAX_AGE,
) -> dict[str, str]:
    """Build the CORS header set for a response to ``origin``.

    Disallowed or missing origins get an empty ``Access-Control-Allow-Origin``.
    """
    return {
        "Access-Control-Allow-Origin": origin if is_allowed(origin) else "",
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
        "Access-Control-Max-Age": str(max_age),
    }


def is_forbidden(origin: str, is_allowed: OriginPredicate) -> bool:
    """Return True if ``origin`` is present and not on the allow-list.

    A missing origin (same-origin or server-to-server call) is never forbidden.
    """
    return bool(origin) and not is_allowed(origin)
