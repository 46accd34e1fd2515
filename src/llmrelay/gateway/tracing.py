"""Request tracing for the relay.

Provides human-readable trace IDs and request start/complete log lines.
Trace IDs are only used to correlate log lines; nothing about a request's
message content is ever recorded here.
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


class RequestTracer:
    """Generates trace IDs and logs request lifecycle events.

    Example:
        tracer = RequestTracer()
        trace_id = tracer.generate_trace_id(body, provider="anthropic")
        tracer.log_request(trace_id, "POST", "/api/anthropic", body_size=120)
    """

    def __init__(self) -> None:
        self._counter = itertools.count(1)

    def generate_trace_id(self, body: Any, provider: str = "relay") -> str:
        """Generate a human-readable trace ID with sequence number and context.

        Format: {counter}_{hhmmss}_{num_messages}msgs_{provider}
        Example: 00001_031333_2msgs_openrouter
        """
        seq = next(self._counter)
        timestamp = time.strftime("%H%M%S")

        msgs = body.get("messages") if isinstance(body, dict) else None
        msg_count = len(msgs) if isinstance(msgs, list) else 0

        # Clean provider for log grep-ability
        context = "".join(c if c.isalnum() or c == "_" else "" for c in provider) or "relay"

        return f"{seq:05d}_{timestamp}_{msg_count}msgs_{context}"

    def log_request(
        self,
        trace_id: str,
        method: str,
        path: str,
        body_size: int,
        msg_count: int = 0,
    ) -> None:
        """Log a request event."""
        logger.debug(
            "[%s] request_start: method=%s, path=%s, body_size=%d, msg_count=%d",
            trace_id,
            method,
            path,
            body_size,
            msg_count,
        )

    def log_response(
        self,
        trace_id: str,
        status_code: int,
        duration_s: float,
        response_size: int = 0,
        error: str | None = None,
    ) -> None:
        """Log a response event.

        Args:
            trace_id: Trace ID for this request.
            status_code: HTTP status code sent to the caller.
            duration_s: Request duration in seconds.
            response_size: Bytes relayed to the caller.
            error: Error message if request failed.
        """
        if error:
            logger.warning(
                "[%s] request_failed: status=%d, error=%s (%.2fs)",
                trace_id,
                status_code,
                error[:100],
                duration_s,
            )
        else:
            logger.info(
                "[%s] request_complete: status=%d, size=%d (%.2fs)",
                trace_id,
                status_code,
                response_size,
                duration_s,
            )
