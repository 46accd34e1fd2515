"""Logging configuration for the relay.

Usage:
    from llmrelay.core.logging_config import configure_logging

    # Configure once at application startup
    configure_logging(level="DEBUG", format="json")

Modules log through ``logging.getLogger(__name__)`` as usual.

Environment Variables:
    LLMRELAY_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    LLMRELAY_LOG_FORMAT: Output format ("text" or "json")
    LLMRELAY_LOG_FILE: Optional log file path
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Literal

TEXT_FORMAT = "%(asctime)s.%(msecs)03d - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Attributes every LogRecord carries; anything else came in via ``extra=``
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}

_configured = False


class JsonFormatter(logging.Formatter):
    """JSON log formatter, one object per line.

    {"timestamp": "...", "level": "INFO", "logger": "llmrelay...", "message": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def configure_logging(
    level: str | None = None,
    format: Literal["text", "json"] | None = None,
    file_path: str | None = None,
    access_log: bool = False,
    force: bool = False,
) -> None:
    """Configure root logging for the relay process.

    Subsequent calls are ignored unless ``force=True``. Arguments fall back
    to the LLMRELAY_LOG_* environment variables, then to INFO/text.

    Args:
        level: Log level name.
        format: "text" or "json".
        file_path: Optional file to log to in addition to stderr.
        access_log: Keep aiohttp's per-request access log at INFO.
        force: Reconfigure even if already configured.

    Raises:
        ValueError: If the level or format is not recognized.
    """
    global _configured
    if _configured and not force:
        return

    level = (level or os.environ.get("LLMRELAY_LOG_LEVEL", "INFO")).upper()
    format = format or os.environ.get("LLMRELAY_LOG_FORMAT", "text")  # type: ignore[assignment]
    file_path = file_path or os.environ.get("LLMRELAY_LOG_FILE")

    if level not in LEVELS:
        raise ValueError(f"Unknown log level: {level!r} (expected one of {', '.join(LEVELS)})")
    if format not in ("text", "json"):
        raise ValueError(f"Unknown log format: {format!r} (expected 'text' or 'json')")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))
    root_logger.handlers.clear()

    if format == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if file_path:
        file_handler = logging.FileHandler(file_path)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    if not access_log:
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    _configured = True
