"""Process-level setup shared by the relay and CLI."""

from llmrelay.core.logging_config import configure_logging

__all__ = [
    "configure_logging",
]
