"""Command-line interface for llmrelay."""

from llmrelay.frontends.cli.main import cli, main

__all__ = ["cli", "main"]
