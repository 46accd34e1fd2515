"""CLI entry point."""

from __future__ import annotations

import asyncio
import signal
import sys

import rich_click as click

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = "Try running '--help' for more information."
click.rich_click.MAX_WIDTH = 100


@click.group()
@click.version_option(package_name="llmrelay")
def cli() -> None:
    """llmrelay - CORS-aware relay for browser chat clients.

    Holds provider API keys server-side and forwards chat-completion
    requests from allowed browser origins.

    **Commands:**

        llmrelay serve           Run the relay server

        llmrelay check-origin    Test an origin against the allow-list
    """
    pass


@cli.command()
@click.option("--host", default=None, help="Host to bind (or RELAY_HOST)")
@click.option("--port", type=int, default=None, help="Port to bind (or RELAY_PORT)")
@click.option(
    "--config",
    "config_file",
    default=None,
    type=click.Path(dir_okay=False),
    help="YAML config file (or LLMRELAY_CONFIG)",
)
@click.option(
    "--allow-origin",
    "allowed_origins",
    multiple=True,
    help="Allowed origin, exact match (repeatable)",
)
@click.option(
    "--allow-origin-suffix",
    "allowed_origin_suffixes",
    multiple=True,
    help="Allowed https origin suffix, e.g. .vercel.app (repeatable)",
)
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR (or LLMRELAY_LOG_LEVEL)")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
def serve(
    host: str | None,
    port: int | None,
    config_file: str | None,
    allowed_origins: tuple[str, ...],
    allowed_origin_suffixes: tuple[str, ...],
    log_level: str | None,
    json_logs: bool,
) -> None:
    """Run the relay server until interrupted.

    API keys are read from **ANTHROPIC_API_KEY** and **OPENROUTER_API_KEY**
    (or the config file). A route whose key is missing answers 500.

    **Examples:**

        llmrelay serve

        llmrelay serve --host 0.0.0.0 --port 8080

        llmrelay serve --allow-origin https://example.github.io --allow-origin-suffix .vercel.app
    """
    from llmrelay.compose import create_relay_server
    from llmrelay.core.logging_config import configure_logging

    try:
        configure_logging(level=log_level, format="json" if json_logs else None)
        server = create_relay_server(
            host=host,
            port=port,
            allowed_origins=allowed_origins,
            allowed_origin_suffixes=allowed_origin_suffixes,
            config_file=config_file,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    async def run() -> None:
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            click.echo("\nShutting down...", err=True)
            asyncio.create_task(server.shutdown())

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, handle_signal)

        await server.serve()

    click.echo(f"Starting relay on http://{server.config.host}:{server.config.port}")
    asyncio.run(run())


@cli.command("check-origin")
@click.argument("origin")
@click.option("--config", "config_file", default=None, help="YAML config file (or LLMRELAY_CONFIG)")
def check_origin(origin: str, config_file: str | None) -> None:
    """Report whether ORIGIN would be allowed by the relay.

    Exits 0 when allowed, 1 when denied.

    **Examples:**

        llmrelay check-origin https://tals-dotcom.github.io

        llmrelay check-origin https://preview-123.vercel.app --config relay.yaml
    """
    from llmrelay.compose import create_relay_server

    try:
        server = create_relay_server(config_file=config_file)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    assert server.is_allowed is not None
    if server.is_allowed(origin):
        click.echo(f"allowed: {origin}")
        return
    click.echo(f"denied: {origin}")
    sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
