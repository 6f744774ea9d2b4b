"""
osc2ws CLI.

Wraps local OSC output as a WebSocket server.

Usage:
    osc2ws [--osc-host HOST] [--osc-port PORT] [--ws-host HOST] [--ws-port PORT] [-v]

Options left out fall back to OSC2WS_* environment variables, then to a
.env file, then to the defaults in shared.config.settings.
"""

import asyncio
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from osc_gateway.main import run_gateway
from shared.config.logging import get_logger, setup_logging
from shared.config.settings import Settings, get_settings

logger = get_logger("osc_gateway.cli")

DEFAULTS = {name: field.default for name, field in Settings.model_fields.items()}

app = typer.Typer(
    name="osc2ws",
    help="osc2ws - Wraps local OSC output as a WebSocket server",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console(stderr=True)


def collect_overrides(**options: object) -> dict[str, object]:
    """Keep only the options given on the command line."""
    return {name: value for name, value in options.items() if value is not None}


@app.command()
def serve(
    osc_host: Optional[str] = typer.Option(
        None, "--osc-host", help="Host to receive OSC", show_default=DEFAULTS["osc_host"]
    ),
    osc_port: Optional[int] = typer.Option(
        None, "--osc-port", min=0, max=65535, help="Port to receive OSC",
        show_default=str(DEFAULTS["osc_port"]),
    ),
    ws_host: Optional[str] = typer.Option(
        None, "--ws-host", help="WebSocket server host", show_default=DEFAULTS["ws_host"]
    ),
    ws_port: Optional[int] = typer.Option(
        None, "--ws-port", min=0, max=65535, help="WebSocket server port",
        show_default=str(DEFAULTS["ws_port"]),
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable detailed logging"),
    log_format: Optional[str] = typer.Option(
        None, "--log-format", help="Log output format: text or json", show_default="text"
    ),
):
    """Relay OSC packets received over UDP to every connected WebSocket client."""
    overrides = collect_overrides(
        osc_host=osc_host,
        osc_port=osc_port,
        ws_host=ws_host,
        ws_port=ws_port,
        log_format=log_format,
        verbose=True if verbose else None,
    )

    try:
        settings = Settings(**overrides) if overrides else get_settings()
    except ValidationError as e:
        console.print(f"[red]✗ Invalid configuration: {e}[/red]")
        raise typer.Exit(1)

    setup_logging(verbose=settings.verbose, log_format=settings.log_format)
    logger.info("Starting OSC WebSocket Proxy...")
    logger.info("Configuration", **settings.describe())

    try:
        exit_code = asyncio.run(run_gateway(settings))
    except Exception as e:
        logger.error("Unexpected error", error=str(e), exc_info=True)
        raise typer.Exit(1)

    raise typer.Exit(exit_code)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
