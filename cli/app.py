from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.config import load_config
from cli.render import render_reading
from logging_config import configure_logging
from services.awair import AwairClient, SensorFetchError
from services.lifecycle import ExporterRuntime, StartupError
from settings import Settings


@dataclass
class CLIState:
    settings: Settings


app = typer.Typer(
    help="Export Awair local API readings as Prometheus metrics.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    listen: Optional[str] = typer.Option(
        None,
        "--listen",
        help="Listen address (defaults to AWAIR_LISTEN_ADDRESS env or 0.0.0.0).",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        min=0,
        max=65535,
        help="Listen port number (defaults to AWAIR_LISTEN_PORT env or 2112).",
    ),
    awair_address: Optional[str] = typer.Option(
        None,
        "--awair-address",
        help="Awair air-data URL (defaults to AWAIR_ADDRESS env or http://localhost/air-data/latest).",
    ),
    poll_frequency: Optional[str] = typer.Option(
        None,
        "--poll-frequency",
        help="Duration to wait between polling device, e.g. 30s or 1m30s.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Serve metrics unless a subcommand is given."""
    try:
        settings = load_config(
            listen=listen,
            port=port,
            awair_address=awair_address,
            poll_frequency=poll_frequency,
            log_level=log_level,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--poll-frequency") from exc

    configure_logging(settings.log_level)
    ctx.obj = CLIState(settings=settings)
    if ctx.invoked_subcommand is None:
        _serve(settings)


@app.command("serve")
def serve_command(ctx: typer.Context) -> None:
    """Poll the sensor and serve /metrics until interrupted."""
    _serve(_get_state(ctx).settings)


@app.command("fetch")
def fetch_command(ctx: typer.Context) -> None:
    """Poll the sensor once and print the decoded reading."""
    settings = _get_state(ctx).settings
    client = AwairClient(settings.awair_address)
    try:
        reading = client.fetch()
    except SensorFetchError as exc:
        typer.secho(f"Fetch failed ({exc.reason}): {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    finally:
        client.close()
    render_reading(reading, settings.awair_address)


def _serve(settings: Settings) -> None:
    runtime = ExporterRuntime(settings)
    try:
        exit_code = runtime.run()
    except StartupError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc
    raise typer.Exit(code=exit_code)


def run() -> None:
    app()
