from __future__ import annotations

from dataclasses import fields
from typing import Any, Iterable

import typer

from models.records import SensorReading


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _display(value: Any) -> Any:
    return "unknown" if value is None else value


def render_reading(reading: SensorReading, address: str) -> None:
    echo_heading("Awair Reading")
    echo_key_values([("address", address)])
    typer.echo()
    echo_heading("Values")
    echo_key_values(
        (field.name, _display(getattr(reading, field.name))) for field in fields(reading)
    )
