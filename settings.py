from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass
from functools import lru_cache


_LISTEN_ADDRESS_ENV = "AWAIR_LISTEN_ADDRESS"
_LISTEN_PORT_ENV = "AWAIR_LISTEN_PORT"
_AWAIR_ADDRESS_ENV = "AWAIR_ADDRESS"
_POLL_FREQUENCY_ENV = "AWAIR_POLL_FREQUENCY"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_LISTEN_ADDRESS = "0.0.0.0"
DEFAULT_LISTEN_PORT = 2112
DEFAULT_AWAIR_ADDRESS = "http://localhost/air-data/latest"
DEFAULT_POLL_FREQUENCY = 30.0

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


@dataclass(frozen=True)
class Settings:
    listen_address: str
    listen_port: int
    awair_address: str
    poll_frequency: float
    log_level: str


def parse_duration(value: str) -> float:
    """Parse ``30s``/``1m30s``/``500ms`` style durations into seconds.

    A bare number is read as seconds. The result must be positive.
    """
    candidate = value.strip()
    if not candidate:
        raise ValueError("Duration is empty.")

    try:
        seconds = float(candidate)
    except ValueError:
        position = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(candidate):
            if match.start() != position:
                break
            seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
            position = match.end()
        if position != len(candidate):
            raise ValueError(f"Invalid duration {value!r}.") from None

    if not math.isfinite(seconds) or seconds <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}.")
    return seconds


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_port(default: int) -> int:
    value = os.getenv(_LISTEN_PORT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if 0 <= parsed <= 65535 else default


def _read_duration(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return parse_duration(value)
    except ValueError:
        return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        listen_address=_read_str_env(_LISTEN_ADDRESS_ENV, DEFAULT_LISTEN_ADDRESS),
        listen_port=_read_port(DEFAULT_LISTEN_PORT),
        awair_address=_read_str_env(_AWAIR_ADDRESS_ENV, DEFAULT_AWAIR_ADDRESS),
        poll_frequency=_read_duration(_POLL_FREQUENCY_ENV, DEFAULT_POLL_FREQUENCY),
        log_level=_read_log_level("INFO"),
    )


def format_duration(seconds: float) -> str:
    if seconds >= 1 and float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:g}s"
