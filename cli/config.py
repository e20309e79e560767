from __future__ import annotations

from dataclasses import replace
from typing import Optional

from settings import Settings, get_settings, parse_duration


def load_config(
    listen: Optional[str] = None,
    port: Optional[int] = None,
    awair_address: Optional[str] = None,
    poll_frequency: Optional[str] = None,
    log_level: Optional[str] = None,
) -> Settings:
    """Overlay command-line values on the environment-backed settings.

    Raises ``ValueError`` when ``poll_frequency`` is not a positive duration.
    """
    settings = get_settings()
    overrides = {}
    if listen:
        overrides["listen_address"] = listen.strip()
    if port is not None:
        overrides["listen_port"] = port
    if awair_address:
        overrides["awair_address"] = awair_address.strip()
    if poll_frequency is not None:
        overrides["poll_frequency"] = parse_duration(poll_frequency)
    if log_level:
        overrides["log_level"] = log_level.strip().upper()
    return replace(settings, **overrides)
