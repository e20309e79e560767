"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single snapshot of the Awair ``/air-data/latest`` readings."""

    timestamp: Optional[datetime] = None
    score: int = 0
    dew_point: float = 0.0
    temp: float = 0.0
    humid: float = 0.0
    abs_humid: float = 0.0
    co2: int = 0
    co2_est: int = 0
    co2_est_baseline: int = 0
    voc: int = 0
    voc_baseline: int = 0
    voc_h2_raw: int = 0
    voc_ethanol_raw: int = 0
    pm25: int = 0
    pm10_est: int = 0
