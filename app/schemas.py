"""Pydantic schemas for the device payload and the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class AirDataPayload(BaseModel):
    """Body returned by the Awair local API at ``/air-data/latest``.

    Every field is optional. Absent or ``null`` values read as zero, unknown
    keys are ignored.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, strict=True)

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

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class HealthResponse(BaseModel):
    """Liveness payload for the exporter itself."""

    status: str = "ok"
    detail: Optional[str] = None
