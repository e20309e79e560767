"""Prometheus gauges mirroring the Awair climate readings."""

from __future__ import annotations

import time
from typing import Dict, Optional, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from prometheus_client.exposition import choose_encoder

from models.records import SensorReading
from services.awair import FAILURE_REASONS

NAMESPACE = "awair"
CLIMATE_SUBSYSTEM = "climate"
EXPORTER_SUBSYSTEM = "exporter"

# (reading attribute, metric name, help text)
CLIMATE_GAUGES: Tuple[Tuple[str, str, str], ...] = (
    ("temp", "temp_c", "Dry bulb temperature (ºC)"),
    ("humid", "relative_humidity", "Relative Humidity (%)"),
    ("co2", "co2_ppm", "Carbon Dioxide (ppm)"),
    ("voc", "voc_ppb", "Total Volatile Organic Compounds (ppb)"),
    (
        "pm25",
        "pm25_ug_m3",
        "Particulate matter less than 2.5 microns in diameter (µg/m³)",
    ),
    ("score", "score", "Awair Score (0-100)"),
    (
        "dew_point",
        "dew_point_c",
        "The temperature at which water will condense and form into dew (ºC)",
    ),
    ("abs_humid", "absolute_humidity", "Absolute Humidity (g/m³)"),
    (
        "co2_est",
        "co2_estimate",
        "Estimated Carbon Dioxide (ppm - calculated by the TVOC sensor)",
    ),
    (
        "co2_est_baseline",
        "co2_estimate_baselines",
        "A unitless value that represents the baseline from which the TVOC sensor "
        "partially derives its estimated (e)CO₂output.",
    ),
    (
        "voc_baseline",
        "voc_baseline",
        "A unitless value that represents the baseline from which the TVOC sensor "
        "partially derives its TVOC output.",
    ),
    (
        "voc_h2_raw",
        "voc_h2_raw",
        "A unitless value that represents the Hydrogen gas signal from which the "
        "TVOC sensor partially derives its TVOC output.",
    ),
    (
        "voc_ethanol_raw",
        "voc_ethanol_raw",
        "A unitless value that represents the Ethanol gas signal from which the "
        "TVOC sensor partially derives its TVOC output.",
    ),
    (
        "pm10_est",
        "pm10_estimate",
        "Estimated particulate matter less than 10 microns in diameter "
        "(µg/m³ - calculated by the PM2.5 sensor)",
    ),
)


class ClimateMetrics:
    """Owns the collector registry scraped on ``/metrics``.

    Gauges are registered once, in the constructor. ``record`` sets them one
    field at a time, so a concurrent scrape may see a mix of two readings.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._gauges: Dict[str, Gauge] = {}
        for attribute, name, help_text in CLIMATE_GAUGES:
            self._gauges[attribute] = self.register(name, help_text)

        self.last_poll_success = Gauge(
            "last_poll_success",
            "1 if the most recent poll of the sensor succeeded, 0 otherwise.",
            namespace=NAMESPACE,
            subsystem=EXPORTER_SUBSYSTEM,
            registry=self.registry,
        )
        self.last_success_timestamp = Gauge(
            "last_success_timestamp_seconds",
            "Unix time of the most recent successful poll (0 if none yet).",
            namespace=NAMESPACE,
            subsystem=EXPORTER_SUBSYSTEM,
            registry=self.registry,
        )
        self.poll_errors = Counter(
            "poll_errors",
            "Failed polls of the sensor, by failure reason.",
            ["reason"],
            namespace=NAMESPACE,
            subsystem=EXPORTER_SUBSYSTEM,
            registry=self.registry,
        )
        for reason in FAILURE_REASONS:
            self.poll_errors.labels(reason=reason)

    def register(self, name: str, help_text: str) -> Gauge:
        return Gauge(
            name,
            help_text,
            namespace=NAMESPACE,
            subsystem=CLIMATE_SUBSYSTEM,
            registry=self.registry,
        )

    def record(self, reading: SensorReading, recorded_at: Optional[float] = None) -> None:
        for attribute, gauge in self._gauges.items():
            gauge.set(float(getattr(reading, attribute)))
        self.last_poll_success.set(1)
        self.last_success_timestamp.set(time.time() if recorded_at is None else recorded_at)

    def record_failure(self, reason: str) -> None:
        self.last_poll_success.set(0)
        self.poll_errors.labels(reason=reason).inc()

    def render(self) -> bytes:
        return generate_latest(self.registry)

    def exposition(self, accept: Optional[str] = None) -> Tuple[bytes, str]:
        """Encode the registry in the format negotiated from an Accept header."""
        encoder, content_type = choose_encoder(accept)
        return encoder(self.registry), content_type
