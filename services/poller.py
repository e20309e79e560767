"""Fixed-interval polling of the sensor into the metrics registry."""

from __future__ import annotations

import logging
import time
from threading import Event

from services.awair import AwairClient, SensorFetchError, UnexpectedStatusError
from services.metrics import ClimateMetrics

logger = logging.getLogger(__name__)


class Poller:
    """Polls the sensor every ``interval`` seconds until stopped.

    The first poll happens one interval after ``run`` starts. Polls are
    synchronous, so a slow poll delays the next one instead of overlapping it.
    """

    def __init__(
        self,
        client: AwairClient,
        metrics: ClimateMetrics,
        interval: float,
        stop_event: Event | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Poll interval must be positive, got {interval!r}.")
        self.client = client
        self.metrics = metrics
        self.interval = interval
        self._stop = stop_event if stop_event is not None else Event()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        self._stop.set()

    def run(self) -> None:
        logger.info(
            "Poller started",
            extra={"awair_address": self.client.address, "poll_frequency": self.interval},
        )
        while not self._stop.wait(self.interval):
            self.poll_once()
        logger.info("Poller stopped")

    def poll_once(self) -> bool:
        """Run one fetch-decode-update cycle; return whether it succeeded."""
        start_time = time.perf_counter()
        try:
            reading = self.client.fetch()
        except SensorFetchError as exc:
            status_code = exc.status_code if isinstance(exc, UnexpectedStatusError) else None
            logger.error(
                "Error polling awair: %s",
                exc,
                extra={
                    "awair_address": exc.address,
                    "reason": exc.reason,
                    "status_code": status_code,
                },
            )
            self.metrics.record_failure(exc.reason)
            return False

        self.metrics.record(reading)
        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        logger.info(
            "Successfully recorded metrics from Awair",
            extra={
                "awair_address": self.client.address,
                "score": reading.score,
                "elapsed_ms": elapsed_ms,
            },
        )
        return True
