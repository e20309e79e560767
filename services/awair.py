"""HTTP client for the Awair local air-data API."""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx
from pydantic import ValidationError

from app.schemas import AirDataPayload
from models.records import SensorReading

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 1.0


class SensorFetchError(Exception):
    """Base class for a failed poll of the sensor."""

    reason = "unknown"

    def __init__(self, message: str, address: str) -> None:
        super().__init__(message)
        self.address = address


class RequestBuildError(SensorFetchError):
    reason = "request"


class SensorTransportError(SensorFetchError):
    reason = "transport"


class BodyReadError(SensorFetchError):
    reason = "read"


class UnexpectedStatusError(SensorFetchError):
    reason = "status"

    def __init__(self, message: str, address: str, status_code: int) -> None:
        super().__init__(message, address)
        self.status_code = status_code


class PayloadDecodeError(SensorFetchError):
    reason = "decode"


FAILURE_REASONS = tuple(
    error.reason
    for error in (
        RequestBuildError,
        SensorTransportError,
        BodyReadError,
        UnexpectedStatusError,
        PayloadDecodeError,
    )
)


class AwairClient:
    """Fetches and decodes one reading per call. Never retries."""

    def __init__(
        self,
        address: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.address = address
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def fetch(self) -> SensorReading:
        """Fetch one reading, giving up once ``timeout`` seconds have passed overall."""
        try:
            request = self._client.build_request("GET", self.address)
        except (httpx.InvalidURL, ValueError) as exc:
            raise RequestBuildError(
                f"Cannot build request for {self.address!r}: {exc}", self.address
            ) from exc

        deadline = time.monotonic() + self.timeout
        try:
            response = self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise SensorTransportError(
                f"Error getting data from awair: {exc!r}", self.address
            ) from exc

        try:
            body = self._read_body(response, deadline)
        finally:
            response.close()

        if not response.is_success:
            raise UnexpectedStatusError(
                f"Awair responded with HTTP {response.status_code}",
                self.address,
                status_code=response.status_code,
            )

        try:
            payload = AirDataPayload.model_validate_json(body)
        except ValidationError as exc:
            raise PayloadDecodeError(
                f"Error decoding response body: {exc.error_count()} error(s), "
                f"first: {exc.errors()[0]['msg']}",
                self.address,
            ) from exc

        logger.debug("Decoded awair payload", extra={"awair_address": self.address})
        return to_reading(payload)

    def _read_body(self, response: httpx.Response, deadline: float) -> bytes:
        # httpx timeouts apply per phase and per chunk; the deadline caps the whole call.
        chunks: list[bytes] = []
        try:
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    break
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise BodyReadError(
                f"Error reading response body: {exc!r}", self.address
            ) from exc
        if time.monotonic() > deadline:
            raise SensorTransportError(
                f"Error getting data from awair: no complete response within {self.timeout:g}s",
                self.address,
            )
        return b"".join(chunks)


def to_reading(payload: AirDataPayload) -> SensorReading:
    return SensorReading(
        timestamp=payload.timestamp,
        score=payload.score,
        dew_point=payload.dew_point,
        temp=payload.temp,
        humid=payload.humid,
        abs_humid=payload.abs_humid,
        co2=payload.co2,
        co2_est=payload.co2_est,
        co2_est_baseline=payload.co2_est_baseline,
        voc=payload.voc,
        voc_baseline=payload.voc_baseline,
        voc_h2_raw=payload.voc_h2_raw,
        voc_ethanol_raw=payload.voc_ethanol_raw,
        pm25=payload.pm25,
        pm10_est=payload.pm10_est,
    )
