"""HTTP route definitions for the exporter."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from app.schemas import HealthResponse
from services.metrics import ClimateMetrics

router = APIRouter()


def get_metrics(request: Request) -> ClimateMetrics:
    return request.app.state.metrics


@router.get(
    "/metrics",
    summary="Prometheus exposition of the latest sensor readings.",
    include_in_schema=False,
)
def metrics_endpoint(
    request: Request,
    metrics: ClimateMetrics = Depends(get_metrics),
) -> Response:
    content, content_type = metrics.exposition(request.headers.get("accept"))
    return Response(content=content, media_type=content_type)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/",
    response_model=HealthResponse,
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> HealthResponse:
    return HealthResponse(detail="Metrics are served on /metrics.")
