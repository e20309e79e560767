from __future__ import annotations

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.metrics import ClimateMetrics


def create_app(metrics: ClimateMetrics) -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Awair Exporter",
        description="Republishes Awair local API readings as Prometheus metrics.",
        version="0.1.0",
    )
    app.state.metrics = metrics
    app.include_router(router)
    return app
