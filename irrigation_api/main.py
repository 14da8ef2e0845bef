from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from common.config import Settings, get_settings

from .core.service import MonitorService
from .endpoints import (
    control_router,
    health_router,
    logs_router,
    readings_router,
    sample_data_router,
    settings_router,
    status_router,
)
from .transports.websocket import live_events

logger = logging.getLogger(__name__)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    service: Optional[MonitorService] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Construye la aplicación.

    Sin ``service`` se arma el servicio real (BD + MQTT) al arrancar;
    los tests inyectan uno con dependencias falsas.
    """
    settings = settings or (service.settings if service is not None else get_settings())
    _configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = service or MonitorService.from_settings(settings)
        app.state.service = svc
        svc.start()
        try:
            yield
        finally:
            svc.stop()

    app = FastAPI(title="Irrigation Monitoring Service", version="1.0.0", lifespan=lifespan)

    app.include_router(health_router)
    app.include_router(readings_router)
    app.include_router(logs_router)
    app.include_router(settings_router)
    app.include_router(status_router)
    app.include_router(control_router)
    app.include_router(sample_data_router)
    app.add_api_websocket_route("/ws", live_events)

    return app


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
