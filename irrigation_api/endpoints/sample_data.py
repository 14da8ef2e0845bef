"""Arranque del generador de telemetría de prueba."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from ..core.domain.events import NewSystemLogEvent
from ..core.domain.models import LogKind
from ..core.errors import StorageUnavailableError
from ..core.service import MonitorService
from ..schemas import SampleDataOut
from .deps import get_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["sample-data"])


@router.post("/generate-sample-data", response_model=SampleDataOut)
def generate_sample_data(service: MonitorService = Depends(get_service)):
    if not service.sample_producer.start():
        return {
            "success": True,
            "message": "Sample data generation already running",
            "running": True,
        }

    try:
        log = service.store.create_log(LogKind.INFO, "Sample data generation started for testing")
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to start sample data generation")
    service.fanout.publish(NewSystemLogEvent(log))

    return {
        "success": True,
        "message": "Sample data generation started",
        "running": service.sample_producer.is_running,
    }
