"""Lecturas de sensores: última, recientes e histórico por ventana."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.errors import StorageUnavailableError, UnknownTimeRangeError
from ..core.history import available_windows
from ..core.service import MonitorService
from ..schemas import TimeRangeOut
from .deps import get_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["readings"])


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@router.get("/sensor-readings/latest")
def latest_reading(service: MonitorService = Depends(get_service)):
    try:
        reading = service.store.get_latest_reading()
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch latest sensor reading")
    return reading.to_dict() if reading else None


@router.get("/sensor-readings/recent")
def recent_readings(
    limit: int = Query(10, ge=1, le=1000),
    service: MonitorService = Depends(get_service),
):
    try:
        readings = service.store.get_recent_readings(limit)
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch recent sensor readings")
    return [r.to_dict() for r in readings]


@router.get("/sensor-readings")
def sensor_readings(
    time_range: Optional[str] = Query(None, alias="timeRange"),
    since: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    service: MonitorService = Depends(get_service),
):
    """Histórico de lecturas.

    Prioridad: ``timeRange`` (crudo o agregado, ascendente) → ``since``
    (crudo, descendente) → últimas ``limit`` lecturas (descendente).
    """
    try:
        if time_range:
            rows = service.history.resolve(time_range)
        elif since is not None:
            rows = service.store.get_readings_since(_naive_utc(since))
        else:
            rows = service.store.get_recent_readings(limit)
    except UnknownTimeRangeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch sensor readings")
    return [row.to_dict() for row in rows]


@router.get("/time-ranges", response_model=list[TimeRangeOut])
def time_ranges():
    return available_windows()
