"""Health, readiness y métricas."""

from fastapi import APIRouter, Depends, HTTPException, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..core.service import MonitorService
from .deps import get_service

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe: always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(service: MonitorService = Depends(get_service)):
    """Readiness probe: checks DB connectivity."""
    if not service.store.ping():
        raise HTTPException(status_code=503, detail="not ready")
    return {"status": "ready"}


@router.get("/metrics")
def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/stats")
def stats(service: MonitorService = Depends(get_service)):
    """Contadores internos del servicio (ingesta, cola, observadores)."""
    return service.stats
