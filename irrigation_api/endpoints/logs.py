from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.errors import StorageUnavailableError
from ..core.service import MonitorService
from .deps import get_service

router = APIRouter(prefix="/api", tags=["logs"])


@router.get("/system-logs")
def system_logs(
    limit: int = Query(50, ge=1, le=1000),
    service: MonitorService = Depends(get_service),
):
    try:
        logs = service.store.get_recent_logs(limit)
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch system logs")
    return [log.to_dict() for log in logs]
