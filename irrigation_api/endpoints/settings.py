"""Lectura de settings (la escritura entra solo por /api/control)."""

from fastapi import APIRouter, Depends, HTTPException

from ..core.errors import StorageUnavailableError
from ..core.service import MonitorService
from ..schemas import SettingsOut
from .deps import get_service

router = APIRouter(prefix="/api", tags=["settings"])


@router.get("/settings", response_model=SettingsOut)
def current_settings(service: MonitorService = Depends(get_service)):
    """Política vigente con defaults aplicados."""
    try:
        policy = service.policy.current()
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch settings")
    return policy.to_dict()


@router.get("/settings/{key}")
def setting_by_key(key: str, service: MonitorService = Depends(get_service)):
    try:
        setting = service.store.get_setting(key)
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to fetch setting")
    return setting.to_dict() if setting else None
