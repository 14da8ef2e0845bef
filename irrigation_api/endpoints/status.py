from fastapi import APIRouter, Depends

from ..core.service import MonitorService
from ..schemas import SystemStatusOut
from .deps import get_service

router = APIRouter(prefix="/api", tags=["status"])


@router.get("/system-status", response_model=SystemStatusOut)
def system_status(service: MonitorService = Depends(get_service)):
    """Estado de enlace MQTT, sensores y base de datos.

    Nunca falla por BD: una BD caída se reporta como ``disconnected``.
    """
    return service.system_status().to_dict()
