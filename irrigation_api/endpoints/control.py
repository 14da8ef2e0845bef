"""Intake de control: modo, bomba manual y umbral de humedad."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..core.errors import StorageUnavailableError
from ..core.service import MonitorService
from ..schemas import ControlCommandIn, ControlResultOut
from .deps import get_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["control"])


def _validation_details(error: ValidationError) -> list[dict]:
    return [
        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
        for err in error.errors()
    ]


@router.post("/control", response_model=ControlResultOut)
def control(
    payload: Any = Body(default=None),
    service: MonitorService = Depends(get_service),
):
    """Envía comandos al controlador y persiste la política.

    La publicación MQTT es best-effort: un enlace caído no impide guardar
    los settings (ver ``published`` en la respuesta).
    """
    try:
        command = ControlCommandIn.model_validate(payload)
    except ValidationError as e:
        logger.info("[CONTROL] Rejected command: %s", e.error_count())
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid command format", "details": _validation_details(e)},
        )

    try:
        result = service.commands.apply(command.to_intent())
    except StorageUnavailableError:
        raise HTTPException(status_code=500, detail="Failed to send command")
    return result.to_dict()
