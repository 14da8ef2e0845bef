"""Validadores de payloads de telemetría MQTT.

Valida y transforma mensajes del controlador de campo al formato interno.

Formato esperado (topic ``irigasi``)::

    {"temperature": 26.4, "soilMoisture": 38, "pumpState": "ON", "humidity": 61}

El firmware antiguo publica los mismos campos con nombres en indonesio
(``suhu``, ``tanah``, ``pompa``, ``kelembaban``); se aceptan y se
registran como warning de validación.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import InvalidTelemetryError

logger = logging.getLogger(__name__)

LEGACY_FIELD_NAMES = {
    "suhu": "temperature",
    "tanah": "soilMoisture",
    "pompa": "pumpState",
    "kelembaban": "humidity",
}


class TelemetryPayload(BaseModel):
    """Schema de validación para lecturas del controlador."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    temperature: float
    soil_moisture: int = Field(..., alias="soilMoisture", ge=0, le=100)
    pump_state: str = Field(..., alias="pumpState")
    # humidity (o kelembaban) no se valida ni se guarda: extra="ignore"

    @field_validator("temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if math.isnan(v):
            raise ValueError("temperature is NaN")
        if math.isinf(v):
            raise ValueError("temperature is infinite")
        return v

    @field_validator("soil_moisture", mode="before")
    @classmethod
    def validate_soil_moisture(cls, v: Any) -> Any:
        # Solo enteros: 38 y 38.0 son válidos, 38.5 no.
        if isinstance(v, bool):
            raise ValueError("soilMoisture must be a number")
        if isinstance(v, float):
            if not math.isfinite(v) or not v.is_integer():
                raise ValueError("soilMoisture must be an integer percentage")
            return int(v)
        return v

    @field_validator("pump_state", mode="before")
    @classmethod
    def validate_pump_state(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("pumpState must be 'ON' or 'OFF'")
        state = v.strip().upper()
        if state not in ("ON", "OFF"):
            raise ValueError(f"pumpState must be 'ON' or 'OFF', got: {v}")
        return state

    @property
    def pump_on(self) -> bool:
        return self.pump_state == "ON"


@dataclass
class ValidationResult:
    """Resultado de validación."""

    valid: bool
    payload: Optional[TelemetryPayload] = None
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)


def decode_payload(raw: bytes) -> Any:
    """Decodifica el cuerpo JSON de un mensaje MQTT."""
    try:
        return orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        raise InvalidTelemetryError(f"Invalid JSON: {e}") from e


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "payload"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def validate_telemetry(data: Any) -> ValidationResult:
    """Valida payload de telemetría.

    Args:
        data: Diccionario decodificado del mensaje MQTT

    Returns:
        ValidationResult con payload validado o error
    """
    if not isinstance(data, dict):
        return ValidationResult(valid=False, error="Payload must be a JSON object")

    warnings: List[str] = []
    normalized = dict(data)
    for legacy, name in LEGACY_FIELD_NAMES.items():
        if legacy in normalized and name not in normalized:
            normalized[name] = normalized.pop(legacy)
            warnings.append(f"Used legacy field {legacy} instead of {name}")

    try:
        payload = TelemetryPayload.model_validate(normalized)
    except ValidationError as e:
        error = _format_validation_error(e)
        logger.warning("[TELEMETRY_VALIDATOR] Validation failed: %s", error)
        return ValidationResult(valid=False, error=error)

    return ValidationResult(valid=True, payload=payload, warnings=warnings)
