"""Modelos de dominio: lecturas, logs de sistema, settings y buckets agregados."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


def utcnow() -> datetime:
    """UTC naive, el mismo formato que guardan las columnas ``timestamp``."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat() + "Z"


class SystemMode(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class PumpSetting(str, Enum):
    ON = "on"
    OFF = "off"


class LogKind(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    PUMP_ACTION = "pump_action"


class SettingKey(str, Enum):
    SYSTEM_MODE = "system_mode"
    MANUAL_PUMP_STATE = "manual_pump_state"
    MOISTURE_THRESHOLD = "moisture_threshold"


@dataclass(frozen=True)
class Reading:
    """Lectura persistida del controlador de campo.

    Inmutable una vez creada; ``timestamp`` lo asigna el servicio al insertar.
    """
    id: int
    timestamp: datetime
    temperature: float
    soil_moisture: int
    pump_on: bool
    mode: SystemMode

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": isoformat_utc(self.timestamp),
            "temperature": self.temperature,
            "soilMoisture": self.soil_moisture,
            "pumpOn": self.pump_on,
            "mode": self.mode.value,
        }


@dataclass(frozen=True)
class LogEntry:
    id: int
    timestamp: datetime
    kind: LogKind
    message: str
    metadata: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": isoformat_utc(self.timestamp),
            "type": self.kind.value,
            "message": self.message,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class Setting:
    key: str
    value: str
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "updatedAt": isoformat_utc(self.updated_at),
        }


@dataclass(frozen=True)
class AggregatedBucket:
    """Resumen de una ventana precalculada por el motor (solo lectura)."""
    bucket_start: datetime
    avg_temperature: float
    min_temperature: float
    max_temperature: float
    avg_soil_moisture: float
    min_soil_moisture: int
    max_soil_moisture: int
    reading_count: int
    pump_was_active: bool

    @property
    def timestamp(self) -> datetime:
        return self.bucket_start

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": isoformat_utc(self.bucket_start),
            "avgTemperature": self.avg_temperature,
            "minTemperature": self.min_temperature,
            "maxTemperature": self.max_temperature,
            "avgSoilMoisture": self.avg_soil_moisture,
            "minSoilMoisture": self.min_soil_moisture,
            "maxSoilMoisture": self.max_soil_moisture,
            "readingCount": self.reading_count,
            "pumpWasActive": self.pump_was_active,
        }
