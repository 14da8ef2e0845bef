"""Sobres de eventos para los observadores en vivo.

Unión etiquetada: cada variante tiene un ``type`` fijo y un payload con
campos conocidos. En el cable viajan como ``{"type": ..., "data": ...}``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Protocol, Tuple, Union

import orjson

from .models import LogEntry, Reading, isoformat_utc, utcnow


class EventType(str, Enum):
    SENSOR_DATA = "sensorData"
    SYSTEM_LOGS = "systemLogs"
    NEW_SYSTEM_LOG = "newSystemLog"
    CONNECTION_STATUS = "connectionStatus"
    ALERT = "alert"


@dataclass(frozen=True)
class SensorDataEvent:
    reading: Reading
    type: ClassVar[EventType] = EventType.SENSOR_DATA

    def data(self) -> dict[str, Any]:
        return self.reading.to_dict()


@dataclass(frozen=True)
class SystemLogsEvent:
    logs: Tuple[LogEntry, ...]
    type: ClassVar[EventType] = EventType.SYSTEM_LOGS

    def data(self) -> list[dict[str, Any]]:
        return [log.to_dict() for log in self.logs]


@dataclass(frozen=True)
class NewSystemLogEvent:
    log: LogEntry
    type: ClassVar[EventType] = EventType.NEW_SYSTEM_LOG

    def data(self) -> dict[str, Any]:
        return self.log.to_dict()


@dataclass(frozen=True)
class ConnectionStatusEvent:
    mqtt: bool
    timestamp: datetime = field(default_factory=utcnow)
    type: ClassVar[EventType] = EventType.CONNECTION_STATUS

    def data(self) -> dict[str, Any]:
        return {"mqtt": self.mqtt, "timestamp": isoformat_utc(self.timestamp)}


@dataclass(frozen=True)
class AlertEvent:
    alert_type: str
    message: str
    timestamp: datetime = field(default_factory=utcnow)
    type: ClassVar[EventType] = EventType.ALERT

    def data(self) -> dict[str, Any]:
        return {
            "type": self.alert_type,
            "message": self.message,
            "timestamp": isoformat_utc(self.timestamp),
        }


FanoutEvent = Union[
    SensorDataEvent,
    SystemLogsEvent,
    NewSystemLogEvent,
    ConnectionStatusEvent,
    AlertEvent,
]


class EventSink(Protocol):
    """Destino de eventos (normalmente ``LiveFanout``)."""

    def publish(self, event: FanoutEvent) -> int:
        ...


def to_envelope(event: FanoutEvent) -> dict[str, Any]:
    return {"type": event.type.value, "data": event.data()}


def encode_event(event: FanoutEvent) -> str:
    """Serializa el sobre una sola vez; se reutiliza para todas las conexiones."""
    return orjson.dumps(to_envelope(event)).decode("utf-8")
