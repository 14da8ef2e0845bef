"""Estadísticas de procesamiento."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from ..domain.models import isoformat_utc, utcnow


@dataclass
class Stats:
    """Estadísticas de procesamiento de mensajes de telemetría."""

    received: int = 0
    stored: int = 0
    rejected: int = 0
    dropped: int = 0
    alerts: int = 0
    pump_transitions: int = 0
    last_message_at: float = 0
    started_at: datetime = field(default_factory=utcnow)

    def __str__(self) -> str:
        return (
            f"Stats: received={self.received} stored={self.stored} "
            f"rejected={self.rejected} dropped={self.dropped}"
        )

    def to_dict(self) -> dict:
        """Convierte a diccionario."""
        return {
            "received": self.received,
            "stored": self.stored,
            "rejected": self.rejected,
            "dropped": self.dropped,
            "alerts": self.alerts,
            "pump_transitions": self.pump_transitions,
            "last_message_at": self.last_message_at,
            "started_at": isoformat_utc(self.started_at),
            "success_rate": self._success_rate(),
        }

    def _success_rate(self) -> float:
        """Calcula tasa de éxito."""
        total = self.stored + self.rejected + self.dropped
        if total == 0:
            return 1.0
        return self.stored / total
