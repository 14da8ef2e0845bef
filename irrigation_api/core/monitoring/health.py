"""Health checks del sistema."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..domain.models import Reading, isoformat_utc, utcnow

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_SECONDS = 300


@dataclass
class SystemStatus:
    """Estado visible del sistema (enlace, sensores, BD)."""
    mqtt_connected: bool
    sensors_active: bool
    db_connected: bool
    last_reading: Optional[Reading] = None

    @property
    def healthy(self) -> bool:
        return self.db_connected

    def to_dict(self) -> dict:
        return {
            "mqtt": "connected" if self.mqtt_connected else "disconnected",
            "sensors": "active" if self.sensors_active else "inactive",
            "database": "connected" if self.db_connected else "disconnected",
            "lastReading": isoformat_utc(self.last_reading.timestamp) if self.last_reading else None,
        }


def sensors_active(
    latest: Optional[Reading],
    now: datetime,
    staleness: timedelta = timedelta(seconds=DEFAULT_STALENESS_SECONDS),
) -> bool:
    """Los sensores cuentan como activos si la última lectura es reciente."""
    if latest is None:
        return False
    return now - latest.timestamp <= staleness


class HealthChecker:
    """Verifica el estado de salud del sistema."""

    def __init__(
        self,
        store,
        link_status: Callable[[], bool],
        staleness_seconds: int = DEFAULT_STALENESS_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._link_status = link_status
        self._staleness = timedelta(seconds=staleness_seconds)
        self._clock = clock

    def check_database(self) -> bool:
        return self._store.ping()

    def get_status(self) -> SystemStatus:
        db_ok = self.check_database()

        latest: Optional[Reading] = None
        if db_ok:
            try:
                latest = self._store.get_latest_reading()
            except Exception as e:
                logger.warning("[HEALTH] Could not read latest reading: %s", e)
                db_ok = False

        return SystemStatus(
            mqtt_connected=bool(self._link_status()),
            sensors_active=sensors_active(latest, self._clock(), self._staleness),
            db_connected=db_ok,
            last_reading=latest,
        )
