"""Fixtures y dobles de prueba compartidos.

Los dobles son deterministas: el reloj avanza un segundo por lectura de
tiempo, así el orden de timestamps es estable entre ejecuciones.
"""

from __future__ import annotations

import dataclasses
import json
import time
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional

import pytest

from common.config import Settings
from irrigation_api.core.domain.models import (
    AggregatedBucket,
    LogEntry,
    LogKind,
    Reading,
    Setting,
    SystemMode,
)
from irrigation_api.core.errors import StorageUnavailableError


# =============================================================================
# DOBLES
# =============================================================================

class FakeClock:
    """Reloj controlable: cada llamada avanza ``step``."""

    def __init__(self, start: datetime = datetime(2026, 3, 1, 12, 0, 0), step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        return value

    def peek(self) -> datetime:
        return self.now


class FakeStore:
    """``ReadingStore`` en memoria.

    - ``fail``: todas las operaciones lanzan ``StorageUnavailableError``
    - ``aggregates``: vista → buckets; una vista ausente falla como en el motor
    - ``failing_views``: vistas que fallan aunque tengan datos
    - ``failing_log_kinds``: tipos de log cuya escritura falla
    - ``read_delay``: pausa tras leer la última lectura (ventana de carrera)
    """

    def __init__(self, clock: Optional[FakeClock] = None):
        self.clock = clock or FakeClock()
        self.readings: List[Reading] = []
        self.logs: List[LogEntry] = []
        self.settings: Dict[str, Setting] = {}
        self.aggregates: Dict[str, List[AggregatedBucket]] = {}
        self.failing_views: set = set()
        self.failing_log_kinds: set = set()
        self.read_delay = 0.0
        self.fail = False
        self.raw_queries: List[datetime] = []
        self.aggregate_queries: List[tuple] = []
        self.settings_batches: List[Dict[str, str]] = []

    def _check(self, operation: str) -> None:
        if self.fail:
            raise StorageUnavailableError(operation)

    def create_reading(self, *, temperature, soil_moisture, pump_on, mode) -> Reading:
        self._check("create_reading")
        reading = Reading(
            id=len(self.readings) + 1,
            timestamp=self.clock(),
            temperature=float(temperature),
            soil_moisture=int(soil_moisture),
            pump_on=bool(pump_on),
            mode=mode,
        )
        self.readings.append(reading)
        return reading

    def add_reading(self, soil_moisture=50, pump_on=False, temperature=25.0, timestamp=None) -> Reading:
        """Inserta una lectura previa directamente (sin pipeline)."""
        reading = Reading(
            id=len(self.readings) + 1,
            timestamp=timestamp or self.clock(),
            temperature=temperature,
            soil_moisture=soil_moisture,
            pump_on=pump_on,
            mode=SystemMode.AUTO,
        )
        self.readings.append(reading)
        return reading

    def get_latest_reading(self) -> Optional[Reading]:
        self._check("get_latest_reading")
        latest = self.readings[-1] if self.readings else None
        if self.read_delay:
            time.sleep(self.read_delay)
        return latest

    def get_recent_readings(self, limit: int = 100) -> List[Reading]:
        self._check("get_recent_readings")
        return list(reversed(self.readings))[:limit]

    def get_readings_since(self, since: datetime, *, timeout_ms=None) -> List[Reading]:
        self._check("get_readings_since")
        self.raw_queries.append(since)
        return [r for r in reversed(self.readings) if r.timestamp >= since]

    def get_aggregated_buckets(self, view, since, *, limit, timeout_ms=None) -> List[AggregatedBucket]:
        self._check("get_aggregated_buckets")
        self.aggregate_queries.append((view, since, limit, timeout_ms))
        if view in self.failing_views or view not in self.aggregates:
            raise StorageUnavailableError(f"aggregate:{view}")
        rows = [b for b in self.aggregates[view] if b.bucket_start >= since]
        rows.sort(key=lambda b: b.bucket_start, reverse=True)
        return rows[:limit]

    def create_log(self, kind: LogKind, message: str, metadata: Optional[str] = None) -> LogEntry:
        self._check("create_log")
        if kind in self.failing_log_kinds:
            raise StorageUnavailableError("create_log")
        log = LogEntry(
            id=len(self.logs) + 1,
            timestamp=self.clock(),
            kind=kind,
            message=message,
            metadata=metadata,
        )
        self.logs.append(log)
        return log

    def get_recent_logs(self, limit: int = 50) -> List[LogEntry]:
        self._check("get_recent_logs")
        return list(reversed(self.logs))[:limit]

    def get_setting(self, key: str) -> Optional[Setting]:
        self._check("get_setting")
        return self.settings.get(key)

    def get_settings(self, keys) -> Mapping[str, Setting]:
        self._check("get_settings")
        return {k: self.settings[k] for k in keys if k in self.settings}

    def set_settings(self, values: Mapping[str, str]) -> List[Setting]:
        self._check("set_settings")
        self.settings_batches.append(dict(values))
        updated_at = self.clock()
        saved = []
        for key, value in values.items():
            setting = Setting(key=key, value=str(value), updated_at=updated_at)
            self.settings[key] = setting
            saved.append(setting)
        return saved

    def put_setting(self, key: str, value: str) -> None:
        self.settings[key] = Setting(key=key, value=value, updated_at=self.clock())

    def ping(self) -> bool:
        return not self.fail

    # helpers de inspección
    def logs_of(self, kind: LogKind) -> List[LogEntry]:
        return [log for log in self.logs if log.kind is kind]


class RecordingSink:
    """``EventSink`` que solo guarda los eventos publicados."""

    def __init__(self):
        self.events = []

    def publish(self, event) -> int:
        self.events.append(event)
        return 1

    @property
    def types(self) -> List[str]:
        return [e.type.value for e in self.events]


class FakeTransport:
    """Transporte de comandos: publica solo si ``connected``."""

    def __init__(self, connected: bool = True):
        self.connected = connected
        self.published: List[tuple] = []

    def publish(self, topic: str, payload: str) -> bool:
        if not self.connected:
            return False
        self.published.append((topic, payload))
        return True


class FakeObserver:
    """Observador en memoria; ``accept=False`` simula conexión cerrada."""

    def __init__(self, name: str = "obs", accept: bool = True, accept_first: Optional[int] = None):
        self.name = name
        self.accept = accept
        self.accept_first = accept_first
        self.messages: List[dict] = []

    def offer(self, message: str) -> bool:
        if not self.accept:
            return False
        if self.accept_first is not None and len(self.messages) >= self.accept_first:
            return False
        self.messages.append(json.loads(message))
        return True

    @property
    def types(self) -> List[str]:
        return [m["type"] for m in self.messages]


# =============================================================================
# FIXTURES
# =============================================================================

BASE_SETTINGS = Settings(
    database_url="sqlite://",
    db_pool_size=5,
    db_max_overflow=10,
    mqtt_enabled=False,
    mqtt_broker_host="localhost",
    mqtt_broker_port=1883,
    mqtt_username=None,
    mqtt_password=None,
    mqtt_client_id="irrigation-test",
    mqtt_telemetry_topic="irigasi",
    mqtt_control_topic="irigasi/kontrol",
    ingest_queue_size=100,
    fanout_recent_logs=10,
    fanout_queue_size=100,
    history_row_ceiling=1000,
    history_query_timeout_ms=10000,
    sample_interval_seconds=30.0,
    sensor_staleness_seconds=300,
    log_level="INFO",
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> FakeStore:
    return FakeStore(clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def settings() -> Settings:
    return dataclasses.replace(BASE_SETTINGS)
