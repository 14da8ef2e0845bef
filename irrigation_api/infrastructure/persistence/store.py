"""Store de lecturas, logs y settings sobre PostgreSQL/TimescaleDB.

``ReadingStore`` es la interfaz estrecha que usa el core; ``SqlReadingStore``
la implementa con SQLAlchemy. Todas las conexiones se abren con context
manager, así que se liberan al pool en éxito, error o timeout.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Mapping, Optional, Protocol

from sqlalchemy import Boolean, DateTime, Float, Integer, bindparam, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from ...core.domain.models import (
    AggregatedBucket,
    LogEntry,
    LogKind,
    Reading,
    Setting,
    SystemMode,
    utcnow,
)
from ...core.errors import StorageUnavailableError
from .tables import AGGREGATE_VIEWS, sensor_readings, system_logs, system_settings

logger = logging.getLogger(__name__)


class ReadingStore(Protocol):
    """Operaciones de persistencia que necesita el core.

    Las consultas de lecturas devuelven orden descendente por timestamp.
    Cualquier fallo del motor se reporta como ``StorageUnavailableError``.
    """

    def create_reading(
        self, *, temperature: float, soil_moisture: int, pump_on: bool, mode: SystemMode
    ) -> Reading: ...

    def get_latest_reading(self) -> Optional[Reading]: ...

    def get_recent_readings(self, limit: int = 100) -> List[Reading]: ...

    def get_readings_since(
        self, since: datetime, *, timeout_ms: Optional[int] = None
    ) -> List[Reading]: ...

    def get_aggregated_buckets(
        self, view: str, since: datetime, *, limit: int, timeout_ms: Optional[int] = None
    ) -> List[AggregatedBucket]: ...

    def create_log(
        self, kind: LogKind, message: str, metadata: Optional[str] = None
    ) -> LogEntry: ...

    def get_recent_logs(self, limit: int = 50) -> List[LogEntry]: ...

    def get_setting(self, key: str) -> Optional[Setting]: ...

    def get_settings(self, keys: List[str]) -> Mapping[str, Setting]: ...

    def set_settings(self, values: Mapping[str, str]) -> List[Setting]: ...

    def ping(self) -> bool: ...


def _parse_mode(value: str) -> SystemMode:
    try:
        return SystemMode(value)
    except ValueError:
        return SystemMode.AUTO


def _parse_kind(value: str) -> LogKind:
    try:
        return LogKind(value)
    except ValueError:
        return LogKind.INFO


def _row_to_reading(row) -> Reading:
    return Reading(
        id=int(row["id"]),
        timestamp=row["timestamp"],
        temperature=float(row["temperature"]),
        soil_moisture=int(row["soil_moisture"]),
        pump_on=bool(row["pump_status"]),
        mode=_parse_mode(row["system_mode"]),
    )


def _row_to_log(row) -> LogEntry:
    return LogEntry(
        id=int(row["id"]),
        timestamp=row["timestamp"],
        kind=_parse_kind(row["type"]),
        message=str(row["message"]),
        metadata=row["metadata"],
    )


def _row_to_setting(row) -> Setting:
    return Setting(key=str(row["key"]), value=str(row["value"]), updated_at=row["updated_at"])


def _row_to_bucket(row) -> AggregatedBucket:
    return AggregatedBucket(
        bucket_start=row["bucket"],
        avg_temperature=float(row["avg_temperature"]),
        min_temperature=float(row["min_temperature"]),
        max_temperature=float(row["max_temperature"]),
        avg_soil_moisture=float(row["avg_soil_moisture"]),
        min_soil_moisture=int(row["min_soil_moisture"]),
        max_soil_moisture=int(row["max_soil_moisture"]),
        reading_count=int(row["reading_count"]),
        pump_was_active=bool(row["pump_was_active"]),
    )


class SqlReadingStore:
    """Implementación SQLAlchemy del ``ReadingStore``.

    Funciona sobre PostgreSQL (producción) y SQLite (tests). Los timestamps
    los asigna el servicio con ``clock`` para no depender de ``now()`` del
    motor.
    """

    def __init__(self, engine: Engine, clock: Callable[[], datetime] = utcnow):
        self._engine = engine
        self._clock = clock

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def _connection(
        self,
        operation: str,
        *,
        write: bool = False,
        timeout_ms: Optional[int] = None,
    ) -> Iterator[Connection]:
        try:
            ctx = self._engine.begin() if write else self._engine.connect()
            with ctx as conn:
                if timeout_ms and conn.dialect.name == "postgresql":
                    # SET LOCAL no acepta bind params; el valor es un int validado.
                    conn.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
                yield conn
        except SQLAlchemyError as e:
            logger.error("[DB] %s failed: %s", operation, e)
            raise StorageUnavailableError(operation) from e

    # ------------------------------------------------------------------
    # Lecturas
    # ------------------------------------------------------------------

    def create_reading(
        self, *, temperature: float, soil_moisture: int, pump_on: bool, mode: SystemMode
    ) -> Reading:
        stmt = (
            sensor_readings.insert()
            .values(
                timestamp=self._clock(),
                temperature=float(temperature),
                soil_moisture=int(soil_moisture),
                pump_status=bool(pump_on),
                system_mode=mode.value,
            )
            .returning(*sensor_readings.c)
        )
        with self._connection("create_reading", write=True) as conn:
            row = conn.execute(stmt).mappings().one()
        return _row_to_reading(row)

    def get_latest_reading(self) -> Optional[Reading]:
        stmt = (
            select(sensor_readings)
            .order_by(sensor_readings.c.timestamp.desc(), sensor_readings.c.id.desc())
            .limit(1)
        )
        with self._connection("get_latest_reading") as conn:
            row = conn.execute(stmt).mappings().first()
        return _row_to_reading(row) if row else None

    def get_recent_readings(self, limit: int = 100) -> List[Reading]:
        stmt = (
            select(sensor_readings)
            .order_by(sensor_readings.c.timestamp.desc(), sensor_readings.c.id.desc())
            .limit(int(limit))
        )
        with self._connection("get_recent_readings") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_row_to_reading(r) for r in rows]

    def get_readings_since(
        self, since: datetime, *, timeout_ms: Optional[int] = None
    ) -> List[Reading]:
        stmt = (
            select(sensor_readings)
            .where(sensor_readings.c.timestamp >= since)
            .order_by(sensor_readings.c.timestamp.desc(), sensor_readings.c.id.desc())
        )
        with self._connection("get_readings_since", timeout_ms=timeout_ms) as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_row_to_reading(r) for r in rows]

    def get_aggregated_buckets(
        self, view: str, since: datetime, *, limit: int, timeout_ms: Optional[int] = None
    ) -> List[AggregatedBucket]:
        if view not in AGGREGATE_VIEWS:
            raise ValueError(f"Unknown aggregate view: {view}")

        stmt = (
            text(
                f"""
                SELECT
                  bucket,
                  avg_temperature,
                  min_temperature,
                  max_temperature,
                  avg_soil_moisture,
                  min_soil_moisture,
                  max_soil_moisture,
                  reading_count,
                  pump_was_active
                FROM {view}
                WHERE bucket >= :since
                ORDER BY bucket DESC
                LIMIT :limit
                """
            )
            .bindparams(bindparam("since", type_=DateTime), bindparam("limit", type_=Integer))
            .columns(
                bucket=DateTime,
                avg_temperature=Float,
                min_temperature=Float,
                max_temperature=Float,
                avg_soil_moisture=Float,
                min_soil_moisture=Integer,
                max_soil_moisture=Integer,
                reading_count=Integer,
                pump_was_active=Boolean,
            )
        )
        with self._connection(f"aggregate:{view}", timeout_ms=timeout_ms) as conn:
            rows = conn.execute(stmt, {"since": since, "limit": int(limit)}).mappings().all()
        return [_row_to_bucket(r) for r in rows]

    # ------------------------------------------------------------------
    # Logs de sistema
    # ------------------------------------------------------------------

    def create_log(
        self, kind: LogKind, message: str, metadata: Optional[str] = None
    ) -> LogEntry:
        stmt = (
            system_logs.insert()
            .values(timestamp=self._clock(), type=kind.value, message=message, metadata=metadata)
            .returning(*system_logs.c)
        )
        with self._connection("create_log", write=True) as conn:
            row = conn.execute(stmt).mappings().one()
        return _row_to_log(row)

    def get_recent_logs(self, limit: int = 50) -> List[LogEntry]:
        stmt = (
            select(system_logs)
            .order_by(system_logs.c.timestamp.desc(), system_logs.c.id.desc())
            .limit(int(limit))
        )
        with self._connection("get_recent_logs") as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_row_to_log(r) for r in rows]

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def get_setting(self, key: str) -> Optional[Setting]:
        stmt = select(system_settings).where(system_settings.c.key == key)
        with self._connection("get_setting") as conn:
            row = conn.execute(stmt).mappings().first()
        return _row_to_setting(row) if row else None

    def get_settings(self, keys: List[str]) -> Mapping[str, Setting]:
        stmt = select(system_settings).where(system_settings.c.key.in_(list(keys)))
        with self._connection("get_settings") as conn:
            rows = conn.execute(stmt).mappings().all()
        return {str(r["key"]): _row_to_setting(r) for r in rows}

    def set_settings(self, values: Mapping[str, str]) -> List[Setting]:
        """Upsert de varias claves en una sola transacción (last-write-wins)."""
        if not values:
            return []

        updated_at = self._clock()
        saved: List[Setting] = []
        with self._connection("set_settings", write=True) as conn:
            insert = self._insert_for(conn)
            for key, value in values.items():
                stmt = insert(system_settings).values(key=key, value=str(value), updated_at=updated_at)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[system_settings.c.key],
                    set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
                ).returning(*system_settings.c)
                saved.append(_row_to_setting(conn.execute(stmt).mappings().one()))
        return saved

    @staticmethod
    def _insert_for(conn: Connection):
        if conn.dialect.name == "sqlite":
            return sqlite.insert
        return postgresql.insert

    # ------------------------------------------------------------------
    # Salud
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("[DB] Ping failed: %s", type(e).__name__)
            return False
