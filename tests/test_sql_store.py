"""Tests del store SQLAlchemy sobre SQLite en memoria."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    Table,
    create_engine,
)
from sqlalchemy.pool import StaticPool

from conftest import FakeClock
from irrigation_api.core.domain.models import LogKind, SystemMode
from irrigation_api.core.errors import StorageUnavailableError
from irrigation_api.infrastructure.persistence import SqlReadingStore, metadata

START = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(engine) -> SqlReadingStore:
    return SqlReadingStore(engine, clock=FakeClock(START, timedelta(minutes=1)))


def _create_aggregate(engine, name: str, buckets):
    agg_metadata = MetaData()
    table = Table(
        name,
        agg_metadata,
        Column("bucket", DateTime, primary_key=True),
        Column("avg_temperature", Float),
        Column("min_temperature", Float),
        Column("max_temperature", Float),
        Column("avg_soil_moisture", Float),
        Column("min_soil_moisture", Integer),
        Column("max_soil_moisture", Integer),
        Column("reading_count", Integer),
        Column("pump_was_active", Boolean),
    )
    agg_metadata.create_all(engine)
    with engine.begin() as conn:
        for bucket in buckets:
            conn.execute(
                table.insert().values(
                    bucket=bucket,
                    avg_temperature=25.5,
                    min_temperature=24.0,
                    max_temperature=27.0,
                    avg_soil_moisture=48.2,
                    min_soil_moisture=40,
                    max_soil_moisture=55,
                    reading_count=15,
                    pump_was_active=True,
                )
            )


class TestReadings:

    def test_create_and_latest(self, sql_store):
        assert sql_store.get_latest_reading() is None

        first = sql_store.create_reading(
            temperature=26.4, soil_moisture=38, pump_on=True, mode=SystemMode.AUTO
        )
        second = sql_store.create_reading(
            temperature=25.0, soil_moisture=40, pump_on=False, mode=SystemMode.MANUAL
        )

        assert first.id < second.id
        assert first.timestamp == START
        latest = sql_store.get_latest_reading()
        assert latest == second
        assert latest.mode is SystemMode.MANUAL

    def test_recent_and_since_descending(self, sql_store):
        for moisture in range(40, 45):
            sql_store.create_reading(
                temperature=25.0, soil_moisture=moisture, pump_on=False, mode=SystemMode.AUTO
            )

        recent = sql_store.get_recent_readings(3)
        assert [r.soil_moisture for r in recent] == [44, 43, 42]

        since = sql_store.get_readings_since(START + timedelta(minutes=2), timeout_ms=1000)
        assert [r.soil_moisture for r in since] == [44, 43, 42]


class TestAggregates:

    def test_buckets_since_with_limit(self, engine, sql_store):
        _create_aggregate(
            engine,
            "sensor_readings_15m",
            [START - timedelta(minutes=15 * i) for i in range(6)],
        )

        buckets = sql_store.get_aggregated_buckets(
            "sensor_readings_15m", START - timedelta(hours=1), limit=2
        )

        assert [b.bucket_start for b in buckets] == [START, START - timedelta(minutes=15)]
        assert buckets[0].reading_count == 15
        assert buckets[0].pump_was_active is True
        assert buckets[0].min_soil_moisture == 40

    def test_missing_view_raises_storage_error(self, sql_store):
        with pytest.raises(StorageUnavailableError):
            sql_store.get_aggregated_buckets("sensor_readings_6h", START, limit=10)

    def test_unknown_view_rejected(self, sql_store):
        with pytest.raises(ValueError):
            sql_store.get_aggregated_buckets("users; DROP TABLE x", START, limit=10)


class TestLogsAndSettings:

    def test_logs_round_trip(self, sql_store):
        sql_store.create_log(LogKind.INFO, "first")
        sql_store.create_log(LogKind.PUMP_ACTION, "Pump ON", '{"newState": "ON"}')

        logs = sql_store.get_recent_logs(10)

        assert [log.message for log in logs] == ["Pump ON", "first"]
        assert logs[0].kind is LogKind.PUMP_ACTION
        assert logs[0].metadata == '{"newState": "ON"}'
        assert logs[1].metadata is None

    def test_set_settings_upserts(self, sql_store):
        sql_store.set_settings({"system_mode": "manual", "moisture_threshold": "40"})
        saved = sql_store.set_settings({"system_mode": "auto"})

        assert [s.key for s in saved] == ["system_mode"]
        assert sql_store.get_setting("system_mode").value == "auto"
        assert sql_store.get_setting("moisture_threshold").value == "40"
        assert sql_store.get_setting("missing") is None

        settings = sql_store.get_settings(["system_mode", "moisture_threshold", "manual_pump_state"])
        assert set(settings) == {"system_mode", "moisture_threshold"}

    def test_settings_updated_at_from_service_clock(self, sql_store):
        first = sql_store.set_settings({"system_mode": "manual"})[0]
        second = sql_store.set_settings({"system_mode": "auto"})[0]

        assert second.updated_at > first.updated_at


class TestFailures:

    def test_ping(self, sql_store, engine):
        assert sql_store.ping() is True

    def test_missing_tables_wrapped(self):
        engine = create_engine("sqlite://", poolclass=StaticPool)
        store = SqlReadingStore(engine)

        with pytest.raises(StorageUnavailableError) as exc:
            store.get_latest_reading()
        assert exc.value.operation == "get_latest_reading"
