"""Definición de tablas (SQLAlchemy Core).

Las tablas y las vistas agregadas las provisiona un script externo
(TimescaleDB: hypertables + continuous aggregates). Aquí solo se declara
la forma que el servicio lee y escribe.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, MetaData, Table, Text

metadata = MetaData()

sensor_readings = Table(
    "sensor_readings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime, nullable=False, index=True),
    Column("temperature", Float, nullable=False),
    Column("soil_moisture", Integer, nullable=False),
    Column("pump_status", Boolean, nullable=False),
    Column("system_mode", Text, nullable=False),
)

system_logs = Table(
    "system_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime, nullable=False, index=True),
    Column("type", Text, nullable=False),
    Column("message", Text, nullable=False),
    Column("metadata", Text, nullable=True),
)

system_settings = Table(
    "system_settings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("key", Text, nullable=False, unique=True),
    Column("value", Text, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

# Continuous aggregates mantenidos por el motor, nunca escritos por el servicio.
AGGREGATE_VIEWS = frozenset({
    "sensor_readings_5m",
    "sensor_readings_15m",
    "sensor_readings_1h",
    "sensor_readings_6h",
})
