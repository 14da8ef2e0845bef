from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env en la raíz del repo; las variables reales del entorno tienen prioridad.
    repo_root = Path(__file__).resolve().parents[1]
    return str(repo_root / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str
    db_pool_size: int
    db_max_overflow: int

    mqtt_enabled: bool
    mqtt_broker_host: str
    mqtt_broker_port: int
    mqtt_username: Optional[str]
    mqtt_password: Optional[str]
    mqtt_client_id: str
    mqtt_telemetry_topic: str
    mqtt_control_topic: str

    ingest_queue_size: int
    fanout_recent_logs: int
    fanout_queue_size: int
    history_row_ceiling: int
    history_query_timeout_ms: int
    sample_interval_seconds: float
    sensor_staleness_seconds: int

    log_level: str


def _database_url() -> str:
    db_url = os.getenv("DATABASE_URL")
    if db_url:
        return db_url

    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "5432")
    db_user = os.getenv("DB_USER", "postgres")
    db_password = os.getenv("DB_PASSWORD", "")
    db_name = os.getenv("DB_NAME", "irrigation")
    return f"postgresql+psycopg2://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("IRRIGATION_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    return Settings(
        database_url=_database_url(),
        db_pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
        db_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
        mqtt_enabled=_env_bool("MQTT_ENABLED", "true"),
        mqtt_broker_host=os.getenv("MQTT_BROKER_HOST", "localhost"),
        mqtt_broker_port=int(os.getenv("MQTT_BROKER_PORT", "1883")),
        mqtt_username=os.getenv("MQTT_USERNAME") or None,
        mqtt_password=os.getenv("MQTT_PASSWORD") or None,
        mqtt_client_id=os.getenv("MQTT_CLIENT_ID", "irrigation-dashboard"),
        mqtt_telemetry_topic=os.getenv("MQTT_TELEMETRY_TOPIC", "irigasi"),
        mqtt_control_topic=os.getenv("MQTT_CONTROL_TOPIC", "irigasi/kontrol"),
        ingest_queue_size=int(os.getenv("INGEST_QUEUE_SIZE", "1000")),
        fanout_recent_logs=int(os.getenv("FANOUT_RECENT_LOGS", "10")),
        fanout_queue_size=int(os.getenv("FANOUT_QUEUE_SIZE", "100")),
        history_row_ceiling=int(os.getenv("HISTORY_ROW_CEILING", "1000")),
        history_query_timeout_ms=int(os.getenv("HISTORY_QUERY_TIMEOUT_MS", "10000")),
        sample_interval_seconds=float(os.getenv("SAMPLE_INTERVAL_SECONDS", "30")),
        sensor_staleness_seconds=int(os.getenv("SENSOR_STALENESS_SECONDS", "300")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
