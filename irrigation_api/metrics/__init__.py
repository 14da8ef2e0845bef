"""Métricas Prometheus del servicio.

Se exponen en ``GET /metrics``. Solo contadores agregados, sin datos de
lecturas individuales.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

MESSAGES_TOTAL = Counter(
    "irrigation_ingest_messages_total",
    "Telemetry messages handled by the ingestor",
    ["status"],  # stored, rejected, dropped
)

INGEST_LATENCY = Histogram(
    "irrigation_ingest_processing_seconds",
    "Telemetry message processing latency",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
)

INGEST_QUEUE_DROPPED = Counter(
    "irrigation_ingest_queue_dropped_total",
    "Telemetry messages dropped because the ingestion queue was full",
)

FANOUT_DELIVERIES = Counter(
    "irrigation_fanout_deliveries_total",
    "Event envelopes offered to live observers",
    ["type"],
)

FANOUT_DROPPED_CONNECTIONS = Counter(
    "irrigation_fanout_dropped_connections_total",
    "Observer connections dropped because they were closed or too slow",
)

FANOUT_CONNECTIONS = Gauge(
    "irrigation_fanout_connections",
    "Currently registered live observer connections",
)

HISTORY_QUERIES = Counter(
    "irrigation_history_queries_total",
    "Time range queries by data source actually used",
    ["window", "source"],  # source: raw, aggregate, fallback
)

MQTT_CONNECTED = Gauge(
    "irrigation_mqtt_connected",
    "MQTT link connection status",
)

COMMANDS_TOTAL = Counter(
    "irrigation_control_commands_total",
    "Control commands sent to the field controller",
    ["published"],
)
