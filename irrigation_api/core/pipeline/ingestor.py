"""Pipeline de ingesta de telemetría.

Pipeline por mensaje:
1. Decodificación + validación (mensaje inválido → log ``error``)
2. Lectura de la política vigente (modo, umbral)
3. Captura de la lectura previa + inserción de la nueva
4. Umbral de humedad → log ``warning`` + evento ``alert``
5. Cambio de estado de bomba → log ``pump_action``
6. Fan-out: ``sensorData``, ``alert`` y un ``newSystemLog`` por log creado

Ninguna excepción sale de ``handle``/``ingest``: un mensaje que falla se
descarta con diagnóstico local y la ingesta continúa con el siguiente.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import orjson

from ...metrics import INGEST_LATENCY, MESSAGES_TOTAL
from ..domain.events import AlertEvent, EventSink, FanoutEvent, NewSystemLogEvent, SensorDataEvent
from ..domain.models import LogEntry, LogKind, Reading
from ..domain.policy import CurrentPolicy, PolicyReader
from ..errors import InvalidTelemetryError
from ..monitoring.stats import Stats
from ..validation.telemetry_validator import TelemetryPayload, decode_payload, validate_telemetry

logger = logging.getLogger(__name__)

LOW_MOISTURE_ALERT = "low_moisture"


class IngestionStatus(Enum):
    STORED = "stored"
    REJECTED = "rejected"
    DROPPED = "dropped"


@dataclass
class IngestionOutcome:
    """Resultado de procesar un mensaje (útil para tests y métricas)."""
    status: IngestionStatus
    reading: Optional[Reading] = None
    logs: List[LogEntry] = field(default_factory=list)
    events: List[FanoutEvent] = field(default_factory=list)
    error: Optional[str] = None


def _metadata(**values: Any) -> str:
    return orjson.dumps(values).decode("utf-8")


def low_moisture_message(moisture: int, threshold: int) -> str:
    return f"Low soil moisture detected: {moisture}% (threshold: {threshold}%)"


def pump_transition(previous: Optional[Reading], pump_on: bool) -> bool:
    """True si el estado de bomba cambió respecto a la lectura previa.

    Sin lectura previa solo cuenta como transición el encendido.
    """
    if previous is None:
        return pump_on
    return previous.pump_on != pump_on


class MessageIngestor:
    """Convierte mensajes de telemetría en lecturas, logs y eventos.

    Dependencias inyectadas:
    - store: ReadingStore (lecturas, logs, settings)
    - sink: EventSink (LiveFanout)
    - policy: PolicyReader (modo y umbral vigentes)

    El lock cubre captura-previa → inserción → comparación, así dos
    mensajes casi simultáneos nunca comparan contra la misma lectura previa.
    Si falla la escritura de un log, solo se pierde ese log y su
    ``newSystemLog``; la lectura ya guardada se publica igual.
    """

    def __init__(self, store, sink: EventSink, policy: PolicyReader):
        self._store = store
        self._sink = sink
        self._policy = policy
        self._lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self._stats = Stats()

    def handle(self, topic: str, payload: bytes) -> IngestionOutcome:
        """Punto de entrada para mensajes MQTT crudos."""
        self._count_received()

        try:
            data = decode_payload(payload)
        except InvalidTelemetryError as e:
            logger.warning("[INGEST] %s (topic=%s)", e, topic)
            return self._reject(str(e))

        return self._ingest(data)

    def ingest(self, data: Any) -> IngestionOutcome:
        """Punto de entrada para payloads ya decodificados (generador de muestras)."""
        self._count_received()
        return self._ingest(data)

    def _ingest(self, data: Any) -> IngestionOutcome:
        start_time = time.perf_counter()

        validation = validate_telemetry(data)
        if not validation.valid:
            return self._reject(validation.error or "Invalid payload")

        for warn in validation.warnings:
            logger.debug("[INGEST] Warning: %s", warn)

        with self._lock:
            try:
                outcome = self._process(validation.payload)
            except Exception as e:
                logger.exception("[INGEST] Message dropped: %s", e)
                self._count("dropped")
                MESSAGES_TOTAL.labels(status=IngestionStatus.DROPPED.value).inc()
                return IngestionOutcome(status=IngestionStatus.DROPPED, error=str(e))

            self._publish(outcome.events)

        stored = self._count("stored")
        MESSAGES_TOTAL.labels(status=IngestionStatus.STORED.value).inc()
        INGEST_LATENCY.observe(time.perf_counter() - start_time)

        if stored % 100 == 0:
            logger.info("[INGEST] %s", self._stats)

        return outcome

    def _process(self, payload: TelemetryPayload) -> IngestionOutcome:
        policy: CurrentPolicy = self._policy.current()

        # Hasta create_reading cualquier fallo descarta el mensaje entero.
        previous = self._store.get_latest_reading()
        reading = self._store.create_reading(
            temperature=payload.temperature,
            soil_moisture=payload.soil_moisture,
            pump_on=payload.pump_on,
            mode=policy.mode,
        )
        logger.debug(
            "[INGEST] Stored reading id=%d temperature=%.1f moisture=%d pump=%s mode=%s",
            reading.id,
            reading.temperature,
            reading.soil_moisture,
            payload.pump_state,
            policy.mode.value,
        )

        logs: List[LogEntry] = []
        alert: Optional[AlertEvent] = None

        threshold = policy.moisture_threshold
        if reading.soil_moisture < threshold:
            message = low_moisture_message(reading.soil_moisture, threshold)
            log = self._record(
                LogKind.WARNING,
                message,
                _metadata(moistureLevel=reading.soil_moisture, threshold=threshold),
            )
            if log is not None:
                logs.append(log)
            alert = AlertEvent(alert_type=LOW_MOISTURE_ALERT, message=message)
            self._count("alerts")

        if pump_transition(previous, reading.pump_on):
            new_state = "ON" if reading.pump_on else "OFF"
            previous_state = None
            if previous is not None:
                previous_state = "ON" if previous.pump_on else "OFF"
            log = self._record(
                LogKind.PUMP_ACTION,
                f"Pump {new_state}",
                _metadata(
                    previousState=previous_state,
                    newState=new_state,
                    mode=policy.mode.value,
                ),
            )
            if log is not None:
                logs.append(log)
            self._count("pump_transitions")

        events: List[FanoutEvent] = [SensorDataEvent(reading)]
        if alert is not None:
            events.append(alert)
        events.extend(NewSystemLogEvent(log) for log in logs)

        return IngestionOutcome(
            status=IngestionStatus.STORED,
            reading=reading,
            logs=logs,
            events=events,
        )

    def _record(self, kind: LogKind, message: str, metadata: str) -> Optional[LogEntry]:
        """Escribe un log derivado de una lectura ya guardada; None si falla."""
        try:
            return self._store.create_log(kind, message, metadata)
        except Exception as e:
            logger.error("[INGEST] Could not record %s log (%s): %s", kind.value, message, e)
            return None

    def _reject(self, error: str) -> IngestionOutcome:
        """Registra un mensaje inválido como log ``error`` y sigue."""
        self._count("rejected")
        MESSAGES_TOTAL.labels(status=IngestionStatus.REJECTED.value).inc()

        outcome = IngestionOutcome(status=IngestionStatus.REJECTED, error=error)
        try:
            log = self._store.create_log(
                LogKind.ERROR,
                "Failed to process sensor data",
                _metadata(error=error),
            )
        except Exception as e:
            logger.error("[INGEST] Could not record invalid message (%s): %s", error, e)
            return outcome

        outcome.logs.append(log)
        outcome.events.append(NewSystemLogEvent(log))
        self._publish(outcome.events)
        return outcome

    def _publish(self, events: List[FanoutEvent]) -> None:
        for event in events:
            try:
                self._sink.publish(event)
            except Exception as e:
                logger.error("[INGEST] Fan-out failed for %s: %s", event.type.value, e)

    def _count_received(self) -> None:
        with self._stats_lock:
            self._stats.received += 1
            self._stats.last_message_at = time.time()

    def _count(self, name: str) -> int:
        with self._stats_lock:
            value = getattr(self._stats, name) + 1
            setattr(self._stats, name, value)
            return value

    @property
    def stats(self) -> Stats:
        return self._stats
