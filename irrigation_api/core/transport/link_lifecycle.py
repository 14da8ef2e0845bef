"""Registro de transiciones del enlace MQTT.

Cada transición deja un log en ``system_logs`` y empuja ``newSystemLog`` +
``connectionStatus`` a los observadores. Fallos de persistencia aquí solo
se registran localmente: el enlace sigue reintentando igual.
"""

from __future__ import annotations

import logging
from typing import Optional

import orjson

from ...metrics import MQTT_CONNECTED
from ..domain.events import ConnectionStatusEvent, EventSink, NewSystemLogEvent
from ..domain.models import LogKind

logger = logging.getLogger(__name__)


class LinkLifecycle:

    def __init__(self, store, sink: EventSink, broker: str):
        self._store = store
        self._sink = sink
        self._broker = broker

    def on_status(self, connected: bool, reason: Optional[str] = None) -> None:
        MQTT_CONNECTED.set(1 if connected else 0)

        if connected:
            kind, message = LogKind.INFO, "MQTT connection established"
            metadata = {"broker": self._broker}
        elif reason is None:
            kind, message = LogKind.INFO, "MQTT connection closed"
            metadata = {"broker": self._broker}
        else:
            kind, message = LogKind.ERROR, "MQTT connection error"
            metadata = {"broker": self._broker, "error": reason}

        try:
            log = self._store.create_log(kind, message, orjson.dumps(metadata).decode("utf-8"))
        except Exception as e:
            logger.error("[MQTT] Could not record link transition (%s): %s", message, e)
            log = None

        try:
            if log is not None:
                self._sink.publish(NewSystemLogEvent(log))
            self._sink.publish(ConnectionStatusEvent(mqtt=connected))
        except Exception as e:
            logger.error("[MQTT] Fan-out of link status failed: %s", e)
