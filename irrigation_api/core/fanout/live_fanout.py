"""Fan-out de eventos a observadores en vivo.

Push-only: cada evento se serializa una vez y se ofrece a cada conexión
sin bloquear. Una conexión cerrada o lenta (cola de salida llena) se
descarta sin afectar al resto ni a la persistencia, que ya terminó.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Protocol

from ...metrics import FANOUT_CONNECTIONS, FANOUT_DELIVERIES, FANOUT_DROPPED_CONNECTIONS
from ..domain.events import (
    ConnectionStatusEvent,
    FanoutEvent,
    SensorDataEvent,
    SystemLogsEvent,
    encode_event,
)

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LOGS = 10


class Observer(Protocol):
    """Conexión de un observador.

    ``offer`` no debe bloquear; devuelve False si la conexión ya no
    acepta mensajes.
    """

    name: str

    def offer(self, message: str) -> bool:
        ...


class LiveFanout:
    """Registro de observadores + broadcast de eventos."""

    def __init__(
        self,
        store,
        link_status: Callable[[], bool],
        recent_logs: int = DEFAULT_RECENT_LOGS,
    ):
        self._store = store
        self._link_status = link_status
        self._recent_logs = recent_logs
        self._observers: List[Observer] = []
        self._lock = threading.Lock()

    def attach(self, observer: Observer) -> bool:
        """Envía el estado inicial al observador y lo registra.

        Orden: última lectura, logs recientes, estado de conexión.
        Si el snapshot falla por BD se registra igual; si la conexión
        rechaza el snapshot no se registra.

        Snapshot y registro ocurren bajo el lock de ``publish``: un evento
        publicado mientras tanto espera y llega detrás del snapshot. Lo
        publicado antes ya está persistido, así que el snapshot lo incluye.
        """
        with self._lock:
            for event in self._snapshot(observer):
                if not observer.offer(encode_event(event)):
                    logger.info("[FANOUT] Observer %s closed during snapshot", observer.name)
                    return False
            self._observers.append(observer)
            count = len(self._observers)

        FANOUT_CONNECTIONS.set(count)
        logger.info("[FANOUT] Observer connected: %s (total=%d)", observer.name, count)
        return True

    def _snapshot(self, observer: Observer) -> List[FanoutEvent]:
        snapshot: List[FanoutEvent] = []
        try:
            latest = self._store.get_latest_reading()
            if latest is not None:
                snapshot.append(SensorDataEvent(latest))
            snapshot.append(SystemLogsEvent(tuple(self._store.get_recent_logs(self._recent_logs))))
        except Exception as e:
            logger.error("[FANOUT] Error loading initial data for %s: %s", observer.name, e)
        snapshot.append(ConnectionStatusEvent(mqtt=bool(self._link_status())))
        return snapshot

    def detach(self, observer: Observer) -> None:
        with self._lock:
            if observer not in self._observers:
                return
            self._observers.remove(observer)
            count = len(self._observers)
        FANOUT_CONNECTIONS.set(count)
        logger.info("[FANOUT] Observer disconnected: %s (total=%d)", observer.name, count)

    def publish(self, event: FanoutEvent) -> int:
        """Ofrece el evento a todas las conexiones abiertas.

        Returns:
            Cantidad de conexiones que aceptaron el mensaje
        """
        message = encode_event(event)
        delivered = 0
        dead: List[Observer] = []
        with self._lock:
            for observer in self._observers:
                try:
                    accepted = observer.offer(message)
                except Exception as e:
                    logger.warning("[FANOUT] Offer to %s failed: %s", observer.name, e)
                    accepted = False
                if accepted:
                    delivered += 1
                else:
                    dead.append(observer)

        for observer in dead:
            FANOUT_DROPPED_CONNECTIONS.inc()
            self.detach(observer)

        FANOUT_DELIVERIES.labels(type=event.type.value).inc(delivered)
        return delivered

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._observers)
