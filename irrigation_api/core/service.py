"""Servicio de monitoreo de riego - Punto de ensamblado.

Arquitectura:
- transport/   → Enlace MQTT + registro de transiciones
- pipeline/    → Cola de ingesta, ingestor, generador de muestras
- fanout/      → Push a observadores en vivo
- history/     → Ventanas temporales (crudo / agregado)
- control/     → Comandos hacia el controlador
- monitoring/  → Stats y estado del sistema

Todas las dependencias se inyectan en el constructor; no hay singletons
de módulo. ``from_settings`` arma el servicio real desde la configuración.
"""

from __future__ import annotations

import logging
from typing import Optional

from common.config import Settings
from common.db import get_engine

from ..infrastructure.persistence import SqlReadingStore
from .control import CommandPublisher
from .domain.policy import SettingsPolicyReader
from .fanout import LiveFanout
from .history import TimeRangeResolver
from .monitoring import HealthChecker, SystemStatus
from .pipeline import IngestionQueue, MessageIngestor, SampleProducer
from .transport import LinkLifecycle, MQTTLink

logger = logging.getLogger(__name__)


class MonitorService:
    """Ensambla los componentes del servicio.

    Componentes:
    - store: ReadingStore compartido
    - fanout: LiveFanout (observadores WebSocket)
    - ingestor + queue: ingesta serializada de telemetría
    - commands: CommandPublisher
    - history: TimeRangeResolver
    - sample_producer: generador de telemetría de prueba
    - link: MQTTLink (opcional; sin él el servicio queda solo-lectura + muestras)
    """

    def __init__(
        self,
        store,
        settings: Settings,
        link: Optional[MQTTLink] = None,
    ):
        self.settings = settings
        self.store = store
        self.link = link

        self.policy = SettingsPolicyReader(store)
        self.fanout = LiveFanout(
            store,
            link_status=self.is_link_connected,
            recent_logs=settings.fanout_recent_logs,
        )
        self.ingestor = MessageIngestor(store, self.fanout, self.policy)
        self.queue = IngestionQueue(self.ingestor, max_queue_size=settings.ingest_queue_size)
        self.commands = CommandPublisher(
            transport=self,
            store=store,
            sink=self.fanout,
            control_topic=settings.mqtt_control_topic,
        )
        self.history = TimeRangeResolver(
            store,
            row_ceiling=settings.history_row_ceiling,
            timeout_ms=settings.history_query_timeout_ms,
        )
        self.sample_producer = SampleProducer(
            submit=self.queue.enqueue_payload,
            store=store,
            policy=self.policy,
            interval_seconds=settings.sample_interval_seconds,
        )
        self.health = HealthChecker(
            store,
            link_status=self.is_link_connected,
            staleness_seconds=settings.sensor_staleness_seconds,
        )

        if link is not None:
            self.lifecycle: Optional[LinkLifecycle] = LinkLifecycle(store, self.fanout, link.broker)
            link.set_message_handler(self.queue.enqueue_message)
            link.set_status_handler(self.lifecycle.on_status)
        else:
            self.lifecycle = None

        self._running = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "MonitorService":
        store = SqlReadingStore(get_engine(settings))
        link = None
        if settings.mqtt_enabled:
            link = MQTTLink(
                broker_host=settings.mqtt_broker_host,
                broker_port=settings.mqtt_broker_port,
                username=settings.mqtt_username,
                password=settings.mqtt_password,
                client_id=settings.mqtt_client_id,
                telemetry_topic=settings.mqtt_telemetry_topic,
            )
        return cls(store, settings, link=link)

    def start(self) -> None:
        if self._running:
            return
        self.queue.start()
        if self.link is not None:
            self.link.connect()
        else:
            logger.info("[SERVICE] MQTT disabled, running without field link")
        self._running = True
        logger.info("[SERVICE] Started")

    def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        self.sample_producer.stop()
        if self.link is not None:
            self.link.disconnect()
        self.queue.stop(drain=True)
        logger.info("[SERVICE] Stopped. %s", self.ingestor.stats)

    def publish(self, topic: str, payload: str) -> bool:
        """Transporte de comandos; False si no hay enlace MQTT."""
        if self.link is None:
            return False
        return self.link.publish(topic, payload)

    def is_link_connected(self) -> bool:
        return self.link.is_connected if self.link is not None else False

    def system_status(self) -> SystemStatus:
        return self.health.get_status()

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        return {
            "running": self._running,
            "mqtt_connected": self.is_link_connected(),
            "observers": self.fanout.connection_count,
            "sample_producer": self.sample_producer.is_running,
            "queue": self.queue.metrics,
            **self.ingestor.stats.to_dict(),
        }
