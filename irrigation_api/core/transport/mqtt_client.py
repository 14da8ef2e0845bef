"""Enlace MQTT con el controlador de campo.

Responsabilidades:
- Conexión al broker con reconexión automática (backoff 1s → 30s)
- Suscripción al tópico de telemetría en cada (re)conexión
- Delegación de mensajes y cambios de estado a callbacks
- Publicación de comandos de control
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import paho.mqtt.client as mqtt

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, bytes], None]
StatusCallback = Callable[[bool, Optional[str]], None]

RECONNECT_MIN_DELAY = 1
RECONNECT_MAX_DELAY = 30


class MQTTLink:
    """Cliente MQTT del servicio de riego.

    El hilo de red de paho (``loop_start``) maneja reintentos; los
    callbacks corren en ese hilo y deben ser rápidos.
    """

    def __init__(
        self,
        broker_host: str = "localhost",
        broker_port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "irrigation-api",
        telemetry_topic: str = "irigasi",
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.username = username
        self.password = password
        self.client_id = f"{client_id}-{int(time.time())}"
        self.telemetry_topic = telemetry_topic

        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._down_reported = False
        self._message_handler: Optional[MessageCallback] = None
        self._status_handler: Optional[StatusCallback] = None

    @property
    def broker(self) -> str:
        return f"mqtt://{self.broker_host}:{self.broker_port}"

    def set_message_handler(self, handler: MessageCallback) -> None:
        self._message_handler = handler

    def set_status_handler(self, handler: StatusCallback) -> None:
        self._status_handler = handler

    def connect(self) -> None:
        """Inicia la conexión en segundo plano; no espera al broker."""
        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=self.client_id,
            protocol=mqtt.MQTTv311,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        if self.username and self.password:
            self._client.username_pw_set(self.username, self.password)

        self._client.reconnect_delay_set(min_delay=RECONNECT_MIN_DELAY, max_delay=RECONNECT_MAX_DELAY)

        logger.info("[MQTT] Connecting to %s:%d", self.broker_host, self.broker_port)
        self._client.connect_async(self.broker_host, self.broker_port, keepalive=60)
        self._client.loop_start()

    def disconnect(self) -> None:
        if self._client:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except Exception as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False

    def publish(self, topic: str, payload: str) -> bool:
        """Publica un comando. False si no hay conexión o el broker lo rechaza."""
        if self._client is None or not self._connected:
            return False
        info = self._client.publish(topic, payload, qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.error("[MQTT] Publish to %s failed: %s", topic, mqtt.error_string(info.rc))
            return False
        logger.info("[MQTT] Published %r to %s", payload, topic)
        return True

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            self._connected = False
            logger.error("[MQTT] Connection failed: %s", reason_code)
            # Los reintentos del backoff no son transiciones: se reporta una vez.
            if not self._down_reported:
                self._down_reported = True
                self._notify(False, str(reason_code))
            return

        self._connected = True
        self._down_reported = False
        logger.info("[MQTT] Connected to broker %s", self.broker)
        client.subscribe(self.telemetry_topic, qos=1)
        logger.info("[MQTT] Subscribed to %s", self.telemetry_topic)
        self._notify(True, None)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        was_connected = self._connected
        self._connected = False
        if reason_code.is_failure:
            logger.warning("[MQTT] Disconnected unexpectedly (%s)", reason_code)
            reason = str(reason_code)
        else:
            logger.info("[MQTT] Disconnected")
            reason = None
        if was_connected:
            self._down_reported = True
            self._notify(False, reason)

    def _on_message(self, client, userdata, msg):
        if self._message_handler:
            self._message_handler(msg.topic, msg.payload)

    def _notify(self, connected: bool, reason: Optional[str]) -> None:
        if self._status_handler is None:
            return
        try:
            self._status_handler(connected, reason)
        except Exception as e:
            logger.error("[MQTT] Status handler failed: %s", e)

    @property
    def is_connected(self) -> bool:
        return self._connected
