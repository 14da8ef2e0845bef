"""Generador de telemetría de prueba.

Fuente alternativa para cuando no hay controlador físico. Simula el
comportamiento del campo (la humedad baja con el tiempo y sube con la
bomba encendida) y decide la bomba según la política vigente, igual que
haría el firmware. Los payloads entran por el mismo contrato de ingesta
que MQTT, así que alertas y logs de bomba salen del ``MessageIngestor``.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import Any, Callable, Optional

from ..domain.models import PumpSetting, SystemMode
from ..domain.policy import PolicyReader

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0

BASE_TEMPERATURE = 25.0
TEMPERATURE_SPREAD = 8.0  # ±4°C
MIN_MOISTURE = 10
MAX_MOISTURE = 80


class SampleProducer:
    """Produce un payload de telemetría cada ``interval_seconds``."""

    def __init__(
        self,
        submit: Callable[[dict], Any],
        store,
        policy: PolicyReader,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        rng: Optional[random.Random] = None,
    ):
        self._submit = submit
        self._store = store
        self._policy = policy
        self._interval = float(interval_seconds)
        self._rng = rng or random.Random()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._produced = 0

    def start(self) -> bool:
        """Arranca el generador. Devuelve False si ya estaba corriendo."""
        with self._lock:
            if self.is_running:
                return False
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run,
                daemon=True,
                name="sample-producer",
            )
            self._thread.start()
        logger.info("[SAMPLE] Started interval=%.1fs", self._interval)
        return True

    def stop(self) -> None:
        with self._lock:
            self._stop_event.set()
            if self._thread is not None:
                self._thread.join(timeout=5.0)
                self._thread = None
        logger.info("[SAMPLE] Stopped produced=%d", self._produced)

    def _run(self) -> None:
        self.tick()
        while not self._stop_event.wait(self._interval):
            self.tick()

    def tick(self) -> bool:
        """Genera y entrega una muestra; nunca lanza."""
        try:
            payload = self.generate()
            self._submit(payload)
            self._produced += 1
            logger.info(
                "[SAMPLE] Generated T=%.1f M=%d%% P=%s",
                payload["temperature"],
                payload["soilMoisture"],
                payload["pumpState"],
            )
            return True
        except Exception as e:
            logger.error("[SAMPLE] Error generating sample data: %s", e)
            return False

    def generate(self) -> dict:
        """Construye el siguiente payload a partir de la última lectura."""
        policy = self._policy.current()

        temperature = round(BASE_TEMPERATURE + (self._rng.random() - 0.5) * TEMPERATURE_SPREAD, 1)

        last = self._store.get_latest_reading()
        if last is not None:
            moisture = max(MIN_MOISTURE, last.soil_moisture - (self._rng.random() * 3 + 1))
            if last.pump_on:
                moisture = min(MAX_MOISTURE, moisture + self._rng.random() * 8 + 5)
        else:
            moisture = self._rng.randint(30, 69)
        soil_moisture = int(round(moisture))

        if policy.mode is SystemMode.AUTO:
            pump_on = soil_moisture < policy.moisture_threshold
        else:
            pump_on = policy.manual_pump_state is PumpSetting.ON

        return {
            "temperature": temperature,
            "soilMoisture": soil_moisture,
            "pumpState": "ON" if pump_on else "OFF",
        }

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def produced(self) -> int:
        return self._produced
