"""Cola de ingesta con un único worker.

Desacopla el callback de paho (hilo de red) de la escritura en BD: el
callback solo encola (~0.01ms) y un worker dedicado procesa los mensajes
uno a uno, en orden de llegada. Tanto MQTT como el generador de muestras
entran por aquí, así que la ingesta es un solo stream lógico.

Cola acotada: si se llena, el mensaje nuevo se descarta con warning.
"""

from __future__ import annotations

import functools
import logging
import queue
import threading
from typing import Any, Callable, Optional

from ...metrics import INGEST_QUEUE_DROPPED

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000


class IngestionQueue:
    """Queue + worker único delante de ``MessageIngestor``."""

    def __init__(self, ingestor, max_queue_size: int = DEFAULT_QUEUE_SIZE):
        self._ingestor = ingestor
        self._queue: "queue.Queue[Callable[[], Any]]" = queue.Queue(maxsize=max_queue_size)
        self._stop_event = threading.Event()
        self._worker: Optional[threading.Thread] = None

        # Metrics
        self._enqueued = 0
        self._dropped = 0
        self._processed = 0
        self._errors = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        """Arranca el worker."""
        if self._worker is not None and self._worker.is_alive():
            return
        self._stop_event.clear()
        self._worker = threading.Thread(
            target=self._worker_loop,
            daemon=True,
            name="ingest-worker",
        )
        self._worker.start()
        logger.info("[INGEST_QUEUE] Started queue_max=%d", self._queue.maxsize)

    def stop(self, drain: bool = True) -> None:
        """Detiene el worker. Con drain=True procesa antes lo pendiente."""
        if drain and self._worker is not None and self._worker.is_alive():
            self._queue.join()
        self._stop_event.set()
        if self._worker is not None:
            self._worker.join(timeout=5.0)
            self._worker = None
        logger.info("[INGEST_QUEUE] Stopped. %s", self.metrics)

    def enqueue_message(self, topic: str, payload: bytes) -> bool:
        """Encola un mensaje MQTT crudo. Devuelve False si la cola está llena."""
        return self._put(functools.partial(self._ingestor.handle, topic, payload))

    def enqueue_payload(self, data: dict) -> bool:
        """Encola un payload ya construido (generador de muestras)."""
        return self._put(functools.partial(self._ingestor.ingest, data))

    def _put(self, job: Callable[[], Any]) -> bool:
        try:
            self._queue.put_nowait(job)
            with self._lock:
                self._enqueued += 1
            return True
        except queue.Full:
            with self._lock:
                self._dropped += 1
            INGEST_QUEUE_DROPPED.inc()
            logger.warning("[INGEST_QUEUE] Queue full, message dropped")
            return False

    def _worker_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                job = self._queue.get(timeout=0.5)
            except queue.Empty:
                continue

            try:
                job()
                with self._lock:
                    self._processed += 1
            except Exception as e:
                with self._lock:
                    self._errors += 1
                logger.error("[INGEST_QUEUE] Worker error: %s", e)
            finally:
                self._queue.task_done()

    @property
    def metrics(self) -> dict:
        with self._lock:
            return {
                "queue_depth": self._queue.qsize(),
                "queue_max": self._queue.maxsize,
                "enqueued": self._enqueued,
                "dropped": self._dropped,
                "processed": self._processed,
                "errors": self._errors,
            }
