"""WebSocket push channel for live irrigation events.

Protocol (server → client only):
1. On connect: ``sensorData`` (latest reading), ``systemLogs``,
   ``connectionStatus``
2. Afterwards: every ``sensorData``, ``alert``, ``newSystemLog`` and
   ``connectionStatus`` event as ``{"type": ..., "data": ...}``

Inbound client frames are read and ignored; they only keep the
disconnect detection alive.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Union

from fastapi import WebSocket
from starlette.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100

_CLOSE = object()
_ids = itertools.count(1)


class WebSocketObserver:
    """Adapta un WebSocket al contrato ``Observer`` del fan-out.

    ``offer`` se llama desde cualquier hilo (worker de ingesta, hilo de
    paho, threadpool de FastAPI); el envío real lo hace una tarea en el
    event loop del socket. Con la cola llena la conexión se considera
    lenta y se cierra.
    """

    def __init__(
        self,
        websocket: WebSocket,
        loop: asyncio.AbstractEventLoop,
        maxsize: int = DEFAULT_QUEUE_SIZE,
    ):
        self.name = f"ws-{next(_ids)}"
        self._websocket = websocket
        self._loop = loop
        self._queue: "asyncio.Queue[Union[str, object]]" = asyncio.Queue(maxsize=maxsize)
        self._maxsize = maxsize
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, message: str) -> bool:
        if self._closed:
            return False
        if self._queue.qsize() >= self._maxsize:
            logger.warning("[WebSocket] Outbound queue full for %s, dropping connection", self.name)
            self.close()
            return False
        try:
            self._loop.call_soon_threadsafe(self._enqueue, message)
        except RuntimeError:
            # event loop cerrado
            self._closed = True
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._loop.call_soon_threadsafe(self._push_close)
        except RuntimeError:
            logger.debug("[WebSocket] Loop already closed for %s", self.name)

    def _enqueue(self, message: str) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning("[WebSocket] Outbound queue full for %s, dropping connection", self.name)
            self._closed = True
            self._push_close()

    def _push_close(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSE)

    async def run_sender(self) -> None:
        """Envía los mensajes encolados hasta que la conexión se cierra."""
        while True:
            message = await self._queue.get()
            if message is _CLOSE:
                break
            try:
                await self._websocket.send_text(message)
            except Exception as e:
                logger.info("[WebSocket] Send to %s failed: %s", self.name, e)
                self._closed = True
                return
        try:
            await self._websocket.close()
        except Exception as e:
            # ya cerrado por el cliente
            logger.debug("[WebSocket] Close of %s skipped: %s", self.name, e)


async def live_events(websocket: WebSocket):
    """WebSocket endpoint ``/ws`` for live irrigation events."""
    service = websocket.app.state.service
    await websocket.accept()

    observer = WebSocketObserver(
        websocket,
        asyncio.get_running_loop(),
        maxsize=service.settings.fanout_queue_size,
    )
    sender = asyncio.create_task(observer.run_sender())
    logger.info("[WebSocket] Client connected: %s", observer.name)

    try:
        attached = await run_in_threadpool(service.fanout.attach, observer)
        if not attached:
            return
        while not observer.closed:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    finally:
        service.fanout.detach(observer)
        observer.close()
        try:
            await asyncio.wait_for(sender, timeout=5.0)
        except asyncio.TimeoutError:
            sender.cancel()
        logger.info("[WebSocket] Client disconnected: %s", observer.name)
