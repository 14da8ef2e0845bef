"""Publicación de comandos de control hacia el controlador de campo.

Flujo por intención de control:
1. Construir los comandos (``AUTO``, ``MANUAL ON``, ``THRESHOLD 40``...)
2. Publicar cada uno en el tópico de control (fire-and-forget)
3. Persistir los settings en un único lote, haya o no publicado
4. Registrar un log ``info`` por comando y empujarlo como ``newSystemLog``

Un fallo de publicación nunca impide actualizar los settings; un fallo de
almacenamiento sí se propaga como ``StorageUnavailableError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

import orjson

from ...metrics import COMMANDS_TOTAL
from ..domain.events import EventSink, NewSystemLogEvent
from ..domain.models import LogEntry, LogKind, PumpSetting, Setting, SettingKey, SystemMode

logger = logging.getLogger(__name__)

THRESHOLD_COMMAND = "THRESHOLD"


class CommandTransport(Protocol):
    def publish(self, topic: str, payload: str) -> bool:
        ...


@dataclass(frozen=True)
class ControlIntent:
    mode: SystemMode
    pump_state: Optional[PumpSetting] = None
    moisture_threshold: Optional[int] = None

    def settings(self) -> Dict[str, str]:
        """Settings que esta intención actualiza."""
        values = {SettingKey.SYSTEM_MODE.value: self.mode.value}
        if self.mode is SystemMode.MANUAL and self.pump_state is not None:
            values[SettingKey.MANUAL_PUMP_STATE.value] = self.pump_state.value
        if self.moisture_threshold is not None:
            values[SettingKey.MOISTURE_THRESHOLD.value] = str(self.moisture_threshold)
        return values


@dataclass(frozen=True)
class OutboundCommand:
    payload: str
    log_message: str


@dataclass
class ControlResult:
    commands: List[str] = field(default_factory=list)
    published: Dict[str, bool] = field(default_factory=dict)
    settings: List[Setting] = field(default_factory=list)
    logs: List[LogEntry] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": True,
            "commands": list(self.commands),
            "published": dict(self.published),
            "settings": [s.to_dict() for s in self.settings],
        }


def build_commands(intent: ControlIntent) -> List[OutboundCommand]:
    mode_command = intent.mode.value.upper()
    if intent.mode is SystemMode.MANUAL and intent.pump_state is not None:
        mode_command = f"{mode_command} {intent.pump_state.value.upper()}"

    commands = [OutboundCommand(mode_command, f"Command sent: {mode_command}")]
    if intent.moisture_threshold is not None:
        commands.append(
            OutboundCommand(
                f"{THRESHOLD_COMMAND} {intent.moisture_threshold}",
                f"Moisture threshold updated: {intent.moisture_threshold}%",
            )
        )
    return commands


class CommandPublisher:
    """Aplica intenciones de control: publica, persiste y notifica."""

    def __init__(self, transport: CommandTransport, store, sink: EventSink, control_topic: str):
        self._transport = transport
        self._store = store
        self._sink = sink
        self._control_topic = control_topic

    def apply(self, intent: ControlIntent) -> ControlResult:
        commands = build_commands(intent)
        result = ControlResult(commands=[c.payload for c in commands])

        for command in commands:
            published = self._send(command.payload)
            result.published[command.payload] = published
            COMMANDS_TOTAL.labels(published=str(published).lower()).inc()

        # Los settings se guardan aunque la publicación haya fallado
        result.settings = self._store.set_settings(intent.settings())

        for command in commands:
            metadata = {
                "command": command.payload,
                "topic": self._control_topic,
                "published": result.published[command.payload],
            }
            if command.payload.startswith(THRESHOLD_COMMAND):
                metadata["threshold"] = intent.moisture_threshold
            log = self._store.create_log(
                LogKind.INFO,
                command.log_message,
                orjson.dumps(metadata).decode("utf-8"),
            )
            result.logs.append(log)
            self._notify(log)

        logger.info(
            "[CONTROL] Applied mode=%s commands=%s published=%s",
            intent.mode.value,
            result.commands,
            result.published,
        )
        return result

    def _send(self, payload: str) -> bool:
        try:
            published = bool(self._transport.publish(self._control_topic, payload))
        except Exception as e:
            logger.error("[CONTROL] Publish of %r failed: %s", payload, e)
            return False
        if not published:
            logger.warning("[CONTROL] Command %r not published (link down)", payload)
        return published

    def _notify(self, log: LogEntry) -> None:
        try:
            self._sink.publish(NewSystemLogEvent(log))
        except Exception as e:
            logger.error("[CONTROL] Fan-out failed for log %s: %s", log.id, e)
