"""Política vigente del sistema (modo, bomba manual, umbral de humedad).

Tanto el ingestor real como el generador de muestras leen la política a
través de ``PolicyReader``; la tabla de settings es la fuente de verdad.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Protocol

from .models import PumpSetting, Setting, SettingKey, SystemMode

logger = logging.getLogger(__name__)

DEFAULT_MOISTURE_THRESHOLD = 45
MIN_MOISTURE_THRESHOLD = 10
MAX_MOISTURE_THRESHOLD = 90


@dataclass(frozen=True)
class CurrentPolicy:
    mode: SystemMode = SystemMode.AUTO
    manual_pump_state: PumpSetting = PumpSetting.OFF
    moisture_threshold: int = DEFAULT_MOISTURE_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "systemMode": self.mode.value,
            "manualPumpState": self.manual_pump_state.value,
            "moistureThreshold": self.moisture_threshold,
        }


class PolicyReader(Protocol):
    def current(self) -> CurrentPolicy:
        ...


class SettingsSource(Protocol):
    def get_settings(self, keys: list[str]) -> Mapping[str, Setting]:
        ...


def policy_from_settings(settings: Mapping[str, Setting]) -> CurrentPolicy:
    """Construye la política; valores ausentes o corruptos usan el default."""
    defaults = CurrentPolicy()

    mode = defaults.mode
    raw_mode = settings.get(SettingKey.SYSTEM_MODE.value)
    if raw_mode is not None:
        try:
            mode = SystemMode(raw_mode.value.strip().lower())
        except ValueError:
            logger.warning("[POLICY] Invalid system_mode=%r, using %s", raw_mode.value, mode.value)

    pump = defaults.manual_pump_state
    raw_pump = settings.get(SettingKey.MANUAL_PUMP_STATE.value)
    if raw_pump is not None:
        try:
            pump = PumpSetting(raw_pump.value.strip().lower())
        except ValueError:
            logger.warning("[POLICY] Invalid manual_pump_state=%r, using %s", raw_pump.value, pump.value)

    threshold = defaults.moisture_threshold
    raw_threshold = settings.get(SettingKey.MOISTURE_THRESHOLD.value)
    if raw_threshold is not None:
        try:
            threshold = int(raw_threshold.value)
        except (TypeError, ValueError):
            logger.warning(
                "[POLICY] Invalid moisture_threshold=%r, using %d",
                raw_threshold.value,
                threshold,
            )

    return CurrentPolicy(mode=mode, manual_pump_state=pump, moisture_threshold=threshold)


class SettingsPolicyReader:
    """Lee la política desde el store en una sola consulta."""

    KEYS = [key.value for key in SettingKey]

    def __init__(self, store: SettingsSource):
        self._store = store

    def current(self) -> CurrentPolicy:
        return policy_from_settings(self._store.get_settings(self.KEYS))
