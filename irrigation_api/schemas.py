from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .core.control import ControlIntent
from .core.domain.models import PumpSetting, SystemMode
from .core.domain.policy import MAX_MOISTURE_THRESHOLD, MIN_MOISTURE_THRESHOLD


class ControlCommandIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mode: SystemMode
    pump_state: Optional[PumpSetting] = Field(default=None, alias="pumpState")
    moisture_threshold: Optional[int] = Field(
        default=None,
        alias="moistureThreshold",
        ge=MIN_MOISTURE_THRESHOLD,
        le=MAX_MOISTURE_THRESHOLD,
    )

    def to_intent(self) -> ControlIntent:
        return ControlIntent(
            mode=self.mode,
            pump_state=self.pump_state,
            moisture_threshold=self.moisture_threshold,
        )


class SettingOut(BaseModel):
    key: str
    value: str
    updatedAt: Optional[str] = None


class ControlResultOut(BaseModel):
    success: bool = True
    commands: List[str] = Field(default_factory=list)
    published: Dict[str, bool] = Field(default_factory=dict)
    settings: List[SettingOut] = Field(default_factory=list)


class SettingsOut(BaseModel):
    systemMode: SystemMode
    manualPumpState: PumpSetting
    moistureThreshold: int


class SystemStatusOut(BaseModel):
    mqtt: str
    sensors: str
    database: str
    lastReading: Optional[str] = None


class TimeRangeOut(BaseModel):
    id: str
    label: str
    durationMs: int


class SampleDataOut(BaseModel):
    success: bool
    message: str
    running: bool
