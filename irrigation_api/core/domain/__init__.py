"""Domain layer - Modelos, eventos y política."""

from .models import (
    AggregatedBucket,
    LogEntry,
    LogKind,
    PumpSetting,
    Reading,
    Setting,
    SettingKey,
    SystemMode,
)
from .events import (
    AlertEvent,
    ConnectionStatusEvent,
    EventSink,
    EventType,
    FanoutEvent,
    NewSystemLogEvent,
    SensorDataEvent,
    SystemLogsEvent,
    encode_event,
)
from .policy import CurrentPolicy, PolicyReader, SettingsPolicyReader

__all__ = [
    "AggregatedBucket",
    "LogEntry",
    "LogKind",
    "PumpSetting",
    "Reading",
    "Setting",
    "SettingKey",
    "SystemMode",
    "AlertEvent",
    "ConnectionStatusEvent",
    "EventSink",
    "EventType",
    "FanoutEvent",
    "NewSystemLogEvent",
    "SensorDataEvent",
    "SystemLogsEvent",
    "encode_event",
    "CurrentPolicy",
    "PolicyReader",
    "SettingsPolicyReader",
]
