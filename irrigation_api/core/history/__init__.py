"""History layer - Consultas de histórico por ventana temporal."""

from .time_range import (
    TIME_WINDOWS,
    HistoryResult,
    HistorySource,
    TimeRangeResolver,
    TimeWindow,
    available_windows,
    get_window,
)

__all__ = [
    "TIME_WINDOWS",
    "HistoryResult",
    "HistorySource",
    "TimeRangeResolver",
    "TimeWindow",
    "available_windows",
    "get_window",
]
