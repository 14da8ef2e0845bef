"""Resolución de ventanas temporales para el histórico.

Ventanas cortas (≤ 6h) leen lecturas crudas para que los datos recién
ingeridos se vean al instante. Ventanas largas leen el continuous
aggregate cuyo ancho de bucket acota el tamaño de la respuesta. Si el
agregado falla (vista inexistente, error del motor, timeout) se vuelve
a lecturas crudas sobre el mismo horizonte sin que el llamador lo note.

Contrato de salida: filas en orden ascendente de tiempo. Las lecturas
crudas (``Reading``) y los buckets (``AggregatedBucket``) se distinguen
por sus campos; los consumidores deben aceptar ambas formas.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Union

from ...metrics import HISTORY_QUERIES
from ..domain.models import AggregatedBucket, Reading, utcnow
from ..errors import UnknownTimeRangeError

logger = logging.getLogger(__name__)

DEFAULT_ROW_CEILING = 1000
DEFAULT_TIMEOUT_MS = 10_000

HistoryRow = Union[Reading, AggregatedBucket]


class HistorySource(str, Enum):
    RAW = "raw"
    AGGREGATE = "aggregate"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class TimeWindow:
    id: str
    label: str
    duration: timedelta
    view: Optional[str] = None
    bucket: Optional[timedelta] = None

    @property
    def uses_aggregate(self) -> bool:
        return self.view is not None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "durationMs": int(self.duration.total_seconds() * 1000),
        }


TIME_WINDOWS: Dict[str, TimeWindow] = {
    w.id: w
    for w in (
        TimeWindow("5m", "5 Minutes", timedelta(minutes=5)),
        TimeWindow("15m", "15 Minutes", timedelta(minutes=15)),
        TimeWindow("30m", "30 Minutes", timedelta(minutes=30)),
        TimeWindow("1h", "1 Hour", timedelta(hours=1)),
        TimeWindow("6h", "6 Hours", timedelta(hours=6)),
        TimeWindow("12h", "12 Hours", timedelta(hours=12), "sensor_readings_5m", timedelta(minutes=5)),
        TimeWindow("24h", "24 Hours", timedelta(hours=24), "sensor_readings_15m", timedelta(minutes=15)),
        TimeWindow("7d", "7 Days", timedelta(days=7), "sensor_readings_1h", timedelta(hours=1)),
        TimeWindow("30d", "30 Days", timedelta(days=30), "sensor_readings_6h", timedelta(hours=6)),
    )
}


def available_windows() -> List[dict]:
    return [w.to_dict() for w in TIME_WINDOWS.values()]


def get_window(window_id: str) -> TimeWindow:
    window = TIME_WINDOWS.get(window_id)
    if window is None:
        raise UnknownTimeRangeError(window_id, list(TIME_WINDOWS))
    return window


@dataclass(frozen=True)
class HistoryResult:
    window: TimeWindow
    since: datetime
    source: HistorySource
    rows: List[HistoryRow]


class TimeRangeResolver:
    """Elige entre lecturas crudas y agregados para una ventana simbólica.

    Stateless: cada llamada abre y libera sus propias conexiones del pool.
    """

    def __init__(
        self,
        store,
        row_ceiling: int = DEFAULT_ROW_CEILING,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._row_ceiling = row_ceiling
        self._timeout_ms = timeout_ms
        self._clock = clock

    def resolve(self, window_id: str, now: Optional[datetime] = None) -> List[HistoryRow]:
        """Filas de la ventana en orden ascendente de tiempo."""
        return self.resolve_with_source(window_id, now=now).rows

    def resolve_with_source(
        self, window_id: str, now: Optional[datetime] = None
    ) -> HistoryResult:
        window = get_window(window_id)
        since = (now or self._clock()) - window.duration

        if window.uses_aggregate:
            try:
                buckets = self._store.get_aggregated_buckets(
                    window.view,
                    since,
                    limit=self._row_ceiling,
                    timeout_ms=self._timeout_ms,
                )
                HISTORY_QUERIES.labels(window=window.id, source=HistorySource.AGGREGATE.value).inc()
                return HistoryResult(window, since, HistorySource.AGGREGATE, _ascending(buckets))
            except Exception as e:
                logger.warning(
                    "[HISTORY] Failed to query aggregated data from %s, falling back to raw data: %s",
                    window.view,
                    e,
                )
                source = HistorySource.FALLBACK
        else:
            source = HistorySource.RAW

        readings = self._store.get_readings_since(since, timeout_ms=self._timeout_ms)
        HISTORY_QUERIES.labels(window=window.id, source=source.value).inc()
        return HistoryResult(window, since, source, _ascending(readings))


def _ascending(rows: Sequence[HistoryRow]) -> List[HistoryRow]:
    return sorted(rows, key=lambda r: r.timestamp)
