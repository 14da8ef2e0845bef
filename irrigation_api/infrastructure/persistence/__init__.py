"""Persistence layer - store de lecturas, logs y settings."""

from .store import ReadingStore, SqlReadingStore
from .tables import AGGREGATE_VIEWS, metadata

__all__ = ["ReadingStore", "SqlReadingStore", "AGGREGATE_VIEWS", "metadata"]
