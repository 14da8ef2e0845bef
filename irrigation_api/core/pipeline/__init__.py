"""Pipeline layer - Ingesta de telemetría."""

from .ingestor import IngestionOutcome, IngestionStatus, MessageIngestor
from .ingestion_queue import IngestionQueue
from .sample_producer import SampleProducer

__all__ = [
    "IngestionOutcome",
    "IngestionStatus",
    "MessageIngestor",
    "IngestionQueue",
    "SampleProducer",
]
