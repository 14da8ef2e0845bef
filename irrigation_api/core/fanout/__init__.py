"""Fan-out layer - Push de eventos a observadores en vivo."""

from .live_fanout import LiveFanout, Observer

__all__ = ["LiveFanout", "Observer"]
