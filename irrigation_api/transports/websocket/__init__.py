from .handler import WebSocketObserver, live_events

__all__ = ["WebSocketObserver", "live_events"]
