"""Transport layer - Enlace MQTT."""

from .link_lifecycle import LinkLifecycle
from .mqtt_client import MQTTLink

__all__ = ["LinkLifecycle", "MQTTLink"]
