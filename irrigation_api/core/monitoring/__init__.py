"""Monitoring layer - Métricas y observabilidad."""

from .health import HealthChecker, SystemStatus, sensors_active
from .stats import Stats

__all__ = ["HealthChecker", "Stats", "SystemStatus", "sensors_active"]
