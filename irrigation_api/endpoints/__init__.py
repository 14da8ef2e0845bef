"""Módulo de endpoints HTTP.

Contiene todos los endpoints de la API organizados por función.
"""

from .health import router as health_router
from .readings import router as readings_router
from .logs import router as logs_router
from .settings import router as settings_router
from .status import router as status_router
from .control import router as control_router
from .sample_data import router as sample_data_router

__all__ = [
    "health_router",
    "readings_router",
    "logs_router",
    "settings_router",
    "status_router",
    "control_router",
    "sample_data_router",
]
