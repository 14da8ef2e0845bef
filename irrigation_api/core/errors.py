"""Excepciones de dominio del servicio de monitoreo de riego."""

from __future__ import annotations


class IrrigationError(Exception):
    """Base de todos los errores del servicio."""


class StorageUnavailableError(IrrigationError):
    """La base de datos no respondió o rechazó la operación.

    El mensaje no incluye el detalle interno; ese queda en el log local y
    en la excepción encadenada.
    """

    def __init__(self, operation: str):
        super().__init__(f"Storage unavailable during {operation}")
        self.operation = operation


class UnknownTimeRangeError(IrrigationError, ValueError):
    """Identificador de ventana temporal fuera del conjunto soportado."""

    def __init__(self, window_id: str, valid: list[str]):
        super().__init__(f"Unknown time range '{window_id}', expected one of: {', '.join(valid)}")
        self.window_id = window_id
        self.valid = valid


class InvalidTelemetryError(IrrigationError, ValueError):
    """Payload de telemetría que no se puede decodificar o validar."""
