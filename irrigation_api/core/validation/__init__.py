"""Validation layer - Validación de telemetría entrante."""

from .telemetry_validator import (
    TelemetryPayload,
    ValidationResult,
    decode_payload,
    validate_telemetry,
)

__all__ = ["TelemetryPayload", "ValidationResult", "decode_payload", "validate_telemetry"]
