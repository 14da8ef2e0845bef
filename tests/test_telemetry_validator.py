"""Tests del validador de telemetría."""

import pytest

from irrigation_api.core.errors import InvalidTelemetryError
from irrigation_api.core.validation import decode_payload, validate_telemetry


class TestValidPayloads:

    def test_canonical_payload(self):
        result = validate_telemetry({"temperature": 26.4, "soilMoisture": 38, "pumpState": "ON"})

        assert result.valid is True
        assert result.payload.temperature == 26.4
        assert result.payload.soil_moisture == 38
        assert result.payload.pump_on is True
        assert result.warnings == []

    def test_pump_state_case_insensitive(self):
        result = validate_telemetry({"temperature": 20, "soilMoisture": 50, "pumpState": " off "})

        assert result.valid is True
        assert result.payload.pump_state == "OFF"
        assert result.payload.pump_on is False

    def test_humidity_is_ignored(self):
        result = validate_telemetry(
            {"temperature": 20, "soilMoisture": 50, "pumpState": "ON", "humidity": 61.5}
        )
        assert result.valid is True

    @pytest.mark.parametrize("humidity", ["n/a", None, {"raw": 612}, True])
    def test_malformed_humidity_does_not_reject(self, humidity):
        result = validate_telemetry(
            {"temperature": 26.4, "soilMoisture": 50, "pumpState": "OFF", "humidity": humidity}
        )

        assert result.valid is True
        assert not hasattr(result.payload, "humidity")

    def test_integral_float_moisture_accepted(self):
        result = validate_telemetry({"temperature": 20, "soilMoisture": 38.0, "pumpState": "ON"})

        assert result.valid is True
        assert result.payload.soil_moisture == 38

    def test_legacy_names_mapped_with_warning(self):
        result = validate_telemetry({"suhu": 30.1, "tanah": 40, "pompa": "ON"})

        assert result.valid is True
        assert result.payload.temperature == 30.1
        assert len(result.warnings) == 3
        assert "Used legacy field suhu instead of temperature" in result.warnings

    def test_canonical_name_wins_over_legacy(self):
        result = validate_telemetry(
            {"temperature": 22.0, "suhu": 99.0, "soilMoisture": 40, "pumpState": "ON"}
        )
        assert result.payload.temperature == 22.0


class TestInvalidPayloads:

    @pytest.mark.parametrize("moisture", [-1, 101, 38.5, True, "wet"])
    def test_bad_moisture(self, moisture):
        result = validate_telemetry({"temperature": 20, "soilMoisture": moisture, "pumpState": "ON"})

        assert result.valid is False
        assert "soilMoisture" in result.error

    @pytest.mark.parametrize("state", ["MAYBE", 1, None])
    def test_bad_pump_state(self, state):
        result = validate_telemetry({"temperature": 20, "soilMoisture": 40, "pumpState": state})

        assert result.valid is False
        assert "pumpState" in result.error

    def test_infinite_temperature(self):
        result = validate_telemetry(
            {"temperature": float("inf"), "soilMoisture": 40, "pumpState": "ON"}
        )
        assert result.valid is False

    def test_non_object_payload(self):
        result = validate_telemetry([1, 2, 3])

        assert result.valid is False
        assert result.error == "Payload must be a JSON object"


class TestDecode:

    def test_decode_valid_json(self):
        assert decode_payload(b'{"a": 1}') == {"a": 1}

    def test_decode_invalid_json_raises(self):
        with pytest.raises(InvalidTelemetryError, match="Invalid JSON"):
            decode_payload(b"{oops")
