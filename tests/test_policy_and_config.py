"""Tests de política vigente, estado del sistema y configuración."""

from datetime import datetime, timedelta

from common.config import get_settings
from irrigation_api.core.domain.models import PumpSetting, Setting, SystemMode
from irrigation_api.core.domain.policy import CurrentPolicy, SettingsPolicyReader, policy_from_settings
from irrigation_api.core.monitoring import HealthChecker, sensors_active

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _settings(**values):
    return {k: Setting(key=k, value=v, updated_at=NOW) for k, v in values.items()}


class TestPolicy:

    def test_defaults_when_absent(self):
        assert policy_from_settings({}) == CurrentPolicy(
            mode=SystemMode.AUTO,
            manual_pump_state=PumpSetting.OFF,
            moisture_threshold=45,
        )

    def test_stored_values(self):
        policy = policy_from_settings(
            _settings(system_mode="manual", manual_pump_state="on", moisture_threshold="60")
        )

        assert policy.mode is SystemMode.MANUAL
        assert policy.manual_pump_state is PumpSetting.ON
        assert policy.moisture_threshold == 60

    def test_corrupt_values_fall_back(self):
        policy = policy_from_settings(
            _settings(system_mode="party", manual_pump_state="??", moisture_threshold="wet")
        )
        assert policy == CurrentPolicy()

    def test_reader_uses_store(self, store):
        store.put_setting("moisture_threshold", "33")

        assert SettingsPolicyReader(store).current().moisture_threshold == 33

    def test_to_dict(self):
        assert CurrentPolicy().to_dict() == {
            "systemMode": "auto",
            "manualPumpState": "off",
            "moistureThreshold": 45,
        }


class TestSystemStatus:

    def test_sensors_active_window(self, store):
        reading = store.add_reading(timestamp=NOW - timedelta(minutes=4))

        assert sensors_active(reading, NOW) is True
        assert sensors_active(reading, NOW + timedelta(minutes=2)) is False
        assert sensors_active(None, NOW) is False

    def test_health_checker(self, store):
        store.add_reading(timestamp=NOW - timedelta(seconds=30))
        checker = HealthChecker(store, link_status=lambda: True, clock=lambda: NOW)

        status = checker.get_status()

        assert status.to_dict()["mqtt"] == "connected"
        assert status.sensors_active is True
        assert status.healthy is True


class TestConfig:

    def test_env_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("IRRIGATION_ENV_FILE", str(tmp_path / "missing.env"))
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("MQTT_ENABLED", "false")
        monkeypatch.setenv("MQTT_CONTROL_TOPIC", "farm/control")
        monkeypatch.setenv("HISTORY_ROW_CEILING", "250")

        settings = get_settings()

        assert settings.database_url == "sqlite://"
        assert settings.mqtt_enabled is False
        assert settings.mqtt_control_topic == "farm/control"
        assert settings.history_row_ceiling == 250

    def test_database_url_from_parts(self, monkeypatch, tmp_path):
        monkeypatch.setenv("IRRIGATION_ENV_FILE", str(tmp_path / "missing.env"))
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("DB_HOST", "db")
        monkeypatch.setenv("DB_USER", "irr")
        monkeypatch.setenv("DB_PASSWORD", "secret")
        monkeypatch.setenv("DB_NAME", "farm")
        monkeypatch.delenv("DB_PORT", raising=False)

        assert get_settings().database_url == "postgresql+psycopg2://irr:secret@db:5432/farm"

    def test_env_file_does_not_override_environment(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("MQTT_TELEMETRY_TOPIC=from-file\nFANOUT_RECENT_LOGS=7\n")
        monkeypatch.setenv("IRRIGATION_ENV_FILE", str(env_file))
        monkeypatch.setenv("MQTT_TELEMETRY_TOPIC", "from-env")
        monkeypatch.delenv("FANOUT_RECENT_LOGS", raising=False)

        settings = get_settings()

        assert settings.mqtt_telemetry_topic == "from-env"
        assert settings.fanout_recent_logs == 7
        monkeypatch.delenv("FANOUT_RECENT_LOGS", raising=False)
