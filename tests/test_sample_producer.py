"""Tests del generador de telemetría de prueba."""

import random
import time

import pytest

from irrigation_api.core.domain.models import LogKind
from irrigation_api.core.domain.policy import SettingsPolicyReader
from irrigation_api.core.pipeline import MessageIngestor, SampleProducer


@pytest.fixture
def submitted():
    return []


@pytest.fixture
def producer(store, submitted) -> SampleProducer:
    return SampleProducer(
        submit=submitted.append,
        store=store,
        policy=SettingsPolicyReader(store),
        interval_seconds=0.05,
        rng=random.Random(42),
    )


class TestGenerate:

    def test_first_sample_without_history(self, producer):
        payload = producer.generate()

        assert 30 <= payload["soilMoisture"] <= 69
        assert 21.0 <= payload["temperature"] <= 29.0
        assert payload["pumpState"] in ("ON", "OFF")

    def test_moisture_decreases_when_pump_off(self, store, producer):
        store.add_reading(soil_moisture=60, pump_on=False)

        for _ in range(20):
            moisture = producer.generate()["soilMoisture"]
            assert 56 <= moisture <= 59

    def test_moisture_rises_when_pump_on(self, store, producer):
        store.add_reading(soil_moisture=40, pump_on=True)

        for _ in range(20):
            moisture = producer.generate()["soilMoisture"]
            assert 41 <= moisture <= 52

    def test_moisture_bounds(self, store, producer):
        store.add_reading(soil_moisture=10, pump_on=False)
        assert producer.generate()["soilMoisture"] == 10

        store.add_reading(soil_moisture=80, pump_on=True)
        assert producer.generate()["soilMoisture"] <= 80

    def test_auto_mode_follows_threshold(self, store, producer):
        store.put_setting("moisture_threshold", "50")
        store.add_reading(soil_moisture=45, pump_on=False)

        assert producer.generate()["pumpState"] == "ON"

        store.add_reading(soil_moisture=75, pump_on=False)
        assert producer.generate()["pumpState"] == "OFF"

    def test_manual_mode_follows_manual_pump_state(self, store, producer):
        store.put_setting("system_mode", "manual")
        store.put_setting("manual_pump_state", "on")
        store.add_reading(soil_moisture=75, pump_on=False)

        assert producer.generate()["pumpState"] == "ON"

        store.put_setting("manual_pump_state", "off")
        store.add_reading(soil_moisture=20, pump_on=False)
        assert producer.generate()["pumpState"] == "OFF"


class TestLifecycle:

    def test_start_is_idempotent_and_ticks_immediately(self, producer, submitted):
        assert producer.start() is True
        assert producer.start() is False
        try:
            deadline = time.time() + 2.0
            while len(submitted) < 2 and time.time() < deadline:
                time.sleep(0.01)
        finally:
            producer.stop()

        assert len(submitted) >= 2
        assert producer.is_running is False

    def test_tick_never_raises(self, store, producer):
        store.fail = True
        assert producer.tick() is False

    def test_samples_go_through_ingestion_contract(self, store, sink):
        ingestor = MessageIngestor(store, sink, SettingsPolicyReader(store))
        producer = SampleProducer(
            submit=ingestor.ingest,
            store=store,
            policy=SettingsPolicyReader(store),
            rng=random.Random(7),
        )
        store.put_setting("moisture_threshold", "90")

        assert producer.tick() is True

        assert len(store.readings) == 1
        assert len(store.logs_of(LogKind.WARNING)) == 1
        assert sink.types[0] == "sensorData"
