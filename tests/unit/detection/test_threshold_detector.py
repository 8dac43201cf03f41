"""
Tests for ThresholdDetector fixed limits.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from app.domain.reading import SensorReading
from app.enums.anomaly import AnomalyType
from app.services.detection import ThresholdDetector

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _detect(**fields):
    return ThresholdDetector().detect(SensorReading(device_id="d1", timestamp=0, **fields), now=NOW)


class TestThresholdDetector:
    def test_normal_reading_has_no_anomalies(self):
        assert _detect(temperature=22.0, battery_level=80.0, signal_strength=70.0, access_attempts=1) == []

    def test_extreme_heat(self):
        [anomaly] = _detect(temperature=85.0)
        assert anomaly.anomaly_type is AnomalyType.TEMPERATURE
        assert anomaly.value == 85.0
        assert anomaly.description == "extreme temperature: 85.00°C"
        assert anomaly.timestamp == NOW

    def test_extreme_cold(self):
        [anomaly] = _detect(temperature=-15.0)
        assert anomaly.anomaly_type is AnomalyType.TEMPERATURE

    @pytest.mark.parametrize("temperature", [50.0, -10.0, 0.0])
    def test_temperature_boundaries_do_not_trigger(self, temperature):
        assert _detect(temperature=temperature) == []

    def test_critical_battery(self):
        [anomaly] = _detect(battery_level=5.0)
        assert anomaly.anomaly_type is AnomalyType.BATTERY
        assert anomaly.description == "critical battery: 5.0%"

    def test_zero_battery_is_not_reported(self):
        assert _detect(battery_level=0.0) == []

    def test_access_attempts_value_is_int(self):
        [anomaly] = _detect(access_attempts=6)
        assert anomaly.anomaly_type is AnomalyType.ACCESS_ATTEMPTS
        assert anomaly.value == 6
        assert anomaly.value_kind == "int"

    def test_five_access_attempts_allowed(self):
        assert _detect(access_attempts=5) == []

    def test_weak_signal(self):
        [anomaly] = _detect(signal_strength=15.0)
        assert anomaly.anomaly_type is AnomalyType.SIGNAL_STRENGTH

    def test_rules_are_independent_and_ordered(self):
        anomalies = _detect(temperature=85.0, battery_level=5.0, access_attempts=9, signal_strength=10.0)
        assert [a.anomaly_type for a in anomalies] == [
            AnomalyType.TEMPERATURE,
            AnomalyType.BATTERY,
            AnomalyType.ACCESS_ATTEMPTS,
            AnomalyType.SIGNAL_STRENGTH,
        ]
