"""
Tests for thermal sensors, headroom, and sensor set summaries.
"""

import pytest

from gpupower.telemetry.thermal import (
    SHUTDOWN_MARGIN_C,
    estimate_shutdown_temperature,
    thermal_headroom_percent,
    SensorType,
    ThermalZone,
    ThermalSensor,
    ThermalSensorSet,
)


class TestHeadroom:
    """Test the throttle-to-shutdown headroom formula."""

    def test_zero_span(self):
        """Throttle equal to shutdown gives 0 without dividing by zero."""
        assert thermal_headroom_percent(70, 90, 90) == 0.0

    def test_negative_span(self):
        """Shutdown below throttle is treated as no headroom."""
        assert thermal_headroom_percent(70, 95, 90) == 0.0

    def test_mid_span(self):
        """Halfway between throttle and shutdown is 50%."""
        assert thermal_headroom_percent(88, 83, 93) == pytest.approx(50.0)

    def test_clamped_to_100(self):
        """Below the throttle point the headroom caps at 100%."""
        assert thermal_headroom_percent(45, 83, 93) == 100.0

    def test_at_or_above_shutdown(self):
        """At or above shutdown there is no headroom."""
        assert thermal_headroom_percent(93, 83, 93) == 0.0
        assert thermal_headroom_percent(99, 83, 93) == 0.0

    def test_shutdown_estimate(self):
        """Shutdown is estimated a fixed margin above throttle."""
        assert SHUTDOWN_MARGIN_C == 10
        assert estimate_shutdown_temperature(83) == 93


class TestThermalSensor:
    """Test ThermalSensor."""

    def test_estimated_shutdown(self):
        """Missing shutdown temperature is estimated."""
        sensor = ThermalSensor(current_temperature_c=88, throttle_temperature_c=83)
        assert sensor.effective_shutdown_temperature_c == 93
        assert sensor.thermal_headroom_percent == pytest.approx(50.0)

    def test_reported_shutdown(self):
        """Reported shutdown temperature is used as is."""
        sensor = ThermalSensor(current_temperature_c=90, throttle_temperature_c=80,
                               shutdown_temperature_c=100)
        assert sensor.effective_shutdown_temperature_c == 100
        assert sensor.thermal_headroom_percent == pytest.approx(50.0)

    def test_throttle_point(self):
        """At the throttle temperature, or flagged, counts as throttling."""
        assert ThermalSensor(83, 83).is_at_throttle_point
        assert ThermalSensor(60, 83, is_throttling=True).is_at_throttle_point
        assert not ThermalSensor(82, 83).is_at_throttle_point

    def test_str(self):
        """String shows type, zone, and limits."""
        sensor = ThermalSensor(88, 83, sensor_id=1)
        text = str(sensor)
        assert "Sensor 1 (GPU_CORE, CORE_PRIMARY)" in text
        assert "shutdown: 93C" in text
        assert "[OK] (50.0%)" in text


@pytest.fixture
def sensors():
    return ThermalSensorSet([
        ThermalSensor(72, 83, sensor_id=0),
        ThermalSensor(80, 95, sensor_id=1, sensor_type=SensorType.MEMORY,
                      zone=ThermalZone.HBM_ZONE_0),
        ThermalSensor(76, 95, sensor_id=2, sensor_type=SensorType.MEMORY,
                      zone=ThermalZone.HBM_ZONE_0),
        ThermalSensor(150, 90, sensor_id=3, sensor_type=SensorType.POWER_DELIVERY,
                      zone=ThermalZone.BACK, is_valid=False),
    ])


class TestThermalSensorSet:
    """Test ThermalSensorSet summaries."""

    def test_primary(self, sensors):
        """First sensor is the primary."""
        assert sensors.primary.sensor_id == 0
        assert len(sensors) == 4

    def test_empty(self):
        """Empty set has no primary and zeroed statistics."""
        empty = ThermalSensorSet()
        assert empty.primary is None
        assert empty.hottest_temperature_c == 0
        assert empty.average_temperature_c == 0.0
        assert empty.zone_statuses() == []

    def test_statistics_ignore_invalid(self, sensors):
        """Invalid sensors do not count toward temperatures."""
        assert sensors.hottest_temperature_c == 80
        assert sensors.average_temperature_c == pytest.approx(76.0)

    def test_filters(self, sensors):
        """Filter by type and zone."""
        assert len(sensors.sensors_by_type(SensorType.MEMORY)) == 2
        assert len(sensors.sensors_in_zone(ThermalZone.BACK)) == 1

    def test_zone_statuses(self, sensors):
        """Per-zone aggregates over valid sensors, in order of appearance."""
        statuses = sensors.zone_statuses()
        assert [s.zone for s in statuses] == [ThermalZone.CORE_PRIMARY, ThermalZone.HBM_ZONE_0]

        hbm = statuses[1]
        assert hbm.peak_temperature_c == 80
        assert hbm.average_temperature_c == pytest.approx(78.0)
        assert hbm.sensor_count == 2
        assert not hbm.is_any_throttling

    def test_needs_intervention(self, sensors):
        """Average above 75 needs intervention."""
        assert sensors.needs_thermal_intervention
        assert not ThermalSensorSet([ThermalSensor(60, 83)]).needs_thermal_intervention

    def test_throttling_count(self):
        """Sensors reporting throttling are counted."""
        sensor_set = ThermalSensorSet([
            ThermalSensor(90, 83, is_throttling=True),
            ThermalSensor(70, 83),
        ])
        assert sensor_set.is_any_throttling
        assert sensor_set.throttling_count == 1


class TestThermalHealthSummary:
    """Test the thermal health ladder."""

    def _summary(self, temperature, throttling=False):
        return ThermalSensorSet([
            ThermalSensor(temperature, 83, is_throttling=throttling),
        ]).thermal_health_summary

    def test_ladder(self):
        """Each rung of the ladder."""
        assert self._summary(96, True) == "CRITICAL: Thermal emergency - shutdown imminent"
        assert self._summary(86, True) == "CRITICAL: Thermal throttling active"
        assert self._summary(86) == "WARNING: Approaching throttle threshold"
        assert self._summary(78) == "CAUTION: High temperature zone"
        assert self._summary(60) == "HEALTHY: All sensors nominal"

    def test_throttling_below_85(self):
        """Throttling below 85C falls through to the temperature rungs."""
        assert self._summary(70, True) == "HEALTHY: All sensors nominal"

    def test_report(self, sensors):
        """Report includes peak, counts, and health."""
        text = str(sensors)
        assert "Peak: 80C" in text
        assert "Sensors: 4 active, 0 throttling" in text
        assert "Health: CAUTION: High temperature zone" in text
