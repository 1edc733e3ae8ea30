"""
Thermal Sensors and Headroom

Per-sensor thermal readings, the headroom calculation shared with the
state monitor, and a summary over all sensors of a GPU.

Headroom is measured across the throttle-to-shutdown span:

    span      = shutdown - throttle
    remaining = shutdown - current
    headroom  = 100 * remaining / span, clamped to [0, 100]

A zero or negative span (misconfigured or missing sensor data) gives 0.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence


# Shutdown is assumed this far above the throttle point when not reported
SHUTDOWN_MARGIN_C = 10


def estimate_shutdown_temperature(throttle_temperature_c: int) -> int:
    return throttle_temperature_c + SHUTDOWN_MARGIN_C


def thermal_headroom_percent(
    current_temperature_c: float,
    throttle_temperature_c: float,
    shutdown_temperature_c: float
) -> float:
    """
    Remaining thermal margin as a percentage of the throttle-to-shutdown span.

    Returns:
        0.0 - 100.0; 0.0 when the span is not positive or the current
        temperature is at or above shutdown
    """
    span = shutdown_temperature_c - throttle_temperature_c
    if span <= 0:
        return 0.0

    remaining = shutdown_temperature_c - current_temperature_c
    if remaining <= 0:
        return 0.0

    return min(100.0, 100.0 * remaining / span)


class SensorType(Enum):
    """Types of thermal sensors found on modern GPUs."""
    UNKNOWN = 0
    GPU_CORE = 1
    MEMORY = 2
    POWER_DELIVERY = 3
    VAPOR_CHAMBER = 4
    AMBIENT = 5
    LIQUID_INLET = 6
    LIQUID_OUTLET = 7
    SKIN = 8
    INDUCTOR = 9


class ThermalZone(Enum):
    """Location of a thermal sensor on the board."""
    UNKNOWN = 0
    CORE_PRIMARY = 1
    CORE_SECONDARY = 2
    HBM_ZONE_0 = 10
    HBM_ZONE_1 = 11
    HBM_ZONE_2 = 12
    HBM_ZONE_3 = 13
    FRONT = 20
    BACK = 21
    INTERNAL = 22
    EXTERNAL = 23


@dataclass
class ThermalSensor:
    """A single thermal sensor reading."""
    current_temperature_c: int
    throttle_temperature_c: int
    shutdown_temperature_c: Optional[int] = None   # None: estimated from throttle
    sensor_id: int = 0
    sensor_type: SensorType = SensorType.GPU_CORE
    zone: ThermalZone = ThermalZone.CORE_PRIMARY
    max_recorded_temperature_c: Optional[int] = None
    is_enabled: bool = True
    is_throttling: bool = False
    is_valid: bool = True

    @property
    def effective_shutdown_temperature_c(self) -> int:
        if self.shutdown_temperature_c is not None:
            return self.shutdown_temperature_c
        return estimate_shutdown_temperature(self.throttle_temperature_c)

    @property
    def thermal_headroom_percent(self) -> float:
        return thermal_headroom_percent(
            self.current_temperature_c,
            self.throttle_temperature_c,
            self.effective_shutdown_temperature_c,
        )

    @property
    def is_at_throttle_point(self) -> bool:
        """Sensor reports throttling, or is at/above its throttle temperature."""
        return self.is_throttling or self.current_temperature_c >= self.throttle_temperature_c

    def __str__(self) -> str:
        if self.is_throttling:
            status = " [THROTTLING]"
        elif self.is_valid:
            status = f" [OK] ({self.thermal_headroom_percent:.1f}%)"
        else:
            status = " [INVALID]"
        return (f"Sensor {self.sensor_id} ({self.sensor_type.name}, {self.zone.name}): "
                f"{self.current_temperature_c}C (throttle: {self.throttle_temperature_c}C, "
                f"shutdown: {self.effective_shutdown_temperature_c}C){status}")


@dataclass
class ThermalZoneStatus:
    """Aggregate of the valid sensors in one zone."""
    zone: ThermalZone
    peak_temperature_c: int
    average_temperature_c: float
    throttle_threshold_c: int
    sensor_count: int
    is_any_throttling: bool

    def __str__(self) -> str:
        return (f"{self.zone.name}: {self.peak_temperature_c}C "
                f"avg: {self.average_temperature_c:.1f}C"
                + (" [THROTTLING]" if self.is_any_throttling else ""))


class ThermalSensorSet:
    """
    All thermal sensors of one GPU.

    Temperature statistics consider valid sensors only.
    """

    def __init__(self, sensors: Sequence[ThermalSensor] = ()):
        self.sensors: List[ThermalSensor] = list(sensors)

    def __len__(self) -> int:
        return len(self.sensors)

    @property
    def primary(self) -> Optional[ThermalSensor]:
        """First sensor, conventionally the GPU core."""
        return self.sensors[0] if self.sensors else None

    def _valid(self) -> List[ThermalSensor]:
        return [s for s in self.sensors if s.is_valid]

    @property
    def hottest_temperature_c(self) -> int:
        valid = self._valid()
        return max(s.current_temperature_c for s in valid) if valid else 0

    @property
    def average_temperature_c(self) -> float:
        valid = self._valid()
        if not valid:
            return 0.0
        return sum(s.current_temperature_c for s in valid) / len(valid)

    @property
    def is_any_throttling(self) -> bool:
        return any(s.is_throttling for s in self.sensors)

    @property
    def throttling_count(self) -> int:
        return sum(1 for s in self.sensors if s.is_throttling)

    def sensors_by_type(self, sensor_type: SensorType) -> List[ThermalSensor]:
        return [s for s in self.sensors if s.sensor_type == sensor_type]

    def sensors_in_zone(self, zone: ThermalZone) -> List[ThermalSensor]:
        return [s for s in self.sensors if s.zone == zone]

    def zone_statuses(self) -> List[ThermalZoneStatus]:
        """Per-zone aggregates, in order of first appearance."""
        by_zone: Dict[ThermalZone, List[ThermalSensor]] = {}
        for sensor in self._valid():
            by_zone.setdefault(sensor.zone, []).append(sensor)

        statuses = []
        for zone, sensors in by_zone.items():
            temps = [s.current_temperature_c for s in sensors]
            statuses.append(ThermalZoneStatus(
                zone=zone,
                peak_temperature_c=max(temps),
                average_temperature_c=sum(temps) / len(temps),
                throttle_threshold_c=min(s.throttle_temperature_c for s in sensors),
                sensor_count=len(sensors),
                is_any_throttling=any(s.is_throttling for s in sensors),
            ))
        return statuses

    @property
    def needs_thermal_intervention(self) -> bool:
        return (self.hottest_temperature_c > 85
                or self.is_any_throttling
                or self.average_temperature_c > 75)

    @property
    def thermal_health_summary(self) -> str:
        hottest = self.hottest_temperature_c
        throttling = self.is_any_throttling

        if throttling and hottest >= 95:
            return "CRITICAL: Thermal emergency - shutdown imminent"
        if throttling and hottest >= 85:
            return "CRITICAL: Thermal throttling active"
        if hottest >= 85:
            return "WARNING: Approaching throttle threshold"
        if hottest >= 75:
            return "CAUTION: High temperature zone"
        return "HEALTHY: All sensors nominal"

    def __str__(self) -> str:
        return (f"Thermal Report:\n"
                f"  Peak: {self.hottest_temperature_c}C, Avg: {self.average_temperature_c:.1f}C\n"
                f"  Sensors: {len(self.sensors)} active, {self.throttling_count} throttling\n"
                f"  Health: {self.thermal_health_summary}")
