"""
GPU Power State Monitoring

Rolls power, clock, thermal, and P-State readings for one GPU up into a
throttle flag, an operating mode, and a categorical health verdict.

Readings come from a TelemetrySource (the driver access layer). Each of
the four categories is refreshed independently: a GPU or driver that
does not support one category still reports the others.

Usage:
    from gpupower.telemetry.monitoring import PowerStateMonitor

    monitor = PowerStateMonitor(source)
    while True:
        if monitor.refresh():
            print(monitor.health_status)
        time.sleep(0.5)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from ..core.types import PerformanceStateId
from ..logging import TelemetryLogger, get_logger
from .snapshot import PowerTelemetrySnapshot
from .thermal import (
    ThermalSensor,
    ThermalSensorSet,
    thermal_headroom_percent,
)


KHZ_PER_MHZ = 1000

HIGH_POWER_UTILIZATION_PERCENT = 90.0
LOW_THERMAL_HEADROOM_PERCENT = 10.0


class DynamicPState(IntEnum):
    """Performance state as seen by the monitor."""
    UNKNOWN = 0
    P0 = 1          # Maximum performance (full boost)
    P1 = 2          # High performance
    P2 = 3          # Balanced
    P3 = 4          # Power saving
    P4 = 5          # Minimal power (idle)
    P5 = 6          # Deep sleep
    THROTTLED = 255


_PSTATE_MAP = {
    PerformanceStateId.P0: DynamicPState.P0,
    PerformanceStateId.P1: DynamicPState.P1,
    PerformanceStateId.P2: DynamicPState.P2,
    PerformanceStateId.P3: DynamicPState.P3,
    PerformanceStateId.P4: DynamicPState.P4,
    PerformanceStateId.P5: DynamicPState.P5,
}

_OPERATING_MODES = {
    DynamicPState.P0: "Full Performance (P0)",
    DynamicPState.P1: "High Performance (P1)",
    DynamicPState.P2: "Balanced (P2)",
    DynamicPState.P3: "Power Saving (P3)",
    DynamicPState.P4: "Minimal Power (P4)",
    DynamicPState.P5: "Sleep (P5)",
    DynamicPState.THROTTLED: "Throttled",
}


def map_performance_state(state_id: Union[PerformanceStateId, int]) -> DynamicPState:
    """Map a driver P-State id to a DynamicPState; anything past P5 is UNKNOWN."""
    try:
        return _PSTATE_MAP.get(PerformanceStateId(state_id), DynamicPState.UNKNOWN)
    except ValueError:
        return DynamicPState.UNKNOWN


# =============================================================================
# Detail records
# =============================================================================

@dataclass
class BoostClockDetails:
    """Boost clock configuration and status."""
    current_boost_clock_mhz: int = 0
    max_boost_clock_mhz: int = 0
    base_boost_clock_mhz: int = 0
    boost_offset_mhz: int = 0       # current - base
    is_throttled_by_temperature: bool = False
    is_throttled_by_power: bool = False

    def __str__(self) -> str:
        return (f"Boost Clock: {self.current_boost_clock_mhz}MHz "
                f"(max: {self.max_boost_clock_mhz}MHz, offset: {self.boost_offset_mhz:+d}MHz)"
                + (" [TEMP_THROTTLED]" if self.is_throttled_by_temperature else "")
                + (" [POWER_THROTTLED]" if self.is_throttled_by_power else ""))


@dataclass
class PowerLimitDetails:
    """Power limit status. Watt fields are None when the TDP is unknown."""
    current_power_w: Optional[float] = None
    default_tdp_w: Optional[float] = None
    active_power_limit_w: Optional[float] = None
    power_utilization_percent: float = 0.0
    is_exceeding_limit: bool = False
    is_tdp_known: bool = False

    def __str__(self) -> str:
        exceeding = " [EXCEEDING]" if self.is_exceeding_limit else ""
        if not self.is_tdp_known or self.current_power_w is None or self.active_power_limit_w is None:
            return (f"Power: {self.power_utilization_percent:.1f}% "
                    f"(TDP unknown - register a power spec){exceeding}")
        return (f"Power: {self.current_power_w:.1f}W / {self.active_power_limit_w:.1f}W "
                f"({self.power_utilization_percent:.1f}%){exceeding}")


@dataclass
class ThermalThrottleDetails:
    """Thermal throttling status and limits."""
    current_temperature_c: int = 0
    throttle_activation_temp_c: int = 0
    shutdown_temperature_c: int = 0
    is_throttling_active: bool = False
    thermal_headroom_percent: float = 0.0
    throttle_event_count: int = 0   # not-throttling -> throttling transitions

    def __str__(self) -> str:
        status = (" [THROTTLING]" if self.is_throttling_active
                  else f" [OK] ({self.thermal_headroom_percent:.1f}% headroom)")
        return (f"Temperature: {self.current_temperature_c}C "
                f"(throttle at {self.throttle_activation_temp_c}C, "
                f"shutdown at {self.shutdown_temperature_c}C){status}")


# =============================================================================
# Telemetry source boundary
# =============================================================================

@dataclass
class ClockFrequencies:
    """Graphics clock readings in kHz, as reported by the driver."""
    current_khz: Optional[int] = None
    boost_khz: Optional[int] = None
    base_khz: Optional[int] = None


class TelemetrySource(ABC):
    """
    Driver access layer for one GPU.

    Each method either returns a reading, returns None (or an empty list)
    when the category is unsupported, or raises. The monitor treats the
    last two the same way.
    """

    @abstractmethod
    def get_performance_state(self) -> Optional[Union[PerformanceStateId, DynamicPState]]:
        """Current P-State (DynamicPState.THROTTLED may be reported directly)."""
        pass

    @abstractmethod
    def get_power_snapshot(self) -> Optional[PowerTelemetrySnapshot]:
        pass

    @abstractmethod
    def get_clock_frequencies(self) -> Optional[ClockFrequencies]:
        pass

    @abstractmethod
    def get_thermal_sensors(self) -> Sequence[ThermalSensor]:
        """Thermal sensors, GPU core first."""
        pass


@dataclass
class StaticTelemetrySource(TelemetrySource):
    """
    In-memory telemetry source for replaying recorded readings.

    Any field may hold an exception instance, which is raised when that
    category is read.
    """
    performance_state: Any = None
    power_snapshot: Any = None
    clock_frequencies: Any = None
    thermal_sensors: Any = field(default_factory=list)

    @staticmethod
    def _read(value):
        if isinstance(value, Exception):
            raise value
        return value

    def get_performance_state(self):
        return self._read(self.performance_state)

    def get_power_snapshot(self):
        return self._read(self.power_snapshot)

    def get_clock_frequencies(self):
        return self._read(self.clock_frequencies)

    def get_thermal_sensors(self):
        return self._read(self.thermal_sensors)


# =============================================================================
# Monitor
# =============================================================================

class PowerStateMonitor:
    """
    Power, clock, and thermal state rollup for one GPU.

    Fields keep their defaults (zero / None / UNKNOWN) until the matching
    category refreshes successfully, and keep their last values when a
    later refresh of that category fails.
    """

    def __init__(self, source: TelemetrySource, name: str = "GPU"):
        self.source = source
        self.name = name

        self.current_performance_state = DynamicPState.UNKNOWN
        self.boost_clock_info = BoostClockDetails()
        self.power_limit_status = PowerLimitDetails()
        self.thermal_throttle_status = ThermalThrottleDetails()

        self.last_snapshot: Optional[PowerTelemetrySnapshot] = None
        self.thermal_sensors = ThermalSensorSet()

    # =========================================================================
    # Derived state
    # =========================================================================

    @property
    def is_throttled(self) -> bool:
        return (self.boost_clock_info.is_throttled_by_temperature
                or self.boost_clock_info.is_throttled_by_power
                or self.thermal_throttle_status.is_throttling_active
                or self.current_performance_state == DynamicPState.THROTTLED)

    @property
    def operating_mode(self) -> str:
        return _OPERATING_MODES.get(self.current_performance_state, "Unknown")

    @property
    def health_status(self) -> str:
        """
        Overall health verdict. First matching rule wins:

        1. Throttled with power and thermal limits -> CRITICAL
        2. Throttled with power limit              -> WARNING (power)
        3. Throttled with thermal limit            -> WARNING (thermal)
        4. Throttled otherwise                     -> CAUTION (throttled)
        5. Power utilization above 90%             -> CAUTION (power)
        6. Thermal headroom below 10%              -> CAUTION (thermal)
        7. HEALTHY
        """
        throttled = self.is_throttled
        power_exceeding = self.power_limit_status.is_exceeding_limit
        thermal_throttling = self.thermal_throttle_status.is_throttling_active

        if throttled and power_exceeding and thermal_throttling:
            return "CRITICAL: Thermal AND Power Throttling"
        if throttled and power_exceeding:
            return "WARNING: Power Throttling Active"
        if throttled and thermal_throttling:
            return "WARNING: Thermal Throttling Active"
        if throttled:
            return "CAUTION: Performance Throttled"
        if self.power_limit_status.power_utilization_percent > HIGH_POWER_UTILIZATION_PERCENT:
            return "CAUTION: High Power Utilization (>90%)"
        if self.thermal_throttle_status.thermal_headroom_percent < LOW_THERMAL_HEADROOM_PERCENT:
            return "CAUTION: Low Thermal Headroom (<10%)"
        return "HEALTHY"

    # =========================================================================
    # Refresh
    # =========================================================================

    def refresh(self) -> bool:
        """
        Refresh every category from the telemetry source.

        Categories are refreshed independently; a failure in one does not
        stop the others and is logged at debug level, never raised.

        Returns:
            True if at least one category refreshed successfully
        """
        steps: List[tuple] = [
            ("performance state", self._refresh_performance_state),
            ("power telemetry", self._refresh_power),
            ("clock frequencies", self._refresh_clocks),
            ("thermal sensors", self._refresh_thermal),
        ]
        results = [self._attempt(category, step) for category, step in steps]
        return any(results)

    def _attempt(self, category: str, step: Callable[[], bool]) -> bool:
        try:
            succeeded = step()
        except Exception as e:
            get_logger().debug(f"{self.name}: {category} refresh failed: {e}")
            return False

        if not succeeded:
            get_logger().debug(f"{self.name}: {category} unavailable")
        return succeeded

    def _refresh_performance_state(self) -> bool:
        state = self.source.get_performance_state()
        if state is None:
            return False

        if isinstance(state, DynamicPState):
            self.current_performance_state = state
        else:
            self.current_performance_state = map_performance_state(state)
        return True

    def _refresh_power(self) -> bool:
        snapshot = self.source.get_power_snapshot()
        if snapshot is None:
            return False

        self.last_snapshot = snapshot

        power = self.power_limit_status
        utilization = snapshot.board_power_usage_percent
        power.power_utilization_percent = utilization if utilization is not None else 0.0
        power.is_tdp_known = snapshot.is_tdp_known
        power.is_exceeding_limit = snapshot.is_power_limit_active
        power.default_tdp_w = snapshot.default_tdp_watts
        power.current_power_w = snapshot.board_power_draw_watts
        power.active_power_limit_w = snapshot.effective_power_limit_watts

        self.boost_clock_info.is_throttled_by_power = snapshot.is_power_limit_active
        self.boost_clock_info.is_throttled_by_temperature = snapshot.is_thermal_limit_active
        return True

    def _refresh_clocks(self) -> bool:
        clocks = self.source.get_clock_frequencies()
        if clocks is None:
            return False

        boost = self.boost_clock_info
        if clocks.current_khz is not None:
            boost.current_boost_clock_mhz = clocks.current_khz // KHZ_PER_MHZ
        if clocks.boost_khz is not None:
            boost.max_boost_clock_mhz = clocks.boost_khz // KHZ_PER_MHZ
        if clocks.base_khz is not None:
            boost.base_boost_clock_mhz = clocks.base_khz // KHZ_PER_MHZ

        boost.boost_offset_mhz = boost.current_boost_clock_mhz - boost.base_boost_clock_mhz
        return clocks.current_khz is not None

    def _refresh_thermal(self) -> bool:
        sensors = ThermalSensorSet(self.source.get_thermal_sensors() or [])
        sensor = sensors.primary
        if sensor is None:
            return False

        self.thermal_sensors = sensors

        thermal = self.thermal_throttle_status
        was_throttling = thermal.is_throttling_active

        thermal.current_temperature_c = sensor.current_temperature_c
        thermal.throttle_activation_temp_c = sensor.throttle_temperature_c
        thermal.shutdown_temperature_c = sensor.effective_shutdown_temperature_c
        thermal.thermal_headroom_percent = thermal_headroom_percent(
            thermal.current_temperature_c,
            thermal.throttle_activation_temp_c,
            thermal.shutdown_temperature_c,
        )
        thermal.is_throttling_active = sensor.is_at_throttle_point

        if thermal.is_throttling_active and not was_throttling:
            thermal.throttle_event_count += 1
        return True

    # =========================================================================
    # Reporting
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'name': self.name,
            'performance_state': self.current_performance_state.name,
            'operating_mode': self.operating_mode,
            'is_throttled': self.is_throttled,
            'health_status': self.health_status,
            'boost_clock': vars(self.boost_clock_info).copy(),
            'power_limit': vars(self.power_limit_status).copy(),
            'thermal': vars(self.thermal_throttle_status).copy(),
        }

    def log_status(self, logger: Optional[TelemetryLogger] = None):
        """Write the current state as a section with a key/value summary."""
        log = logger or get_logger()
        power = self.power_limit_status
        thermal = self.thermal_throttle_status

        log.section(f"{self.name}: {self.operating_mode}")
        log.summary(
            "Status",
            health=self.health_status,
            throttled=self.is_throttled,
            boost_clock_mhz=self.boost_clock_info.current_boost_clock_mhz,
            board_power_w=power.current_power_w,
            power_limit_w=power.active_power_limit_w,
            power_utilization_percent=power.power_utilization_percent,
            temperature_c=thermal.current_temperature_c,
            thermal_headroom_percent=thermal.thermal_headroom_percent,
            throttle_events=thermal.throttle_event_count,
        )

    def __str__(self) -> str:
        return (f"{self.name}: {self.operating_mode}\n"
                f"  {self.boost_clock_info}\n"
                f"  {self.power_limit_status}\n"
                f"  {self.thermal_throttle_status}\n"
                f"  Health: {self.health_status}")
