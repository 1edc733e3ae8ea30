"""
GPU Power Telemetry

Point-in-time power snapshots resolved to watts, thermal sensor
summaries, and the per-GPU power state monitor.
"""

from .snapshot import (
    PowerTelemetrySnapshot,
    THROTTLE_REASONS,
    NO_THROTTLING,
    select_state_entry,
    first_available,
    scale_by_percent,
    estimate_in_watts,
)

from .thermal import (
    SHUTDOWN_MARGIN_C,
    estimate_shutdown_temperature,
    thermal_headroom_percent,
    SensorType,
    ThermalZone,
    ThermalSensor,
    ThermalZoneStatus,
    ThermalSensorSet,
)

from .monitoring import (
    DynamicPState,
    map_performance_state,
    BoostClockDetails,
    PowerLimitDetails,
    ThermalThrottleDetails,
    ClockFrequencies,
    TelemetrySource,
    StaticTelemetrySource,
    PowerStateMonitor,
)

__all__ = [
    # Snapshot
    'PowerTelemetrySnapshot',
    'THROTTLE_REASONS',
    'NO_THROTTLING',
    'select_state_entry',
    'first_available',
    'scale_by_percent',
    'estimate_in_watts',
    # Thermal
    'SHUTDOWN_MARGIN_C',
    'estimate_shutdown_temperature',
    'thermal_headroom_percent',
    'SensorType',
    'ThermalZone',
    'ThermalSensor',
    'ThermalZoneStatus',
    'ThermalSensorSet',
    # Monitoring
    'DynamicPState',
    'map_performance_state',
    'BoostClockDetails',
    'PowerLimitDetails',
    'ThermalThrottleDetails',
    'ClockFrequencies',
    'TelemetrySource',
    'StaticTelemetrySource',
    'PowerStateMonitor',
]
