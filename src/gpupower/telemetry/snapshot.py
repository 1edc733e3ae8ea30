"""
Power Telemetry Snapshot

A single point-in-time power sample for one GPU, resolved against the
spec catalog into watt values and throttle diagnoses.

The driver reports:
- Topology usage per domain (Board, GPU) as PCM of the active power limit
- Limit policies: the active power target per P-State, in PCM of default TDP
- Limit info: the min/default/max power target envelope per P-State

The snapshot looks the device name up once, at construction. Watt values
are derived on read and are None when the device is not in the catalog.

Watt derivation:
    effective limit = default TDP * active target%      (fallback: default TDP)
    power draw      = effective limit * domain usage%
    default limit   = default TDP * default target%     (fallback: default TDP)
    min / max limit = default TDP * min / max target%   (fallback: spec min / max TDP)

Usage:
    from gpupower.telemetry.snapshot import PowerTelemetrySnapshot

    snapshot = PowerTelemetrySnapshot(
        device_name="NVIDIA GeForce RTX 4090",
        topology_entries=[TopologyEntry(TopologyDomain.BOARD, 50000)],
        limit_policies=[LimitPolicyEntry(PerformanceStateId.ALL, 100000)],
    )
    print(snapshot.board_power_draw_watts)  # 225.0
    print(snapshot.throttle_status)         # "No Throttling"
"""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from ..core.errors import OutOfRangeError
from ..core.types import (
    LimitFlag,
    LimitInfoEntry,
    LimitPolicyEntry,
    PerformanceDecreaseReason,
    PerformanceStateId,
    PowerLimitInWatts,
    TopologyDomain,
    TopologyEntry,
)
from ..hardware.family import GPUFamily
from ..hardware.spec_catalog import PowerSpec, SpecCatalog, get_catalog


T = TypeVar('T')

# Throttle reasons in reporting order
THROTTLE_REASONS = (
    (LimitFlag.POWER_LIMIT, "Power"),
    (LimitFlag.TEMPERATURE_LIMIT, "Thermal"),
    (LimitFlag.VOLTAGE_LIMIT, "Voltage"),
    (LimitFlag.NO_LOAD_LIMIT, "No Load"),
)

NO_THROTTLING = "No Throttling"


def select_state_entry(
    entries: Sequence[T],
    current_state: Optional[PerformanceStateId],
    state_of: Callable[[T], PerformanceStateId],
) -> Optional[T]:
    """
    Pick the entry that applies to the current P-State.

    Order:
    1. Entry for the current state (when the current state is known)
    2. Entry for PerformanceStateId.ALL
    3. First entry

    Returns None only when entries is empty.
    """
    if not entries:
        return None

    if current_state is not None:
        for entry in entries:
            if state_of(entry) == current_state:
                return entry

    for entry in entries:
        if state_of(entry) == PerformanceStateId.ALL:
            return entry

    return entries[0]


def _normalize_state(state) -> Optional[PerformanceStateId]:
    """Driver state id as a PerformanceStateId; ids outside the table are UNDEFINED."""
    if state is None:
        return None
    try:
        return PerformanceStateId(state)
    except ValueError:
        return PerformanceStateId.UNDEFINED


def first_available(*steps: Callable[[], Optional[float]]) -> Optional[float]:
    """Evaluate fallback steps in order and return the first non-None result."""
    for step in steps:
        value = step()
        if value is not None:
            return value
    return None


def scale_by_percent(watts: Optional[float], percent: Optional[float]) -> Optional[float]:
    """watts * percent / 100, or None if either input is missing."""
    if watts is None or percent is None:
        return None
    return watts * percent / 100.0


def estimate_in_watts(usage_percent: Optional[float], reference_limit_watts: float) -> Optional[float]:
    """
    Estimate watts from a usage percentage and a caller-known reference limit.

    Works without a catalog match.

    Args:
        usage_percent: Usage in percent of the reference limit, or None
        reference_limit_watts: Reference power limit in watts

    Returns:
        Estimated watts, or None when usage_percent is None

    Raises:
        OutOfRangeError: If reference_limit_watts is not positive
    """
    if not reference_limit_watts > 0:
        raise OutOfRangeError("reference_limit_watts", reference_limit_watts)

    return scale_by_percent(reference_limit_watts, usage_percent)


class PowerTelemetrySnapshot:
    """
    Immutable power telemetry sample resolved against the spec catalog.

    Safe to read from several threads; nothing changes after construction,
    including the resolved PowerSpec (later catalog registrations do not
    affect an existing snapshot).
    """

    def __init__(
        self,
        device_name: str,
        topology_entries: Iterable[TopologyEntry] = (),
        limit_policies: Iterable[LimitPolicyEntry] = (),
        limit_info: Iterable[LimitInfoEntry] = (),
        current_state: Optional[PerformanceStateId] = None,
        current_limit: Optional[LimitFlag] = None,
        decrease_reason: Optional[PerformanceDecreaseReason] = None,
        catalog: Optional[SpecCatalog] = None,
        captured_at: Optional[datetime] = None,
    ):
        """
        Args:
            device_name: Device name from the driver
            topology_entries: Per-domain usage readings
            limit_policies: Active power target per P-State
            limit_info: Power target envelope per P-State
            current_state: Current P-State, if known (ids outside the table become UNDEFINED)
            current_limit: Active limit flags, if known
            decrease_reason: Performance decrease reason, if known
            catalog: Spec catalog to resolve against (default: process-wide)
            captured_at: Capture time (default: now, UTC)
        """
        self._device_name = device_name
        self._topology_entries = tuple(topology_entries)
        self._limit_policies = tuple(limit_policies)
        self._limit_info = tuple(limit_info)
        self._current_state = _normalize_state(current_state)
        self._current_limit = LimitFlag(current_limit) if current_limit is not None else None
        self._decrease_reason = (
            PerformanceDecreaseReason(decrease_reason) if decrease_reason is not None else None
        )
        self._captured_at = captured_at or datetime.now(timezone.utc)

        catalog = catalog if catalog is not None else get_catalog()
        self._power_spec: Optional[PowerSpec] = catalog.lookup(device_name)

    # =========================================================================
    # Raw sample
    # =========================================================================

    @property
    def device_name(self) -> str:
        return self._device_name

    @property
    def captured_at(self) -> datetime:
        return self._captured_at

    @property
    def current_state(self) -> Optional[PerformanceStateId]:
        return self._current_state

    @property
    def current_limit(self) -> Optional[LimitFlag]:
        return self._current_limit

    @property
    def decrease_reason(self) -> Optional[PerformanceDecreaseReason]:
        return self._decrease_reason

    @property
    def topology_entries(self) -> Sequence[TopologyEntry]:
        return self._topology_entries

    @property
    def limit_policies(self) -> Sequence[LimitPolicyEntry]:
        return self._limit_policies

    @property
    def limit_info(self) -> Sequence[LimitInfoEntry]:
        return self._limit_info

    # =========================================================================
    # Percentages (available without a catalog match)
    # =========================================================================

    def domain_usage(self, domain: TopologyDomain) -> Optional[float]:
        """Usage percent of the first topology entry for a domain."""
        for entry in self._topology_entries:
            if entry.domain == domain:
                return entry.usage_percent
        return None

    @property
    def board_power_usage_percent(self) -> Optional[float]:
        return self.domain_usage(TopologyDomain.BOARD)

    @property
    def gpu_power_usage_percent(self) -> Optional[float]:
        return self.domain_usage(TopologyDomain.GPU)

    def _select_policy(self) -> Optional[LimitPolicyEntry]:
        return select_state_entry(self._limit_policies, self._current_state, lambda p: p.state)

    def _select_info(self) -> Optional[LimitInfoEntry]:
        return select_state_entry(self._limit_info, self._current_state, lambda i: i.state)

    @property
    def active_power_target_percent(self) -> Optional[float]:
        """Active power target for the current state (or ALL / first entry)."""
        policy = self._select_policy()
        return policy.target_percent if policy is not None else None

    @property
    def default_power_target_percent(self) -> Optional[float]:
        info = self._select_info()
        return info.default_percent if info is not None else None

    @property
    def min_power_target_percent(self) -> Optional[float]:
        info = self._select_info()
        return info.min_percent if info is not None else None

    @property
    def max_power_target_percent(self) -> Optional[float]:
        info = self._select_info()
        return info.max_percent if info is not None else None

    # =========================================================================
    # Catalog match
    # =========================================================================

    @property
    def power_spec(self) -> Optional[PowerSpec]:
        return self._power_spec

    @property
    def is_tdp_known(self) -> bool:
        return self._power_spec is not None

    @property
    def default_tdp_watts(self) -> Optional[float]:
        return self._power_spec.default_tdp_watts if self._power_spec else None

    @property
    def max_tdp_watts(self) -> Optional[float]:
        return self._power_spec.max_tdp_watts if self._power_spec else None

    @property
    def min_tdp_watts(self) -> Optional[float]:
        return self._power_spec.min_tdp_watts if self._power_spec else None

    @property
    def matched_architecture(self) -> Optional[str]:
        return self._power_spec.architecture if self._power_spec else None

    @property
    def matched_family(self) -> GPUFamily:
        return self._power_spec.family if self._power_spec else GPUFamily.UNKNOWN

    # =========================================================================
    # Watts (None unless the TDP is known)
    # =========================================================================

    @property
    def effective_power_limit_watts(self) -> Optional[float]:
        """
        Power ceiling the GPU is operating under right now.

        Accounts for the user's power limit slider: an active target of
        110% on a 300W card gives 330W.
        """
        spec = self._power_spec
        if spec is None:
            return None

        return first_available(
            lambda: scale_by_percent(spec.default_tdp_watts, self.active_power_target_percent),
            lambda: spec.default_tdp_watts,
        )

    # Same value under the name used by the state monitor
    current_power_limit_watts = effective_power_limit_watts

    def power_in_watts(self, usage_percent: Optional[float]) -> Optional[float]:
        """Convert a topology usage percent (of the effective limit) to watts."""
        if self._power_spec is None or usage_percent is None:
            return None

        return scale_by_percent(self.effective_power_limit_watts, usage_percent)

    @property
    def board_power_draw_watts(self) -> Optional[float]:
        return self.power_in_watts(self.board_power_usage_percent)

    @property
    def gpu_power_draw_watts(self) -> Optional[float]:
        return self.power_in_watts(self.gpu_power_usage_percent)

    @property
    def default_power_limit_watts(self) -> Optional[float]:
        spec = self._power_spec
        if spec is None:
            return None

        return first_available(
            lambda: scale_by_percent(spec.default_tdp_watts, self.default_power_target_percent),
            lambda: spec.default_tdp_watts,
        )

    @property
    def min_power_limit_watts(self) -> Optional[float]:
        """Minimum limit; falls back to the spec's static min TDP."""
        spec = self._power_spec
        if spec is None:
            return None

        return first_available(
            lambda: scale_by_percent(spec.default_tdp_watts, self.min_power_target_percent),
            lambda: spec.min_tdp_watts,
        )

    @property
    def max_power_limit_watts(self) -> Optional[float]:
        """Maximum limit; falls back to the spec's static max TDP."""
        spec = self._power_spec
        if spec is None:
            return None

        return first_available(
            lambda: scale_by_percent(spec.default_tdp_watts, self.max_power_target_percent),
            lambda: spec.max_tdp_watts,
        )

    @property
    def power_limit_in_watts(self) -> Optional[PowerLimitInWatts]:
        """Selected limit-info envelope in watts, when both TDP and info are known."""
        info = self._select_info()
        if self._power_spec is None or info is None:
            return None
        return info.to_watts(self._power_spec.default_tdp_watts)

    # =========================================================================
    # Throttle detection
    # =========================================================================

    def _has_limit(self, flag: LimitFlag) -> bool:
        if self._current_limit is None:
            return False
        return (self._current_limit & flag) == flag

    @property
    def is_power_limit_active(self) -> bool:
        return self._has_limit(LimitFlag.POWER_LIMIT)

    @property
    def is_thermal_limit_active(self) -> bool:
        return self._has_limit(LimitFlag.TEMPERATURE_LIMIT)

    @property
    def is_voltage_limit_active(self) -> bool:
        return self._has_limit(LimitFlag.VOLTAGE_LIMIT)

    @property
    def is_no_load_limit_active(self) -> bool:
        """Performance reduced because the GPU is idle/underutilized."""
        return self._has_limit(LimitFlag.NO_LOAD_LIMIT)

    @property
    def throttle_reasons(self) -> List[str]:
        """Active throttle reasons in reporting order (Power, Thermal, Voltage, No Load)."""
        return [name for flag, name in THROTTLE_REASONS if self._has_limit(flag)]

    @property
    def throttle_status(self) -> str:
        """Human-readable summary such as "Throttled: Power + Thermal"."""
        if self._current_limit is None or self._current_limit == LimitFlag.NONE:
            return NO_THROTTLING

        reasons = self.throttle_reasons
        if reasons:
            return f"Throttled: {' + '.join(reasons)}"

        # Only bits without a name are set
        return f"Throttled: {int(self._current_limit)}"

    # =========================================================================
    # Manual estimation (caller supplies the reference limit)
    # =========================================================================

    estimate_in_watts = staticmethod(estimate_in_watts)

    def estimate_board_power_in_watts(self, board_power_limit_watts: float) -> Optional[float]:
        """Board draw against a caller-known board limit; None without board telemetry."""
        return estimate_in_watts(self.board_power_usage_percent, board_power_limit_watts)

    def estimate_gpu_power_in_watts(self, gpu_power_limit_watts: float) -> Optional[float]:
        """GPU-domain draw against a caller-known limit; None without GPU telemetry."""
        return estimate_in_watts(self.gpu_power_usage_percent, gpu_power_limit_watts)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'device_name': self._device_name,
            'captured_at': self._captured_at.isoformat(),
            'current_state': self._current_state.name if self._current_state is not None else None,
            'current_limit': int(self._current_limit) if self._current_limit is not None else None,
            'decrease_reason': int(self._decrease_reason) if self._decrease_reason is not None else None,
            'is_tdp_known': self.is_tdp_known,
            'architecture': self.matched_architecture,
            'board_power_usage_percent': self.board_power_usage_percent,
            'gpu_power_usage_percent': self.gpu_power_usage_percent,
            'active_power_target_percent': self.active_power_target_percent,
            'default_tdp_watts': self.default_tdp_watts,
            'board_power_draw_watts': self.board_power_draw_watts,
            'gpu_power_draw_watts': self.gpu_power_draw_watts,
            'effective_power_limit_watts': self.effective_power_limit_watts,
            'default_power_limit_watts': self.default_power_limit_watts,
            'min_power_limit_watts': self.min_power_limit_watts,
            'max_power_limit_watts': self.max_power_limit_watts,
            'throttle_status': self.throttle_status,
        }

    def __str__(self) -> str:
        board = self.board_power_draw_watts
        if board is not None:
            power = f"{board:.1f}W / {self.effective_power_limit_watts:.1f}W"
        elif self.board_power_usage_percent is not None:
            power = f"{self.board_power_usage_percent:.1f}% (TDP unknown)"
        else:
            power = "N/A"
        return f"{self._device_name}: {power} - {self.throttle_status}"
