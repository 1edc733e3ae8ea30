"""
Raw Telemetry Entry Types

Driver-facing value types shared by the snapshot and the state monitor.
The driver reports power as per-cent-mille (PCM) of an unknown reference
limit: 100000 PCM = 100.000%. These types carry the raw PCM integers and
expose the percentage view; converting to watts requires a reference TDP
from the spec catalog (`gpupower.hardware.spec_catalog`).

Usage:
    from gpupower.core.types import TopologyEntry, TopologyDomain

    entry = TopologyEntry(domain=TopologyDomain.BOARD, usage_pcm=45000)
    print(entry.usage_percent)                        # 45.0
    print(entry.estimate_power_usage_in_watts(320))   # 144.0
"""

from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import Optional, TYPE_CHECKING

from .errors import OutOfRangeError

if TYPE_CHECKING:
    from ..hardware.spec_catalog import SpecCatalog


PCM_PER_PERCENT = 1000
"""Per-cent-mille units in one percent."""


def pcm_to_percent(pcm: int) -> float:
    """Convert a per-cent-mille value to percent (1000 PCM = 1%)."""
    return pcm / PCM_PER_PERCENT


# =============================================================================
# Enumerations
# =============================================================================

class PerformanceStateId(IntEnum):
    """
    Driver performance state (P-State) identifier.

    P0 is maximum performance, higher numbers are progressively deeper
    power-saving states. ALL is a wildcard meaning the entry applies
    regardless of the current state.
    """
    P0 = 0
    P1 = 1
    P2 = 2
    P3 = 3
    P4 = 4
    P5 = 5
    P6 = 6
    P7 = 7
    P8 = 8
    P9 = 9
    P10 = 10
    P11 = 11
    P12 = 12
    P13 = 13
    P14 = 14
    P15 = 15
    ALL = 16
    UNDEFINED = 32


class TopologyDomain(IntEnum):
    """Power topology domain a usage reading refers to."""
    GPU = 0
    BOARD = 1


class LimitFlag(IntFlag):
    """
    Active performance limit bit flags.

    Bits not named here may still be reported by newer drivers; they are
    preserved as raw integers.
    """
    NONE = 0
    POWER_LIMIT = 1
    TEMPERATURE_LIMIT = 2
    VOLTAGE_LIMIT = 4
    NO_LOAD_LIMIT = 16


class PerformanceDecreaseReason(IntFlag):
    """Reason the driver reports for a performance decrease."""
    NONE = 0
    THERMAL_PROTECTION = 1
    POWER_CONTROL = 2
    AC_BATTERY = 4
    API_TRIGGERED = 8
    INSUFFICIENT_POWER = 16
    UNKNOWN = 0x80000000


# =============================================================================
# Entries
# =============================================================================

@dataclass(frozen=True)
class PowerLimitInWatts:
    """Power limit envelope expressed in watts."""
    minimum_watts: float
    default_watts: float
    maximum_watts: float

    def __str__(self) -> str:
        return (f"Default: {self.default_watts:.1f}W - "
                f"Range: ({self.minimum_watts:.1f}W - {self.maximum_watts:.1f}W)")


@dataclass(frozen=True)
class TopologyEntry:
    """Power usage of one topology domain, as PCM of the active limit."""
    domain: TopologyDomain
    usage_pcm: int

    @property
    def usage_percent(self) -> float:
        return pcm_to_percent(self.usage_pcm)

    def estimate_power_usage_in_watts(self, power_limit_watts: float) -> float:
        """
        Estimate power usage against a caller-supplied reference limit.

        Raises:
            OutOfRangeError: If power_limit_watts is not positive
        """
        if not power_limit_watts > 0:
            raise OutOfRangeError("power_limit_watts", power_limit_watts)
        return power_limit_watts * self.usage_percent / 100.0

    def estimate_power_usage_in_watts_auto(
        self,
        device_name: str,
        catalog: Optional['SpecCatalog'] = None
    ) -> Optional[float]:
        """
        Estimate power usage using the catalog's default TDP for a device.

        Returns None when the device has no catalog entry.
        """
        if catalog is None:
            from ..hardware.spec_catalog import get_catalog
            catalog = get_catalog()

        tdp = catalog.default_tdp(device_name)
        if tdp is None:
            return None
        return tdp * self.usage_percent / 100.0

    def __str__(self) -> str:
        return f"[{self.domain.name}] {self.usage_percent:.1f}%"


@dataclass(frozen=True)
class LimitPolicyEntry:
    """Currently active power target for a performance state."""
    state: PerformanceStateId
    target_pcm: int

    @property
    def target_percent(self) -> float:
        return pcm_to_percent(self.target_pcm)

    def __str__(self) -> str:
        return f"[{self.state.name}] Target: {self.target_percent:.1f}%"


@dataclass(frozen=True)
class LimitInfoEntry:
    """Power limit capability envelope for a performance state."""
    state: PerformanceStateId
    min_pcm: int
    default_pcm: int
    max_pcm: int

    @property
    def min_percent(self) -> float:
        return pcm_to_percent(self.min_pcm)

    @property
    def default_percent(self) -> float:
        return pcm_to_percent(self.default_pcm)

    @property
    def max_percent(self) -> float:
        return pcm_to_percent(self.max_pcm)

    def to_watts(self, default_tdp_watts: float) -> PowerLimitInWatts:
        """Project the percent envelope onto a default TDP."""
        return PowerLimitInWatts(
            minimum_watts=default_tdp_watts * self.min_percent / 100.0,
            default_watts=default_tdp_watts * self.default_percent / 100.0,
            maximum_watts=default_tdp_watts * self.max_percent / 100.0,
        )

    def __str__(self) -> str:
        return (f"[{self.state.name}] Default: {self.default_percent:.1f}% - "
                f"Range: ({self.min_percent:.1f}% - {self.max_percent:.1f}%)")
