"""
Core Telemetry Types

Raw driver-facing entry types and the error classes shared by the
catalog, snapshot, and monitoring layers.
"""

from .errors import InvalidArgumentError, OutOfRangeError
from .types import (
    PCM_PER_PERCENT,
    pcm_to_percent,
    PerformanceStateId,
    TopologyDomain,
    LimitFlag,
    PerformanceDecreaseReason,
    PowerLimitInWatts,
    TopologyEntry,
    LimitPolicyEntry,
    LimitInfoEntry,
)

__all__ = [
    # Errors
    'InvalidArgumentError',
    'OutOfRangeError',
    # Enumerations
    'PerformanceStateId',
    'TopologyDomain',
    'LimitFlag',
    'PerformanceDecreaseReason',
    # Entries
    'PCM_PER_PERCENT',
    'pcm_to_percent',
    'PowerLimitInWatts',
    'TopologyEntry',
    'LimitPolicyEntry',
    'LimitInfoEntry',
]
