"""
GPU Power Spec Catalog

Known TDP/TGP specifications for NVIDIA GPUs, keyed by a name pattern
matched against the driver's free-text device name. The driver reports
power only as a percentage of the board's default power limit; the
catalog supplies the watt reference that makes those percentages useful.

Matching rules:
1. A spec matches when its name_pattern occurs in the device name
   (case-insensitive substring).
2. Among matches, the longest pattern wins ("RTX 4080 SUPER" over "RTX 4080").
3. Equal-length matches resolve by catalog order. Registered specs are
   inserted at the front, so they win ties against built-ins.

Usage:
    from gpupower.hardware.spec_catalog import SpecCatalog, get_catalog

    catalog = SpecCatalog()
    spec = catalog.lookup("NVIDIA GeForce RTX 4080 SUPER")
    print(spec.default_tdp_watts)  # 320.0

    # Add a board the built-in table does not know
    catalog.register("RTX 4070 Ti SUPER OC", 300, 350, 200, "Ada Lovelace")

    # Process-wide catalog (built-ins plus configured user spec files)
    tdp = get_catalog().default_tdp("NVIDIA GeForce RTX 4090")
"""

import threading
from dataclasses import dataclass, asdict
from typing import Dict, Any, Iterator, List, Optional, Sequence

from ..core.errors import InvalidArgumentError, OutOfRangeError
from ..logging import get_logger
from .family import GPUFamily, family_from_architecture


@dataclass(frozen=True)
class PowerSpec:
    """Power specification for one GPU model."""

    name_pattern: str
    """Pattern matched (case-insensitive substring) against the device name."""

    default_tdp_watts: float
    """Default board TDP/TGP in watts."""

    max_tdp_watts: float
    """Maximum board power limit in watts (power slider at max)."""

    min_tdp_watts: float
    """Minimum board power limit in watts."""

    architecture: str = "Unknown"
    """Architecture generation label (e.g. "Ada Lovelace")."""

    @property
    def family(self) -> GPUFamily:
        return family_from_architecture(self.architecture)

    def matches(self, device_name: str) -> bool:
        """Whether this spec's pattern occurs in the device name, ignoring case."""
        return self.name_pattern.casefold() in device_name.casefold()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/YAML serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PowerSpec':
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def __str__(self) -> str:
        return (f"{self.name_pattern} ({self.architecture}): "
                f"{self.default_tdp_watts:.0f}W "
                f"[{self.min_tdp_watts:.0f}W - {self.max_tdp_watts:.0f}W]")


# =============================================================================
# Built-in specifications
# (name_pattern, default W, max W, min W, architecture)
# =============================================================================

BUILTIN_SPECS: Sequence[tuple] = (
    # RTX 50 Series (Blackwell) - Desktop
    ("RTX 5090", 575, 660, 400, "Blackwell"),
    ("RTX 5080", 360, 410, 250, "Blackwell"),
    ("RTX 5070 Ti", 300, 350, 200, "Blackwell"),
    ("RTX 5070", 250, 300, 175, "Blackwell"),
    ("RTX 5060 Ti", 180, 210, 120, "Blackwell"),
    ("RTX 5060", 150, 175, 100, "Blackwell"),

    # RTX 50 Series (Blackwell) - Laptop
    ("RTX 5090 Laptop", 150, 175, 80, "Blackwell"),
    ("RTX 5080 Laptop", 150, 175, 80, "Blackwell"),
    ("RTX 5070 Ti Laptop", 120, 140, 60, "Blackwell"),
    ("RTX 5070 Laptop", 115, 135, 60, "Blackwell"),
    ("RTX 5060 Laptop", 100, 115, 50, "Blackwell"),

    # RTX 40 Series (Ada Lovelace) - Desktop
    ("RTX 4090", 450, 660, 300, "Ada Lovelace"),
    ("RTX 4090 D", 425, 550, 300, "Ada Lovelace"),
    ("RTX 4080 SUPER", 320, 380, 220, "Ada Lovelace"),
    ("RTX 4080", 320, 380, 220, "Ada Lovelace"),
    ("RTX 4070 Ti SUPER", 285, 330, 200, "Ada Lovelace"),
    ("RTX 4070 Ti", 285, 330, 200, "Ada Lovelace"),
    ("RTX 4070 SUPER", 220, 260, 150, "Ada Lovelace"),
    ("RTX 4070", 200, 240, 140, "Ada Lovelace"),
    ("RTX 4060 Ti 16GB", 165, 195, 115, "Ada Lovelace"),
    ("RTX 4060 Ti", 160, 190, 115, "Ada Lovelace"),
    ("RTX 4060", 115, 140, 80, "Ada Lovelace"),

    # RTX 40 Series (Ada Lovelace) - Laptop
    ("RTX 4090 Laptop", 150, 175, 80, "Ada Lovelace"),
    ("RTX 4080 Laptop", 150, 175, 80, "Ada Lovelace"),
    ("RTX 4070 Laptop", 115, 140, 60, "Ada Lovelace"),
    ("RTX 4060 Laptop", 115, 140, 35, "Ada Lovelace"),
    ("RTX 4050 Laptop", 115, 140, 35, "Ada Lovelace"),

    # RTX 30 Series (Ampere) - Desktop
    ("RTX 3090 Ti", 450, 516, 350, "Ampere"),
    ("RTX 3090", 350, 400, 280, "Ampere"),
    ("RTX 3080 Ti", 350, 400, 280, "Ampere"),
    ("RTX 3080 12GB", 350, 400, 280, "Ampere"),
    ("RTX 3080", 320, 370, 250, "Ampere"),
    ("RTX 3070 Ti", 290, 335, 220, "Ampere"),
    ("RTX 3070", 220, 260, 170, "Ampere"),
    ("RTX 3060 Ti", 200, 240, 150, "Ampere"),
    ("RTX 3060", 170, 200, 120, "Ampere"),

    # RTX 20 Series (Turing) - Desktop
    ("RTX 2080 Ti", 250, 300, 200, "Turing"),
    ("RTX 2080 SUPER", 250, 300, 200, "Turing"),
    ("RTX 2080", 215, 260, 170, "Turing"),
    ("RTX 2070 SUPER", 215, 260, 170, "Turing"),
    ("RTX 2070", 175, 215, 140, "Turing"),
    ("RTX 2060 SUPER", 175, 215, 140, "Turing"),
    ("RTX 2060", 160, 190, 125, "Turing"),

    # GTX 16 Series (Turing) - Desktop
    ("GTX 1660 Ti", 120, 145, 90, "Turing"),
    ("GTX 1660 SUPER", 125, 150, 95, "Turing"),
    ("GTX 1660", 120, 145, 90, "Turing"),
    ("GTX 1650 SUPER", 100, 120, 75, "Turing"),
    ("GTX 1650", 75, 90, 55, "Turing"),

    # Professional / Data Center
    ("RTX 6000 Ada", 300, 350, 200, "Ada Lovelace"),
    ("RTX 5880 Ada", 285, 330, 200, "Ada Lovelace"),
    ("RTX 5000 Ada", 250, 290, 170, "Ada Lovelace"),
    ("RTX 4500 Ada", 210, 250, 150, "Ada Lovelace"),
    ("RTX 4000 Ada", 130, 155, 90, "Ada Lovelace"),
    ("RTX A6000", 300, 350, 200, "Ampere"),
    ("RTX A5500", 230, 270, 160, "Ampere"),
    ("RTX A5000", 230, 270, 160, "Ampere"),
    ("RTX A4500", 200, 240, 140, "Ampere"),
    ("RTX A4000", 140, 170, 100, "Ampere"),
    ("L40S", 350, 400, 250, "Ada Lovelace"),
    ("L40", 300, 350, 200, "Ada Lovelace"),
    ("L4", 72, 85, 50, "Ada Lovelace"),
    ("H100 SXM", 700, 800, 500, "Hopper"),
    ("H100 PCIe", 350, 400, 250, "Hopper"),
    ("H100 NVL", 400, 460, 300, "Hopper"),
    ("H200", 700, 800, 500, "Hopper"),
    ("A100 SXM", 400, 460, 300, "Ampere"),
    ("A100 PCIe", 300, 350, 200, "Ampere"),
    ("A40", 300, 350, 200, "Ampere"),
    ("A30", 165, 195, 115, "Ampere"),
    ("A16", 250, 290, 175, "Ampere"),
    ("A10", 150, 175, 100, "Ampere"),
    ("A2", 60, 70, 40, "Ampere"),

    # GTX 10 Series (Pascal) - Desktop
    ("GTX 1080 Ti", 250, 300, 200, "Pascal"),
    ("GTX 1080", 180, 215, 140, "Pascal"),
    ("GTX 1070 Ti", 180, 215, 140, "Pascal"),
    ("GTX 1070", 150, 180, 115, "Pascal"),
    ("GTX 1060 6GB", 120, 145, 90, "Pascal"),
    ("GTX 1060 3GB", 120, 145, 90, "Pascal"),
    ("GTX 1060", 120, 145, 90, "Pascal"),
    ("GTX 1050 Ti", 75, 90, 55, "Pascal"),
    ("GTX 1050", 75, 90, 55, "Pascal"),

    # TITAN
    ("TITAN RTX", 280, 330, 210, "Turing"),
    ("TITAN V", 250, 300, 200, "Volta"),
    ("TITAN Xp", 250, 300, 200, "Pascal"),
)


def builtin_specs() -> List[PowerSpec]:
    """Build PowerSpec instances for the built-in table, in table order."""
    return [
        PowerSpec(pattern, float(default), float(max_w), float(min_w), arch)
        for pattern, default, max_w, min_w, arch in BUILTIN_SPECS
    ]


class SpecCatalog:
    """
    Ordered collection of GPU power specs with most-specific-match lookup.

    The catalog only grows: register() prepends, nothing is removed or
    replaced. Registration and lookup are serialized by an internal lock
    so a shared catalog can be polled from several threads.
    """

    def __init__(
        self,
        specs: Optional[Sequence[PowerSpec]] = None,
        include_builtin: bool = True
    ):
        """
        Args:
            specs: Extra specs placed ahead of the built-in table, in order
            include_builtin: Whether to load the built-in table
        """
        self._lock = threading.Lock()
        self._specs: List[PowerSpec] = list(specs or [])
        if include_builtin:
            self._specs.extend(builtin_specs())

    @property
    def specs(self) -> List[PowerSpec]:
        """Copy of all specs in priority order."""
        with self._lock:
            return list(self._specs)

    def __len__(self) -> int:
        with self._lock:
            return len(self._specs)

    def __iter__(self) -> Iterator[PowerSpec]:
        return iter(self.specs)

    def register(
        self,
        name_pattern: str,
        default_tdp_watts: float,
        max_tdp_watts: float,
        min_tdp_watts: float,
        architecture: str = "Unknown"
    ) -> PowerSpec:
        """
        Register a custom power spec ahead of every existing entry.

        Re-registering a pattern adds another front entry that shadows
        the earlier ones.

        Args:
            name_pattern: Case-insensitive substring of the device name
            default_tdp_watts: Default board TDP in watts
            max_tdp_watts: Maximum board power limit in watts
            min_tdp_watts: Minimum board power limit in watts
            architecture: Architecture label (e.g. "Ada Lovelace")

        Returns:
            The registered PowerSpec

        Raises:
            InvalidArgumentError: If name_pattern is empty or whitespace
            OutOfRangeError: If default_tdp_watts is not a positive number (NaN included)
        """
        if name_pattern is None or not name_pattern.strip():
            raise InvalidArgumentError("Name pattern cannot be empty.")

        if not default_tdp_watts > 0:
            raise OutOfRangeError("default_tdp_watts", default_tdp_watts)

        spec = PowerSpec(
            name_pattern=name_pattern,
            default_tdp_watts=float(default_tdp_watts),
            max_tdp_watts=float(max_tdp_watts),
            min_tdp_watts=float(min_tdp_watts),
            architecture=architecture,
        )

        with self._lock:
            self._specs.insert(0, spec)

        get_logger().debug(f"Registered power spec: {spec}")
        return spec

    def find_matches(self, device_name: str) -> List[PowerSpec]:
        """
        All specs matching a device name, most specific first.

        Equal-length patterns keep catalog order (the sort is stable).
        """
        if device_name is None or not device_name.strip():
            return []

        with self._lock:
            matches = [spec for spec in self._specs if spec.matches(device_name)]

        matches.sort(key=lambda s: len(s.name_pattern), reverse=True)
        return matches

    def lookup(self, device_name: str) -> Optional[PowerSpec]:
        """
        Find the most specific spec for a device name.

        Args:
            device_name: Device name from the driver (e.g. "NVIDIA GeForce RTX 4090")

        Returns:
            Matching PowerSpec, or None if the name is blank or unknown
        """
        matches = self.find_matches(device_name)
        return matches[0] if matches else None

    def default_tdp(self, device_name: str) -> Optional[float]:
        """Default TDP in watts for a device name, or None if unknown."""
        spec = self.lookup(device_name)
        return spec.default_tdp_watts if spec is not None else None


# =============================================================================
# Process-wide catalog
# =============================================================================

_catalog: Optional[SpecCatalog] = None
_catalog_lock = threading.Lock()


def get_catalog() -> SpecCatalog:
    """
    Get the process-wide catalog, building it on first use.

    The first call loads built-ins plus any user spec files named by the
    active configuration (see gpupower.hardware.config.load_config).
    """
    global _catalog
    with _catalog_lock:
        if _catalog is None:
            from .config import create_catalog, load_config
            _catalog = create_catalog(load_config())
        return _catalog


def set_catalog(catalog: Optional[SpecCatalog]):
    """Replace the process-wide catalog (None rebuilds it on next use)."""
    global _catalog
    with _catalog_lock:
        _catalog = catalog


def reset_catalog():
    """Discard the process-wide catalog so the next get_catalog() rebuilds it."""
    set_catalog(None)
