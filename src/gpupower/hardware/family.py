"""
GPU Family Classification

Maps GPU codenames (e.g. "AD102", "GA104") and catalog architecture
labels (e.g. "Ada Lovelace") onto a small family enumeration, plus
market tier descriptions.
"""

from enum import Enum


class GPUFamily(Enum):
    """Known GPU families/architectures."""
    UNKNOWN = "unknown"
    KEPLER = "kepler"          # GK, GTX 750/750 Ti
    MAXWELL = "maxwell"        # GM, GTX 950-980
    PASCAL = "pascal"          # GP, GTX 1050-1080, TITAN Xp
    VOLTA = "volta"            # GV, TITAN V
    TURING = "turing"          # TU, RTX 20 / GTX 16
    AMPERE = "ampere"          # GA, RTX 30, A-series
    ADA = "ada"                # AD, RTX 40, L40, RTX 6000 Ada
    BLACKWELL = "blackwell"    # GB, RTX 50
    HOPPER = "hopper"          # GH, H100/H200
    ORIN = "orin"              # ARM-based edge/mobile


class GPUTier(Enum):
    """GPU market tier."""
    EMBEDDED = "embedded"
    BUDGET = "budget"
    MAINSTREAM = "mainstream"
    HIGH_END = "high_end"
    ULTRA = "ultra"
    PROFESSIONAL = "professional"
    DATACENTER = "datacenter"


# Codename prefix -> family. Checked in order; first match wins.
_CODENAME_PREFIXES = [
    ("GK", GPUFamily.KEPLER),
    ("GM", GPUFamily.MAXWELL),
    ("GP", GPUFamily.PASCAL),
    ("GV", GPUFamily.VOLTA),
    ("TU", GPUFamily.TURING),
    ("GA", GPUFamily.AMPERE),
    ("AD", GPUFamily.ADA),
    ("GB", GPUFamily.BLACKWELL),
    ("BL", GPUFamily.BLACKWELL),
    ("GH", GPUFamily.HOPPER),
    ("ORIN", GPUFamily.ORIN),
]

_ARCHITECTURE_LABELS = {
    "kepler": GPUFamily.KEPLER,
    "maxwell": GPUFamily.MAXWELL,
    "pascal": GPUFamily.PASCAL,
    "volta": GPUFamily.VOLTA,
    "turing": GPUFamily.TURING,
    "ampere": GPUFamily.AMPERE,
    "ada": GPUFamily.ADA,
    "ada lovelace": GPUFamily.ADA,
    "blackwell": GPUFamily.BLACKWELL,
    "hopper": GPUFamily.HOPPER,
    "orin": GPUFamily.ORIN,
}

_FAMILY_DESCRIPTIONS = {
    GPUFamily.KEPLER: "Kepler (2012-2014)",
    GPUFamily.MAXWELL: "Maxwell (2014-2016)",
    GPUFamily.PASCAL: "Pascal (2016-2017)",
    GPUFamily.VOLTA: "Volta (2017-2018)",
    GPUFamily.TURING: "Turing (2018-2020)",
    GPUFamily.AMPERE: "Ampere (2020-2021)",
    GPUFamily.ADA: "Ada Lovelace (2022-2023)",
    GPUFamily.BLACKWELL: "Blackwell (2025+)",
    GPUFamily.HOPPER: "Hopper (2022-2023, Data Center)",
    GPUFamily.ORIN: "Orin (Edge/Mobile)",
}

_TIER_DESCRIPTIONS = {
    GPUTier.EMBEDDED: "Embedded/Edge Computing",
    GPUTier.BUDGET: "Budget Consumer",
    GPUTier.MAINSTREAM: "Mainstream Consumer",
    GPUTier.HIGH_END: "High-End Consumer",
    GPUTier.ULTRA: "Ultra Enthusiast",
    GPUTier.PROFESSIONAL: "Professional Workstation",
    GPUTier.DATACENTER: "Data Center/Compute",
}


def detect_family(codename: str) -> GPUFamily:
    """
    Detect GPU family from a chip codename.

    Args:
        codename: Chip codename (e.g. "AD102", "ga104", "H100")

    Returns:
        Detected GPUFamily, UNKNOWN if not recognized
    """
    if not codename or not codename.strip():
        return GPUFamily.UNKNOWN

    name = codename.strip().upper()

    if name in ("H100", "H200"):
        return GPUFamily.HOPPER

    for prefix, family in _CODENAME_PREFIXES:
        if name.startswith(prefix):
            return family

    return GPUFamily.UNKNOWN


def family_from_architecture(architecture: str) -> GPUFamily:
    """Map a catalog architecture label (e.g. "Ada Lovelace") to a family."""
    if not architecture:
        return GPUFamily.UNKNOWN
    return _ARCHITECTURE_LABELS.get(architecture.strip().lower(), GPUFamily.UNKNOWN)


def is_compute_capable(family: GPUFamily) -> bool:
    """Whether the family is suitable for CUDA compute workloads."""
    return family != GPUFamily.UNKNOWN


def supports_nvlink(family: GPUFamily) -> bool:
    """Whether the family has NVLink-capable parts."""
    return family in (GPUFamily.VOLTA, GPUFamily.AMPERE, GPUFamily.ADA, GPUFamily.HOPPER)


def family_description(family: GPUFamily) -> str:
    return _FAMILY_DESCRIPTIONS.get(family, "Unknown")


def tier_description(tier: GPUTier) -> str:
    return _TIER_DESCRIPTIONS.get(tier, "Unknown")
