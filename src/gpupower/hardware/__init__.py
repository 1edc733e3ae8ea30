"""
Hardware Power Specifications

Spec catalog, catalog configuration, and GPU family classification.
"""

from .family import (
    GPUFamily,
    GPUTier,
    detect_family,
    family_from_architecture,
    is_compute_capable,
    supports_nvlink,
    family_description,
    tier_description,
)
from .spec_catalog import (
    PowerSpec,
    SpecCatalog,
    BUILTIN_SPECS,
    builtin_specs,
    get_catalog,
    set_catalog,
    reset_catalog,
)
from .config import (
    CatalogConfig,
    load_config,
    save_config,
    load_spec_file,
    register_spec_file,
    create_catalog,
)

__all__ = [
    # Family classification
    'GPUFamily',
    'GPUTier',
    'detect_family',
    'family_from_architecture',
    'is_compute_capable',
    'supports_nvlink',
    'family_description',
    'tier_description',
    # Catalog
    'PowerSpec',
    'SpecCatalog',
    'BUILTIN_SPECS',
    'builtin_specs',
    'get_catalog',
    'set_catalog',
    'reset_catalog',
    # Configuration
    'CatalogConfig',
    'load_config',
    'save_config',
    'load_spec_file',
    'register_spec_file',
    'create_catalog',
]
