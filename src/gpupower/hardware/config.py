"""
Catalog Configuration

Manages configuration for the power spec catalog: which user spec files
to register and whether to load the built-in table.

Configuration is loaded from (in order of precedence):
1. Environment variables (GPUPOWER_SPEC_FILES, GPUPOWER_INCLUDE_BUILTIN)
2. User config file (~/.config/gpupower/config.json)
3. Project config file (.gpupower/config.json in the project root)
4. Defaults (built-ins only)

User spec files are YAML or JSON:

    specs:
      - name_pattern: "RTX 4070 Ti SUPER OC"
        default_tdp_watts: 300
        max_tdp_watts: 350
        min_tdp_watts: 200
        architecture: Ada Lovelace
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List, Union

import yaml

from ..core.errors import InvalidArgumentError
from ..logging import get_logger
from .spec_catalog import SpecCatalog


ENV_SPEC_FILES = 'GPUPOWER_SPEC_FILES'
ENV_INCLUDE_BUILTIN = 'GPUPOWER_INCLUDE_BUILTIN'


@dataclass
class CatalogConfig:
    """Configuration for the power spec catalog."""

    spec_files: List[Path] = field(default_factory=list)
    """User spec files registered on top of the built-in table, in order."""

    include_builtin: bool = True
    """Whether to load the built-in spec table."""

    def __post_init__(self):
        self.spec_files = [Path(p).expanduser() for p in self.spec_files]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'spec_files': [str(p) for p in self.spec_files],
            'include_builtin': self.include_builtin,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CatalogConfig':
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def _find_project_root() -> Optional[Path]:
    """Find the project root by looking for pyproject.toml or .gpupower/."""
    current = Path.cwd()
    for parent in [current] + list(current.parents):
        if (parent / 'pyproject.toml').exists() or (parent / '.gpupower').is_dir():
            return parent
    return None


def _user_config_dir() -> Path:
    if os.name == 'nt':
        return Path(os.environ.get('APPDATA', Path.home() / 'AppData' / 'Roaming'))
    return Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))


def _load_config_file(path: Path) -> Optional[Dict[str, Any]]:
    """Load configuration from a JSON file."""
    if path.exists():
        try:
            with open(path) as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            get_logger().warning(f"Ignoring unreadable config file {path}: {e}")
    return None


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ('0', 'false', 'no', 'off', '')


def load_config() -> CatalogConfig:
    """
    Get the catalog configuration.

    Loads configuration from environment variables and config files,
    with sensible defaults.

    Returns:
        CatalogConfig instance
    """
    config_data: Dict[str, Any] = {}

    # 1. Load project config (.gpupower/config.json)
    project_root = _find_project_root()
    if project_root:
        project_config = _load_config_file(project_root / '.gpupower' / 'config.json')
        if project_config:
            config_data.update(project_config)

    # 2. Load user config (~/.config/gpupower/config.json)
    user_config = _load_config_file(_user_config_dir() / 'gpupower' / 'config.json')
    if user_config:
        config_data.update(user_config)

    # 3. Environment variables (highest precedence)
    env_spec_files = os.environ.get(ENV_SPEC_FILES)
    if env_spec_files:
        config_data['spec_files'] = [p for p in env_spec_files.split(os.pathsep) if p]

    env_builtin = os.environ.get(ENV_INCLUDE_BUILTIN)
    if env_builtin is not None:
        config_data['include_builtin'] = _parse_bool(env_builtin)

    return CatalogConfig.from_dict(config_data)


def save_config(config: CatalogConfig, path: Optional[Path] = None):
    """
    Save configuration to a file.

    Args:
        config: Configuration to save
        path: Path to save to (default: user config directory)
    """
    if path is None:
        path = _user_config_dir() / 'gpupower' / 'config.json'

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)


# =============================================================================
# User spec files
# =============================================================================

def load_spec_file(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """
    Load power spec entries from a YAML or JSON file.

    The file holds either a top-level "specs" list or a bare list.
    max_tdp_watts and min_tdp_watts default to default_tdp_watts.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the extension is not .yaml, .yml or .json, or
            the document is not a list of entries
        InvalidArgumentError: If an entry has no name_pattern
    """
    path = Path(path)
    suffix = path.suffix.lower()

    with open(path, 'r') as f:
        if suffix in ('.yaml', '.yml'):
            data = yaml.safe_load(f)
        elif suffix == '.json':
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported spec file type: {path}")

    if isinstance(data, dict):
        data = data.get('specs', [])
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"Spec file must contain a list of specs: {path}")

    entries = []
    for i, raw in enumerate(data):
        if not isinstance(raw, dict) or not raw.get('name_pattern'):
            raise InvalidArgumentError(f"{path}: spec #{i} has no name_pattern")

        default_tdp = float(raw.get('default_tdp_watts', 0))
        entries.append({
            'name_pattern': str(raw['name_pattern']),
            'default_tdp_watts': default_tdp,
            'max_tdp_watts': float(raw.get('max_tdp_watts', default_tdp)),
            'min_tdp_watts': float(raw.get('min_tdp_watts', default_tdp)),
            'architecture': str(raw.get('architecture', 'Unknown')),
        })

    return entries


def register_spec_file(catalog: SpecCatalog, path: Union[str, Path]) -> int:
    """
    Register every spec in a file, in file order.

    Each registration goes to the front of the catalog, so later entries
    in the file win ties against earlier ones.

    Returns:
        Number of specs registered
    """
    entries = load_spec_file(path)
    for entry in entries:
        catalog.register(**entry)

    get_logger().debug(f"Loaded {len(entries)} power specs from {path}")
    return len(entries)


def create_catalog(config: Optional[CatalogConfig] = None) -> SpecCatalog:
    """
    Build a catalog from configuration.

    Missing spec files are reported as warnings and skipped; malformed
    ones raise.
    """
    config = config or CatalogConfig()
    catalog = SpecCatalog(include_builtin=config.include_builtin)

    for spec_file in config.spec_files:
        if not spec_file.exists():
            get_logger().warning(f"Power spec file not found: {spec_file}")
            continue
        register_spec_file(catalog, spec_file)

    return catalog
