"""
Tests for catalog configuration and user spec files.
"""

import json
import os
from pathlib import Path

import pytest
import yaml

from gpupower.core.errors import InvalidArgumentError
from gpupower.hardware.config import (
    CatalogConfig,
    load_config,
    save_config,
    load_spec_file,
    register_spec_file,
    create_catalog,
)
from gpupower.hardware.spec_catalog import SpecCatalog, get_catalog
from gpupower.logging import TelemetryLogger


@pytest.fixture
def spec_yaml(tmp_path):
    """YAML spec file with one fully specified and one minimal entry."""
    path = tmp_path / "specs.yaml"
    path.write_text(yaml.safe_dump({
        'specs': [
            {
                'name_pattern': "RTX 4070 Ti SUPER OC",
                'default_tdp_watts': 300,
                'max_tdp_watts': 350,
                'min_tdp_watts': 200,
                'architecture': "Ada Lovelace",
            },
            {
                'name_pattern': "Lab Prototype",
                'default_tdp_watts': 125,
            },
        ]
    }))
    return path


@pytest.fixture
def in_tmp_project(tmp_path, monkeypatch):
    """Run with a project root (containing .gpupower/) at tmp_path."""
    project = tmp_path / "project"
    (project / ".gpupower").mkdir(parents=True)
    monkeypatch.chdir(project)
    return project


class TestLoadSpecFile:
    """Test user spec file parsing."""

    def test_yaml(self, spec_yaml):
        """YAML with a specs list."""
        entries = load_spec_file(spec_yaml)
        assert len(entries) == 2
        assert entries[0]['name_pattern'] == "RTX 4070 Ti SUPER OC"
        assert entries[0]['max_tdp_watts'] == 350.0
        assert entries[0]['architecture'] == "Ada Lovelace"

    def test_missing_limits_default_to_tdp(self, spec_yaml):
        """Omitted max/min default to the default TDP."""
        entry = load_spec_file(spec_yaml)[1]
        assert entry['default_tdp_watts'] == 125.0
        assert entry['max_tdp_watts'] == 125.0
        assert entry['min_tdp_watts'] == 125.0
        assert entry['architecture'] == "Unknown"

    def test_json_bare_list(self, tmp_path):
        """JSON holding a bare list."""
        path = tmp_path / "specs.json"
        path.write_text(json.dumps([
            {'name_pattern': "Edge Board", 'default_tdp_watts': 40, 'architecture': "Orin"},
        ]))
        entries = load_spec_file(path)
        assert entries == [{
            'name_pattern': "Edge Board",
            'default_tdp_watts': 40.0,
            'max_tdp_watts': 40.0,
            'min_tdp_watts': 40.0,
            'architecture': "Orin",
        }]

    def test_empty_file(self, tmp_path):
        """Empty YAML document holds no specs."""
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_spec_file(path) == []

    def test_unsupported_extension(self, tmp_path):
        """Only YAML and JSON are accepted."""
        path = tmp_path / "specs.txt"
        path.write_text("RTX 4090")
        with pytest.raises(ValueError):
            load_spec_file(path)

    def test_not_a_list(self, tmp_path):
        """A scalar document is rejected."""
        path = tmp_path / "specs.yaml"
        path.write_text("just a string")
        with pytest.raises(ValueError):
            load_spec_file(path)

    def test_missing_pattern(self, tmp_path):
        """Entries need a name pattern."""
        path = tmp_path / "specs.yaml"
        path.write_text(yaml.safe_dump({'specs': [{'default_tdp_watts': 100}]}))
        with pytest.raises(InvalidArgumentError):
            load_spec_file(path)

    def test_missing_file(self, tmp_path):
        """Missing file surfaces as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_spec_file(tmp_path / "nope.yaml")


class TestRegisterSpecFile:
    """Test registering spec files into a catalog."""

    def test_registers_all(self, spec_yaml):
        """Every entry is registered."""
        catalog = SpecCatalog(include_builtin=False)
        assert register_spec_file(catalog, spec_yaml) == 2
        assert catalog.default_tdp("Lab Prototype rev B") == 125.0

    def test_user_spec_outranks_builtin(self, catalog, spec_yaml):
        """A more specific user pattern beats the built-in entry."""
        register_spec_file(catalog, spec_yaml)
        spec = catalog.lookup("NVIDIA GeForce RTX 4070 Ti SUPER OC")
        assert spec.name_pattern == "RTX 4070 Ti SUPER OC"

    def test_later_entries_win_ties(self, tmp_path):
        """Later entries in a file are registered in front of earlier ones."""
        path = tmp_path / "specs.yaml"
        path.write_text(yaml.safe_dump([
            {'name_pattern': "Lab Card", 'default_tdp_watts': 100},
            {'name_pattern': "Lab Card", 'default_tdp_watts': 110},
        ]))
        catalog = SpecCatalog(include_builtin=False)
        register_spec_file(catalog, path)
        assert catalog.default_tdp("Lab Card") == 110.0

    def test_invalid_tdp_in_file(self, tmp_path):
        """Non-positive TDP in a file is rejected at registration."""
        path = tmp_path / "specs.yaml"
        path.write_text(yaml.safe_dump([{'name_pattern': "Broken", 'default_tdp_watts': 0}]))
        with pytest.raises(ValueError):
            register_spec_file(SpecCatalog(include_builtin=False), path)


class TestCatalogConfig:
    """Test CatalogConfig dataclass."""

    def test_defaults(self):
        """Default configuration loads built-ins only."""
        config = CatalogConfig()
        assert config.spec_files == []
        assert config.include_builtin is True

    def test_paths_expanded(self):
        """Spec file paths are Path objects with ~ expanded."""
        config = CatalogConfig(spec_files=["~/specs.yaml"])
        assert config.spec_files == [Path.home() / "specs.yaml"]

    def test_dict_roundtrip(self, tmp_path):
        """to_dict / from_dict preserve settings and ignore unknown keys."""
        config = CatalogConfig(spec_files=[tmp_path / "a.yaml"], include_builtin=False)
        data = config.to_dict()
        data['unrelated'] = 1
        restored = CatalogConfig.from_dict(data)
        assert restored.spec_files == config.spec_files
        assert restored.include_builtin is False


class TestLoadConfig:
    """Test configuration precedence."""

    def test_defaults(self, in_tmp_project):
        """No files and no env give the defaults."""
        config = load_config()
        assert config.spec_files == []
        assert config.include_builtin is True

    def test_project_config(self, in_tmp_project):
        """Project config is read from .gpupower/config.json."""
        (in_tmp_project / ".gpupower" / "config.json").write_text(
            json.dumps({'spec_files': ["project.yaml"]}))
        assert load_config().spec_files == [Path("project.yaml")]

    def test_user_overrides_project(self, in_tmp_project, tmp_path):
        """User config takes precedence over project config."""
        (in_tmp_project / ".gpupower" / "config.json").write_text(
            json.dumps({'include_builtin': True, 'spec_files': ["project.yaml"]}))
        save_config(CatalogConfig(include_builtin=False))

        config = load_config()
        assert config.include_builtin is False
        assert config.spec_files == []

    def test_env_overrides_files(self, in_tmp_project, monkeypatch, tmp_path):
        """Environment variables take precedence over config files."""
        save_config(CatalogConfig(include_builtin=False))
        a = tmp_path / "a.yaml"
        b = tmp_path / "b.yaml"
        monkeypatch.setenv('GPUPOWER_SPEC_FILES', os.pathsep.join([str(a), str(b)]))
        monkeypatch.setenv('GPUPOWER_INCLUDE_BUILTIN', "yes")

        config = load_config()
        assert config.spec_files == [a, b]
        assert config.include_builtin is True

    def test_env_disables_builtins(self, in_tmp_project, monkeypatch):
        """GPUPOWER_INCLUDE_BUILTIN=0 disables the built-in table."""
        monkeypatch.setenv('GPUPOWER_INCLUDE_BUILTIN', "0")
        assert load_config().include_builtin is False

    def test_unreadable_config_ignored(self, in_tmp_project):
        """Malformed config files are skipped with a warning."""
        (in_tmp_project / ".gpupower" / "config.json").write_text("{not json")
        logger = TelemetryLogger()

        config = load_config()
        assert config.include_builtin is True
        assert "Ignoring unreadable config file" in logger.get_content()

    def test_save_config_explicit_path(self, tmp_path):
        """save_config writes JSON to the given path."""
        path = tmp_path / "out" / "config.json"
        save_config(CatalogConfig(include_builtin=False), path)
        assert json.loads(path.read_text()) == {'spec_files': [], 'include_builtin': False}


class TestCreateCatalog:
    """Test building catalogs from configuration."""

    def test_default(self):
        """No config gives the built-in catalog."""
        catalog = create_catalog()
        assert catalog.default_tdp("NVIDIA GeForce RTX 4090") == 450.0

    def test_spec_files_registered(self, spec_yaml):
        """Configured spec files are registered."""
        catalog = create_catalog(CatalogConfig(spec_files=[spec_yaml], include_builtin=False))
        assert len(catalog) == 2
        assert catalog.lookup("NVIDIA GeForce RTX 4090") is None

    def test_missing_file_skipped(self, tmp_path, spec_yaml):
        """Missing files are reported and skipped."""
        logger = TelemetryLogger()
        catalog = create_catalog(CatalogConfig(
            spec_files=[tmp_path / "missing.yaml", spec_yaml],
            include_builtin=False,
        ))
        assert len(catalog) == 2
        assert "Power spec file not found" in logger.get_content()

    def test_process_catalog_uses_env(self, in_tmp_project, monkeypatch, spec_yaml):
        """get_catalog() picks up spec files named in the environment."""
        monkeypatch.setenv('GPUPOWER_SPEC_FILES', str(spec_yaml))
        assert get_catalog().default_tdp("Lab Prototype") == 125.0
        assert get_catalog().default_tdp("NVIDIA GeForce RTX 4090") == 450.0
