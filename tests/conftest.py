"""
Shared fixtures.

Every test runs against a fresh process-wide catalog and logger, with the
user config directory pointed at a temporary location so a developer's
own ~/.config/gpupower/ never leaks into results.
"""

import pytest

from gpupower.hardware.spec_catalog import SpecCatalog, set_catalog
from gpupower.logging import set_logger


@pytest.fixture(autouse=True)
def isolated_globals(monkeypatch, tmp_path):
    monkeypatch.setenv('XDG_CONFIG_HOME', str(tmp_path / 'xdg'))
    monkeypatch.setenv('APPDATA', str(tmp_path / 'appdata'))
    monkeypatch.delenv('GPUPOWER_SPEC_FILES', raising=False)
    monkeypatch.delenv('GPUPOWER_INCLUDE_BUILTIN', raising=False)
    set_catalog(None)
    set_logger(None)
    yield
    set_catalog(None)
    set_logger(None)


@pytest.fixture
def catalog():
    """Built-in catalog."""
    return SpecCatalog()


@pytest.fixture
def test_catalog():
    """Catalog holding only a 300W test board (min 200W, max 350W)."""
    cat = SpecCatalog(include_builtin=False)
    cat.register("Test GPU", 300, 350, 200, "Ampere")
    return cat
