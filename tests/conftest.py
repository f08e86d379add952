"""Root-level pytest fixtures for the zdcq test suite.

Provides shared configuration fixtures following the Pydantic-based
configuration layers. Tests build configs through these fixtures instead of
raw dicts.
"""

import logging

import pytest
from pathlib import Path
import tempfile
import shutil

from zdcq.schemas import ParamConfig, UserConfig, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_threshold(make_config):
    ...     config = make_config(MIN_ENTRIES_SPARSE_BIN=5)
    ...     assert config.calibration.min_entries_sparse_bin == 5
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        return resolve_config(param_config, None, None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard zdcq output directory structure.

    Returns dict with keys: base, output, qa, logs
    """
    dirs = {
        "base": temp_dir,
        "output": temp_dir / "output",
        "qa": temp_dir / "qa",
        "logs": temp_dir / "logs",
    }

    for d in dirs.values():
        d.mkdir(parents=True, exist_ok=True)

    return dirs


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def restore_logging():
    """The orchestrator reconfigures the root logger; put it back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
