"""Root-level pytest fixtures for the markprep test suite.

Provides shared configuration fixtures following Pydantic-based architecture.
All tests must use these fixtures instead of creating raw dict configs.
"""

import logging

import pytest
from pathlib import Path
import tempfile
import shutil

from markprep.schemas import ParamConfig, UserConfig, InternalConfig, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================


@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using make_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors that do not need
    an occasion count (e.g. the loader).

    Examples
    --------
    >>> def test_loader_init(internal_config):
    ...     loader = SurveyRecordLoader(internal_config)
    ...     assert loader.delimiter == ","
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_known_fate(make_config):
    ...     config = make_config(MODEL="Known", N_OCCASIONS=3)
    ...     builder = EncounterHistoryBuilder(config)
    ...     assert builder.n_occasions == 3
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


@pytest.fixture
def runtime_config(make_config, temp_dir):
    """Factory for configs a full pipeline run accepts.

    Writes ``events_csv`` to ``temp_dir/events.csv`` and points the config
    at it, with outputs under ``temp_dir/out``.
    """
    def _make(events_csv: str, **user_overrides):
        events_path = temp_dir / "events.csv"
        events_path.write_text(events_csv)
        user_overrides.setdefault("EVENTS_FILE", str(events_path))
        user_overrides.setdefault("BASE_DIR", str(temp_dir / "out"))
        return make_config(**user_overrides)

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
    """Standard markprep output directory structure.

    Returns dict with keys: base, formatted, logs
    All directories are created and cleaned up automatically.
    """
    dirs = {
        "base": temp_dir,
        "formatted": temp_dir / "formatted",
        "logs": temp_dir / "logs",
    }

    for d in dirs.values():
        d.mkdir(parents=True, exist_ok=True)

    return dirs


# =============================================================================
# Logging Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def restore_root_logging():
    """PipelineOrchestrator replaces root handlers; put the originals back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
