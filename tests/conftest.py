"""Root-level pytest fixtures for the ramproj test suite.

Provides shared configuration fixtures and synthetic tables.
Tests use these fixtures instead of building raw dict configs.
"""

import logging

import pytest

from ramproj.schemas import ParamConfig, UserConfig, resolve_config

from helpers.fake_tables import (
    make_gradient_hydro,
    make_gravity,
    make_hand_particles,
    make_info,
    make_particles,
    make_two_level_hydro,
)


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def options(param_config):
    """Fully validated runtime configuration (no overrides)."""
    return resolve_config(param_config, None)


@pytest.fixture
def make_options(param_config):
    """Factory fixture for custom runtime configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_parallel(make_options):
    ...     options = make_options(MAX_WORKERS=4, MIN_CELLS_PARALLEL=0)
    ...     assert options.parallel.max_workers == 4
    """
    def _make(**user_overrides):
        if user_overrides:
            return resolve_config(param_config, UserConfig(**user_overrides))
        return resolve_config(param_config, None)

    return _make


@pytest.fixture
def parallel_options(make_options):
    """Options that always take the concurrent code paths."""
    return make_options(MAX_WORKERS=4, MIN_CELLS_PARALLEL=0, CHUNK_PIXELS=10)


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def info():
    return make_info()


@pytest.fixture
def two_level_hydro():
    """Level-3 box refined to level 4 in the central x-y quarter column."""
    return make_two_level_hydro()


@pytest.fixture
def gradient_hydro():
    """Level-3 box with rho = 1 + x + 2y + 4z."""
    return make_gradient_hydro()


@pytest.fixture
def gravity():
    return make_gravity()


@pytest.fixture
def particles():
    return make_particles()


@pytest.fixture
def hand_particles():
    return make_hand_particles()


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture
def restore_root_logger():
    """Drop handlers a test installed on the root logger and restore its level."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
