"""
Pytest configuration and shared fixtures for node store tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

import importlib

_common = importlib.import_module("fixtures.common")

make_tree_pair = _common.make_tree_pair
make_store = _common.make_store

from nodestore.config import StoreConfig, set_default_config


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture(autouse=True)
def default_config():
    """Pin the process-wide config so environment variables don't leak in."""
    config = StoreConfig()
    set_default_config(config)
    yield config
    set_default_config(None)


@pytest.fixture
def tree_pair():
    """Provide the T0/T1 eight-leaf trees differing only in their last leaf."""
    return make_tree_pair()


@pytest.fixture
def store_with_pair(tree_pair):
    """Provide a store holding both trees of ``tree_pair``."""
    t0, t1 = tree_pair
    return make_store(t0, t1)


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
