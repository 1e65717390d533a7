"""
Runtime Configuration Module

Provides configuration loading and management for the node store.
"""

from .runtime import (
    StoreConfig,
    configure_logging,
    get_default_config,
    set_default_config,
)

__all__ = [
    "StoreConfig",
    "configure_logging",
    "get_default_config",
    "set_default_config",
]
