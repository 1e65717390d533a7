"""
Runtime Configuration

Central configuration for node store behavior and logging.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

load_dotenv()


_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _env_flag(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in _TRUE_VALUES


@dataclass
class StoreConfig:
    """
    Configuration for the node store.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction

    Attributes:
        verify_paths: Recompute and check every parent digest while
            inserting a Merkle path. Disable only for paths that were
            already verified by the caller.
        debug: Enable debug logging for the ``nodestore`` loggers.
        log_level: Log level applied by ``configure_logging`` when
            ``debug`` is off.
    """
    verify_paths: bool = True
    debug: bool = False
    log_level: str = "WARNING"

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        Supported variables:
        - NODESTORE_VERIFY_PATHS: Check path hashes on insertion (true/false)
        - NODESTORE_DEBUG: Enable debug logging (true/false)
        - NODESTORE_LOG_LEVEL: Log level name (e.g. INFO)
        """
        overrides: dict[str, Any] = {}

        verify = _env_flag("NODESTORE_VERIFY_PATHS")
        if verify is not None:
            overrides["verify_paths"] = verify
        debug = _env_flag("NODESTORE_DEBUG")
        if debug is not None:
            overrides["debug"] = debug
        if os.getenv("NODESTORE_LOG_LEVEL"):
            overrides["log_level"] = os.getenv("NODESTORE_LOG_LEVEL", "").upper()

        return overrides

    @classmethod
    def from_env(cls) -> "StoreConfig":
        """Load configuration purely from environment variables."""
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "StoreConfig":
        """Load configuration from a YAML file."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        # Accept both a flat mapping and one nested under "store"
        return cls.from_dict(data.get("store", data))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StoreConfig":
        """Load configuration from a dictionary (supports partial data)."""
        known = {"verify_paths", "debug", "log_level"}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown store config keys: {sorted(unknown)}")
        return cls(**data)

    def with_env_overrides(self) -> "StoreConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides()
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for key, value in overrides.items():
            setattr(new_config, key, value)
        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "verify_paths": self.verify_paths,
            "debug": self.debug,
            "log_level": self.log_level,
        }


def configure_logging(config: Optional[StoreConfig] = None) -> logging.Logger:
    """Apply the configured level to the ``nodestore`` logger hierarchy."""
    config = config or get_default_config()
    logger = logging.getLogger("nodestore")
    if config.debug:
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(getattr(logging, config.log_level.upper(), logging.WARNING))
    return logger


# Global default configuration
_default_config: Optional[StoreConfig] = None


def get_default_config() -> StoreConfig:
    """Get the default store configuration."""
    global _default_config
    if _default_config is None:
        _default_config = StoreConfig.from_env()
    return _default_config


def set_default_config(config: Optional[StoreConfig]) -> None:
    """Set the default store configuration (None resets to env defaults)."""
    global _default_config
    _default_config = config
