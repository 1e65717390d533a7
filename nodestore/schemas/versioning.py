"""
Schemas & Canonicalization
File: versioning.py

Purpose: Version tag carried by every node table snapshot.
Imports nothing from the rest of the package so any module can use it.
"""

from typing import Literal

# Version written into new snapshots
SCHEMA_VERSION: str = "v1"

SchemaVersion = Literal["v1"]

# Versions this release can read back
SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({SCHEMA_VERSION})


class UnsupportedSchemaVersionError(ValueError):
    """Raised when a snapshot declares a version this release cannot read."""

    def __init__(self, version: object) -> None:
        self.version = version
        super().__init__(
            f"Unsupported schema version {version!r}; "
            f"readable versions: {', '.join(sorted(SUPPORTED_SCHEMA_VERSIONS))}"
        )


def assert_supported_schema_version(version: object) -> None:
    """
    Raises:
        UnsupportedSchemaVersionError: If ``version`` cannot be read.
    """
    if not isinstance(version, str) or version not in SUPPORTED_SCHEMA_VERSIONS:
        raise UnsupportedSchemaVersionError(version)
