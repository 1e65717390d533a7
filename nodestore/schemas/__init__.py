"""
Schemas & Errors

Purpose: Export the public API for the schemas module: the error taxonomy,
canonical JSON helpers and snapshot versioning.
"""

from .versioning import (
    SCHEMA_VERSION,
    SUPPORTED_SCHEMA_VERSIONS,
    SchemaVersion,
    UnsupportedSchemaVersionError,
    assert_supported_schema_version,
)

from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonicalize_value,
    dumps_canonical,
    loads_canonical,
)

from .errors import (
    ConflictingRoots,
    DepthTooBig,
    DeserializationException,
    ErrorCodes,
    InvalidDigestException,
    InvalidIndex,
    InvalidNumEntries,
    InvalidPath,
    MerkleError,
    NodeHashMismatch,
    NodeNotInStore,
    NodeStoreException,
    RecordingFinalizedException,
    RootNotInStore,
    StoreError,
)

__all__ = [
    # Versioning
    "SCHEMA_VERSION",
    "SUPPORTED_SCHEMA_VERSIONS",
    "SchemaVersion",
    "UnsupportedSchemaVersionError",
    "assert_supported_schema_version",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "canonicalize_value",
    "dumps_canonical",
    "loads_canonical",
    # Errors
    "ConflictingRoots",
    "DepthTooBig",
    "DeserializationException",
    "ErrorCodes",
    "InvalidDigestException",
    "InvalidIndex",
    "InvalidNumEntries",
    "InvalidPath",
    "MerkleError",
    "NodeHashMismatch",
    "NodeNotInStore",
    "NodeStoreException",
    "RecordingFinalizedException",
    "RootNotInStore",
    "StoreError",
]
