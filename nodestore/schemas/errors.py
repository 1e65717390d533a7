"""
Schemas & Errors
File: errors.py

Purpose: Standard error taxonomy for the node store.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the store."""

    # Lookup Errors
    ROOT_NOT_IN_STORE = "ROOT_NOT_IN_STORE"
    NODE_NOT_IN_STORE = "NODE_NOT_IN_STORE"

    # Index & Path Errors
    DEPTH_TOO_BIG = "DEPTH_TOO_BIG"
    INVALID_INDEX = "INVALID_INDEX"
    INVALID_PATH = "INVALID_PATH"
    CONFLICTING_ROOTS = "CONFLICTING_ROOTS"
    NODE_HASH_MISMATCH = "NODE_HASH_MISMATCH"
    INVALID_NUM_ENTRIES = "INVALID_NUM_ENTRIES"

    # Encoding Errors
    INVALID_DIGEST = "INVALID_DIGEST"
    DESERIALIZATION_ERROR = "DESERIALIZATION_ERROR"

    # Recording Errors
    RECORDING_FINALIZED = "RECORDING_FINALIZED"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class StoreError(BaseModel):
    """
    Base error model for structured error communication.

    Used when an error has to cross a boundary as data (logs, reports)
    instead of being raised.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.ROOT_NOT_IN_STORE],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )

    def to_exception(self) -> "NodeStoreException":
        """Convert this error model to a raised exception."""
        return NodeStoreException(
            code=self.code,
            message=self.message,
            details=self.details,
        )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class NodeStoreException(Exception):
    """
    Base exception for all node store errors.

    Carries structured error information and can be converted
    to/from StoreError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "NODE_STORE_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_error_model(self) -> StoreError:
        """Convert this exception to a StoreError model."""
        return StoreError(
            code=self.code,
            message=self.message,
            details=self.details,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class MerkleError(NodeStoreException):
    """Base class for errors raised by tree traversal and path handling."""


class RootNotInStore(MerkleError):
    """Raised when a supplied root is not a key of the store."""

    def __init__(self, root: bytes) -> None:
        self.root = root
        super().__init__(
            message=f"root 0x{root.hex()} is not in the store",
            code=ErrorCodes.ROOT_NOT_IN_STORE,
            details={"root": "0x" + root.hex()},
        )


class NodeNotInStore(MerkleError):
    """Raised when traversal reaches a digest with no recorded children."""

    def __init__(self, digest: bytes, index: Any) -> None:
        self.digest = digest
        self.index = index
        super().__init__(
            message=(
                f"node 0x{digest.hex()} is not in the store "
                f"(opening depth={index.depth}, value={index.value})"
            ),
            code=ErrorCodes.NODE_NOT_IN_STORE,
            details={
                "digest": "0x" + digest.hex(),
                "depth": index.depth,
                "value": index.value,
            },
        )


class DepthTooBig(MerkleError):
    """Raised when a depth exceeds what the tree or the index type supports."""

    def __init__(self, depth: int) -> None:
        self.depth = depth
        super().__init__(
            message=f"depth {depth} is too big",
            code=ErrorCodes.DEPTH_TOO_BIG,
            details={"depth": depth},
        )


class InvalidIndex(MerkleError):
    """Raised when an index value does not fit in the given depth."""

    def __init__(self, depth: int, value: int) -> None:
        self.depth = depth
        self.value = value
        super().__init__(
            message=f"index value {value} is not valid for depth {depth}",
            code=ErrorCodes.INVALID_INDEX,
            details={"depth": depth, "value": value},
        )


class InvalidPath(MerkleError):
    """Raised when a Merkle path does not match the expected shape."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_PATH,
            details=details,
        )


class ConflictingRoots(MerkleError):
    """Raised when openings added to one path set resolve to different roots."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"path resolves to root 0x{actual.hex()}, expected 0x{expected.hex()}",
            code=ErrorCodes.CONFLICTING_ROOTS,
            details={"expected": "0x" + expected.hex(), "actual": "0x" + actual.hex()},
        )


class NodeHashMismatch(MerkleError):
    """Raised when an inserted node's key is not the hash of its children."""

    def __init__(self, expected: bytes, actual: bytes) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            message=f"node hashes to 0x{actual.hex()}, expected 0x{expected.hex()}",
            code=ErrorCodes.NODE_HASH_MISMATCH,
            details={"expected": "0x" + expected.hex(), "actual": "0x" + actual.hex()},
        )


class InvalidNumEntries(MerkleError):
    """Raised when a tree is built from an unsupported number of leaves."""

    def __init__(self, num_entries: int, message: str | None = None) -> None:
        self.num_entries = num_entries
        super().__init__(
            message=message or f"invalid number of entries: {num_entries}",
            code=ErrorCodes.INVALID_NUM_ENTRIES,
            details={"num_entries": num_entries},
        )


class InvalidDigestException(NodeStoreException):
    """Exception raised when a value is not a well-formed digest."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_DIGEST,
            details=details,
        )


class DeserializationException(NodeStoreException):
    """Exception raised when an encoded node table cannot be decoded."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.DESERIALIZATION_ERROR,
            details=details,
        )


class RecordingFinalizedException(NodeStoreException):
    """Exception raised when a recording map is used after its proof was taken."""

    def __init__(self, message: str = "recording has already been finalized") -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.RECORDING_FINALIZED,
        )
