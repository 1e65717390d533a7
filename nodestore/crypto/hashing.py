"""
Hashing Utilities
Digest type and the two-to-one compression function used to derive
parent digests in every tree held by the store.

This module provides:
- SHA-256 hashing for raw bytes
- The merge (compression) function: parent = sha256(left + right)
- Digest validation
- Hex encoding/decoding with 0x prefix

Determinism Notes:
- Digests are plain 32-byte ``bytes`` values; their natural ordering is
  the ordering used wherever iteration must be deterministic.
"""
from __future__ import annotations

import hashlib
from typing import Any

from nodestore.schemas.errors import InvalidDigestException

# Width of every digest handled by the store
DIGEST_SIZE: int = 32

# Type alias for readability in signatures
Digest = bytes


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def ensure_digest(value: Any, name: str = "digest") -> Digest:
    """
    Validate that a value is a well-formed digest and return it as bytes.

    Args:
        value: Candidate digest (bytes, bytearray or memoryview)
        name: Name used in the error message

    Returns:
        The value as immutable bytes

    Raises:
        InvalidDigestException: If the value is not DIGEST_SIZE bytes
    """
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidDigestException(
            message=f"{name} must be bytes, got {type(value).__name__}",
            details={"name": name, "type": type(value).__name__},
        )
    value = bytes(value)
    if len(value) != DIGEST_SIZE:
        raise InvalidDigestException(
            message=f"{name} must be {DIGEST_SIZE} bytes, got {len(value)}",
            details={"name": name, "length": len(value)},
        )
    return value


def merge(left: Digest, right: Digest) -> Digest:
    """
    Compress two child digests into their parent digest.

    parent = sha256(left + right)

    Args:
        left: Left child digest
        right: Right child digest

    Returns:
        32-byte parent digest

    Raises:
        InvalidDigestException: If either child is not a 32-byte digest
    """
    left = ensure_digest(left, "left")
    right = ensure_digest(right, "right")
    return sha256(left + right)


def hash_concat(left: bytes, right: bytes) -> bytes:
    """Hash the concatenation of two byte sequences without validation."""
    return sha256(left + right)


def int_to_digest(value: int) -> Digest:
    """
    Encode a non-negative integer as a big-endian 32-byte digest.

    Handy for building leaf values:
        >>> int_to_digest(1)[-1]
        1
    """
    return value.to_bytes(DIGEST_SIZE, "big")


def to_hex(data: bytes) -> str:
    """
    Convert bytes to hexadecimal string with 0x prefix.

    Example:
        >>> to_hex(bytes.fromhex("deadbeef"))
        '0xdeadbeef'
    """
    return "0x" + data.hex()


def from_hex(hex_string: str) -> bytes:
    """
    Convert hexadecimal string (with 0x prefix) to bytes.

    Raises:
        ValueError: If string doesn't start with 0x, has odd length,
                   or contains invalid hex characters
    """
    if not hex_string.startswith("0x"):
        raise ValueError(
            f"Hex string must start with '0x' prefix, got: {hex_string[:10]}..."
        )

    hex_content = hex_string[2:]

    if len(hex_content) % 2 != 0:
        raise ValueError(
            f"Hex string must have even length after 0x prefix, "
            f"got length {len(hex_content)}"
        )

    try:
        return bytes.fromhex(hex_content)
    except ValueError as e:
        raise ValueError(f"Invalid hex characters in string: {e}") from e


def digest_from_hex(hex_string: str) -> Digest:
    """
    Decode a 0x-prefixed hex string into a digest.

    Raises:
        InvalidDigestException: If the string is not valid hex or has the
            wrong length
    """
    try:
        raw = from_hex(hex_string)
    except ValueError as e:
        raise InvalidDigestException(
            message=str(e),
            details={"value": hex_string[:80]},
        ) from e
    return ensure_digest(raw)


__all__ = [
    "DIGEST_SIZE",
    "Digest",
    "sha256",
    "ensure_digest",
    "merge",
    "hash_concat",
    "int_to_digest",
    "to_hex",
    "from_hex",
    "digest_from_hex",
]
