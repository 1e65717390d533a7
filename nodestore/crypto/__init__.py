"""
Core cryptographic utilities.

Provides the digest type and the compression function shared by all trees.
"""
from .hashing import (
    DIGEST_SIZE,
    Digest,
    sha256,
    ensure_digest,
    merge,
    hash_concat,
    int_to_digest,
    to_hex,
    from_hex,
    digest_from_hex,
)

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
