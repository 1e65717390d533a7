"""
Node Table Serialization
Flat binary encoding of a store's node table, plus a canonical JSON
snapshot for human inspection and artifact exchange.

Binary layout (little-endian):
    u64     node_count
    repeat node_count times:
        32  key
        32  left
        32  right

Decoding is strict: truncated input, trailing bytes and malformed snapshot
entries raise DeserializationException and no partial store is returned.
Decoded stores hold exactly the encoded entries; empty subtree nodes are
not added back.
"""
from __future__ import annotations

import io
import logging
import struct
from pathlib import Path
from typing import BinaryIO, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from nodestore.config.runtime import StoreConfig
from nodestore.crypto.hashing import DIGEST_SIZE, Digest, digest_from_hex, merge, to_hex
from nodestore.merkle.backends import MerkleMap
from nodestore.merkle.node import Node
from nodestore.merkle.store import GenericMerkleStore, MerkleStore
from nodestore.schemas.canonical import dumps_canonical, loads_canonical
from nodestore.schemas.errors import (
    DeserializationException,
    InvalidDigestException,
    NodeHashMismatch,
)
from nodestore.schemas.versioning import (
    SCHEMA_VERSION,
    SchemaVersion,
    UnsupportedSchemaVersionError,
    assert_supported_schema_version,
)

logger = logging.getLogger(__name__)

_U64 = struct.Struct("<Q")


# =============================================================================
# Byte primitives
# =============================================================================

class ByteWriter:
    """Append-only byte sink."""

    def __init__(self, target: Optional[BinaryIO] = None) -> None:
        self._target = target if target is not None else io.BytesIO()

    def write_u64(self, value: int) -> None:
        self._target.write(_U64.pack(value))

    def write_digest(self, digest: Digest) -> None:
        if len(digest) != DIGEST_SIZE:
            raise InvalidDigestException(
                message=f"digest must be {DIGEST_SIZE} bytes, got {len(digest)}",
                details={"length": len(digest)},
            )
        self._target.write(digest)

    def write_node(self, node: Node) -> None:
        self.write_digest(node.left)
        self.write_digest(node.right)

    def getvalue(self) -> bytes:
        """Bytes written so far (only for the default in-memory target)."""
        return self._target.getvalue()


class ByteReader:
    """Strict reader over a byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = memoryview(data)
        self._pos = 0

    def _read(self, size: int, what: str) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise DeserializationException(
                message=f"unexpected end of input while reading {what}",
                details={"position": self._pos, "needed": size, "available": len(self._data) - self._pos},
            )
        chunk = self._data[self._pos:end].tobytes()
        self._pos = end
        return chunk

    def read_u64(self) -> int:
        return _U64.unpack(self._read(_U64.size, "u64"))[0]

    def read_digest(self) -> Digest:
        return self._read(DIGEST_SIZE, "digest")

    def read_node(self) -> Node:
        left = self.read_digest()
        right = self.read_digest()
        return Node(left, right)

    def remaining(self) -> int:
        return len(self._data) - self._pos


# =============================================================================
# Binary encoding
# =============================================================================

def write_store(store: GenericMerkleStore, writer: ByteWriter) -> None:
    """Write the node count followed by every (key, node) pair in key order."""
    entries = list(store.nodes.items())
    writer.write_u64(len(entries))
    for key, node in entries:
        writer.write_digest(key)
        writer.write_node(node)


def store_to_bytes(store: GenericMerkleStore) -> bytes:
    writer = ByteWriter()
    write_store(store, writer)
    return writer.getvalue()


def read_store(reader: ByteReader, *, config: Optional[StoreConfig] = None) -> MerkleStore:
    """
    Read one encoded node table.

    Raises:
        DeserializationException: If the input is truncated
    """
    count = reader.read_u64()
    # every entry needs three digests, reject impossible counts up front
    if count * 3 * DIGEST_SIZE > reader.remaining():
        raise DeserializationException(
            message=f"node count {count} exceeds the available input",
            details={"count": count, "available": reader.remaining()},
        )

    nodes: dict[Digest, Node] = {}
    for _ in range(count):
        key = reader.read_digest()
        nodes[key] = reader.read_node()

    logger.debug(f"decoded node table with {count} entries")
    return MerkleStore.from_map(MerkleMap(nodes), config=config)


def store_from_bytes(data: bytes, *, config: Optional[StoreConfig] = None) -> MerkleStore:
    """
    Decode a store from ``data``, which must hold exactly one node table.

    Raises:
        DeserializationException: If the input is truncated or has
            trailing bytes
    """
    reader = ByteReader(data)
    store = read_store(reader, config=config)
    if reader.remaining():
        raise DeserializationException(
            message=f"{reader.remaining()} trailing bytes after node table",
            details={"trailing": reader.remaining()},
        )
    return store


def save_store(store: GenericMerkleStore, path: str | Path) -> Path:
    """Write the binary encoding of ``store`` to ``path``."""
    path = Path(path)
    path.write_bytes(store_to_bytes(store))
    logger.debug(f"saved {len(store)} nodes to {path}")
    return path


def load_store(path: str | Path, *, config: Optional[StoreConfig] = None) -> MerkleStore:
    """
    Read a store written by ``save_store``.

    Raises:
        FileNotFoundError: If the file does not exist
        DeserializationException: If the content is malformed
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Store file not found: {path}")
    return store_from_bytes(path.read_bytes(), config=config)


# =============================================================================
# Canonical JSON snapshot
# =============================================================================

class NodeEntry(BaseModel):
    """One node of a snapshot, digests as 0x-prefixed hex."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    key: str = Field(..., description="Digest of the node")
    left: str = Field(..., description="Digest of the left child")
    right: str = Field(..., description="Digest of the right child")

    @field_validator("key", "left", "right")
    @classmethod
    def _validate_digest(cls, v: str) -> str:
        try:
            digest_from_hex(v)
        except InvalidDigestException as e:
            raise ValueError(e.message) from e
        return v.lower()


class NodeTableSnapshot(BaseModel):
    """Canonical, versioned JSON form of a node table."""

    model_config = ConfigDict(extra="forbid")

    schema_version: SchemaVersion = Field(default=SCHEMA_VERSION)
    nodes: list[NodeEntry] = Field(default_factory=list)

    @classmethod
    def from_store(cls, store: GenericMerkleStore) -> "NodeTableSnapshot":
        return cls(
            nodes=[
                NodeEntry(key=to_hex(key), left=to_hex(node.left), right=to_hex(node.right))
                for key, node in store.nodes.items()
            ]
        )

    def to_map(self, *, verify: bool = False) -> MerkleMap:
        """
        Raises:
            NodeHashMismatch: If ``verify`` is set and a key is not the
                hash of its children
        """
        nodes: dict[Digest, Node] = {}
        for entry in self.nodes:
            key = digest_from_hex(entry.key)
            node = Node(digest_from_hex(entry.left), digest_from_hex(entry.right))
            if verify:
                actual = merge(node.left, node.right)
                if actual != key:
                    raise NodeHashMismatch(key, actual)
            nodes[key] = node
        return MerkleMap(nodes)


def dumps_store_json(store: GenericMerkleStore) -> str:
    """Canonical JSON text for ``store``."""
    return dumps_canonical(NodeTableSnapshot.from_store(store))


def loads_store_json(
    text: str,
    *,
    verify: bool = False,
    config: Optional[StoreConfig] = None,
) -> MerkleStore:
    """
    Decode a store from canonical JSON.

    Raises:
        DeserializationException: If the text is not a valid snapshot
        NodeHashMismatch: If ``verify`` is set and an entry is inconsistent
    """
    data = loads_canonical(text)
    if isinstance(data, dict) and "schema_version" in data:
        try:
            assert_supported_schema_version(data["schema_version"])
        except UnsupportedSchemaVersionError as e:
            raise DeserializationException(
                message=str(e),
                details={"schema_version": e.version},
            ) from e
    try:
        snapshot = NodeTableSnapshot.model_validate(data)
    except ValidationError as e:
        raise DeserializationException(
            message=f"Invalid node table snapshot: {e.error_count()} errors",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e
    return MerkleStore.from_map(snapshot.to_map(verify=verify), config=config)


__all__ = [
    "ByteReader",
    "ByteWriter",
    "NodeEntry",
    "NodeTableSnapshot",
    "dumps_store_json",
    "load_store",
    "loads_store_json",
    "read_store",
    "save_store",
    "store_from_bytes",
    "store_to_bytes",
    "write_store",
]
