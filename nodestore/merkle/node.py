"""
Node records held by the store and the inner-node triples emitted by trees.
"""
from __future__ import annotations

from dataclasses import dataclass

from nodestore.crypto.hashing import DIGEST_SIZE, Digest, ensure_digest, merge


@dataclass(frozen=True)
class Node:
    """
    The two children of an internal node.

    The store keys each Node by its parent digest; for nodes produced by
    tree construction or path insertion that key equals
    ``merge(left, right)``.
    """
    left: Digest
    right: Digest

    def __post_init__(self) -> None:
        object.__setattr__(self, "left", ensure_digest(self.left, "left"))
        object.__setattr__(self, "right", ensure_digest(self.right, "right"))

    def hash(self) -> Digest:
        """Digest of the parent of these two children."""
        return merge(self.left, self.right)

    def to_bytes(self) -> bytes:
        return self.left + self.right

    @classmethod
    def from_bytes(cls, data: bytes) -> "Node":
        if len(data) != 2 * DIGEST_SIZE:
            raise ValueError(f"Node encoding must be {2 * DIGEST_SIZE} bytes, got {len(data)}")
        return cls(data[:DIGEST_SIZE], data[DIGEST_SIZE:])


@dataclass(frozen=True)
class InnerNodeInfo:
    """An internal node as emitted by tree construction: parent and children."""
    value: Digest
    left: Digest
    right: Digest

    def node(self) -> Node:
        return Node(self.left, self.right)


__all__ = [
    "Node",
    "InnerNodeInfo",
]
