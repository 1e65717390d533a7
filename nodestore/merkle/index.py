"""
Node Index
Addressing of a single position inside a depth-bounded binary tree.

A NodeIndex (depth, value) names one of the 2**depth positions at the given
depth. Bits of ``value`` are read from the most significant one (closest to
the root) down to the least significant one (closest to the leaf), where a 0
bit selects the left child and a 1 bit selects the right child.
"""
from __future__ import annotations

from dataclasses import dataclass

from nodestore.schemas.errors import DepthTooBig, InvalidIndex


# Maximum depth addressable by a NodeIndex (values are 64-bit)
MAX_INDEX_DEPTH: int = 64


@dataclass(frozen=True, order=True)
class NodeIndex:
    """
    Position of a node in a binary tree.

    Attributes:
        depth: Distance from the root, 0..=64
        value: Position at that depth, must fit in ``depth`` bits
    """
    depth: int
    value: int

    def __post_init__(self) -> None:
        """Validate depth and value ranges."""
        if self.depth < 0:
            raise InvalidIndex(self.depth, self.value)
        if self.depth > MAX_INDEX_DEPTH:
            raise DepthTooBig(self.depth)
        if self.value < 0 or self.value >> self.depth:
            raise InvalidIndex(self.depth, self.value)

    @classmethod
    def new(cls, depth: int, value: int) -> "NodeIndex":
        """Build a validated index."""
        return cls(depth, value)

    @classmethod
    def root(cls) -> "NodeIndex":
        """Index of the root node."""
        return cls(0, 0)

    @classmethod
    def from_scalar_index(cls, scalar: int) -> "NodeIndex":
        """Inverse of ``to_scalar_index``; scalar 1 is the root."""
        if scalar < 1:
            raise InvalidIndex(0, scalar)
        depth = scalar.bit_length() - 1
        return cls(depth, scalar - (1 << depth))

    def is_root(self) -> bool:
        return self.depth == 0

    def is_value_odd(self) -> bool:
        """True when this node is the right child of its parent."""
        return self.value & 1 == 1

    def sibling(self) -> "NodeIndex":
        return NodeIndex(self.depth, self.value ^ 1)

    def parent(self) -> "NodeIndex":
        if self.is_root():
            raise InvalidIndex(self.depth, self.value)
        return NodeIndex(self.depth - 1, self.value >> 1)

    def left_child(self) -> "NodeIndex":
        return NodeIndex(self.depth + 1, self.value << 1)

    def right_child(self) -> "NodeIndex":
        return NodeIndex(self.depth + 1, (self.value << 1) | 1)

    def to_scalar_index(self) -> int:
        """Breadth-first position: root is 1, its children are 2 and 3."""
        return (1 << self.depth) + self.value

    def bit_at(self, level: int) -> int:
        """
        Direction taken when leaving ``level`` on the way down to this node.

        ``level`` counts from the root (0) and must be below ``depth``.
        """
        return (self.value >> (self.depth - 1 - level)) & 1


__all__ = [
    "MAX_INDEX_DEPTH",
    "NodeIndex",
]
