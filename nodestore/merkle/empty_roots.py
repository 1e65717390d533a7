"""
Empty Subtree Roots
Canonical digests of entirely unpopulated subtrees.

E(0) is the empty leaf (32 zero bytes) and E(h) = merge(E(h-1), E(h-1)).
The table is computed once, on first use, and shared read-only afterwards.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Iterator

from nodestore.crypto.hashing import DIGEST_SIZE, Digest, merge
from nodestore.merkle.node import Node
from nodestore.schemas.errors import DepthTooBig


# Deepest tree for which empty subtree roots are available
MAX_EMPTY_DEPTH: int = 255

EMPTY_LEAF: Digest = bytes(DIGEST_SIZE)


@lru_cache(maxsize=1)
def _empty_by_height() -> tuple[Digest, ...]:
    """E(0) .. E(255), indexed by subtree height."""
    table = [EMPTY_LEAF]
    for _ in range(MAX_EMPTY_DEPTH):
        table.append(merge(table[-1], table[-1]))
    return tuple(table)


def empty_hashes(depth: int) -> tuple[Digest, ...]:
    """
    Empty subtree digests for a tree of total depth ``depth``.

    Element ``d`` is the digest found at depth ``d`` of an empty tree:
    element 0 is the empty root and the last element is EMPTY_LEAF.

    Raises:
        DepthTooBig: If depth exceeds MAX_EMPTY_DEPTH
    """
    if depth < 0 or depth > MAX_EMPTY_DEPTH:
        raise DepthTooBig(depth)
    by_height = _empty_by_height()
    return tuple(reversed(by_height[: depth + 1]))


def entry(tree_depth: int, node_depth: int) -> Digest:
    """Empty digest at ``node_depth`` inside a tree of depth ``tree_depth``."""
    if node_depth < 0 or node_depth > tree_depth:
        raise DepthTooBig(node_depth)
    return empty_hashes(tree_depth)[node_depth]


def empty_root(height: int) -> Digest:
    """Root of an empty subtree with ``height`` levels below it."""
    if height < 0 or height > MAX_EMPTY_DEPTH:
        raise DepthTooBig(height)
    return _empty_by_height()[height]


def bootstrap_nodes() -> Iterator[tuple[Digest, Node]]:
    """
    Store entries describing the chain of empty subtrees.

    Yields (E(h+1), Node(E(h), E(h))) for h in 0..254, i.e. 255 entries.
    """
    by_height = _empty_by_height()
    for child, parent in zip(by_height, by_height[1:]):
        yield parent, Node(child, child)


__all__ = [
    "EMPTY_LEAF",
    "MAX_EMPTY_DEPTH",
    "bootstrap_nodes",
    "empty_hashes",
    "empty_root",
    "entry",
]
