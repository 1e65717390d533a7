"""
Tree Producers
Tree types that emit their internal nodes as InnerNodeInfo streams, which
the node store ingests.

This module provides:
- MerkleTree: balanced tree over a power-of-two number of leaves
- SimpleSmt: sparse tree of fixed depth with empty-subtree compression
- Mmr: append-only mountain range accumulator

Conventions shared with the store:
- parent = merge(left, right)
- index bits are read from the root: 0 selects left, 1 selects right
"""
from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from nodestore.crypto.hashing import Digest, ensure_digest, merge
from nodestore.merkle.empty_roots import EMPTY_LEAF, empty_hashes
from nodestore.merkle.index import MAX_INDEX_DEPTH, NodeIndex
from nodestore.merkle.node import InnerNodeInfo
from nodestore.merkle.path import MerklePath
from nodestore.schemas.errors import DepthTooBig, InvalidIndex, InvalidNumEntries


class MerkleTree:
    """
    Fully balanced Merkle tree.

    Nodes are kept in breadth-first order: ``nodes[1]`` is the root and the
    children of ``nodes[i]`` are ``nodes[2i]`` and ``nodes[2i + 1]``.

    Example:
        >>> tree = MerkleTree([int_to_digest(i + 1) for i in range(4)])
        >>> tree.depth()
        2
    """

    def __init__(self, leaves: Sequence[Digest]) -> None:
        """
        Raises:
            InvalidNumEntries: If the number of leaves is not a power of two
                of at least 2
        """
        n = len(leaves)
        if n < 2 or n & (n - 1):
            raise InvalidNumEntries(
                n, f"a balanced tree needs a power of two (>= 2) leaves, got {n}"
            )

        nodes: list[Digest] = [EMPTY_LEAF] * n + [ensure_digest(leaf, "leaf") for leaf in leaves]
        for i in range(n - 1, 0, -1):
            nodes[i] = merge(nodes[2 * i], nodes[2 * i + 1])
        self._nodes = nodes

    def root(self) -> Digest:
        return self._nodes[1]

    def depth(self) -> int:
        return (len(self._nodes) // 2).bit_length() - 1

    def num_leaves(self) -> int:
        return len(self._nodes) // 2

    def get_node(self, index: NodeIndex) -> Digest:
        """
        Raises:
            DepthTooBig: If ``index`` is deeper than the tree
        """
        if index.depth > self.depth():
            raise DepthTooBig(index.depth)
        return self._nodes[index.to_scalar_index()]

    def get_path(self, index: NodeIndex) -> MerklePath:
        """Sibling path of ``index`` up to the root."""
        if index.depth > self.depth():
            raise DepthTooBig(index.depth)
        siblings = []
        while not index.is_root():
            siblings.append(self._nodes[index.sibling().to_scalar_index()])
            index = index.parent()
        return MerklePath(tuple(siblings))

    def update_leaf(self, index_value: int, value: Digest) -> None:
        """Replace a leaf and recompute its ancestors."""
        index = NodeIndex.new(self.depth(), index_value)
        pos = index.to_scalar_index()
        self._nodes[pos] = ensure_digest(value, "leaf")
        pos //= 2
        while pos >= 1:
            self._nodes[pos] = merge(self._nodes[2 * pos], self._nodes[2 * pos + 1])
            pos //= 2

    def inner_nodes(self) -> Iterator[InnerNodeInfo]:
        for i in range(1, len(self._nodes) // 2):
            yield InnerNodeInfo(
                value=self._nodes[i],
                left=self._nodes[2 * i],
                right=self._nodes[2 * i + 1],
            )


class SimpleSmt:
    """
    Sparse Merkle tree of fixed depth.

    Only leaves and branches that differ from the empty subtree are stored;
    everything else is implied by the empty subtree digests.
    """

    def __init__(self, depth: int, entries: Iterable[tuple[int, Digest]] = ()) -> None:
        """
        Raises:
            DepthTooBig: If depth is above 64
            InvalidNumEntries: If depth is below 1
        """
        if depth > MAX_INDEX_DEPTH:
            raise DepthTooBig(depth)
        if depth < 1:
            raise InvalidNumEntries(depth, f"sparse tree depth must be at least 1, got {depth}")
        self._depth = depth
        self._empty = empty_hashes(depth)
        self._leaves: dict[int, Digest] = {}
        self._branches: dict[NodeIndex, tuple[Digest, Digest]] = {}
        self._root = self._empty[0]
        for index_value, value in entries:
            self.insert(index_value, value)

    def depth(self) -> int:
        return self._depth

    def root(self) -> Digest:
        return self._root

    def get_leaf(self, index_value: int) -> Digest:
        NodeIndex.new(self._depth, index_value)
        return self._leaves.get(index_value, EMPTY_LEAF)

    def _children(self, index: NodeIndex) -> tuple[Digest, Digest]:
        empty_child = self._empty[index.depth + 1]
        return self._branches.get(index, (empty_child, empty_child))

    def get_node(self, index: NodeIndex) -> Digest:
        if index.depth > self._depth:
            raise DepthTooBig(index.depth)
        if index.depth == self._depth:
            return self._leaves.get(index.value, EMPTY_LEAF)
        if index.is_root():
            return self._root
        left, right = self._children(index.parent())
        return right if index.is_value_odd() else left

    def get_path(self, index: NodeIndex) -> MerklePath:
        """
        Raises:
            InvalidIndex: If ``index`` is the root
        """
        if index.is_root():
            raise InvalidIndex(index.depth, index.value)
        siblings = []
        while not index.is_root():
            siblings.append(self.get_node(index.sibling()))
            index = index.parent()
        return MerklePath(tuple(siblings))

    def insert(self, index_value: int, value: Digest) -> Digest:
        """Set a leaf and return its previous value."""
        index = NodeIndex.new(self._depth, index_value)
        value = ensure_digest(value, "leaf")
        previous = self._leaves.get(index_value, EMPTY_LEAF)
        if value == EMPTY_LEAF:
            self._leaves.pop(index_value, None)
        else:
            self._leaves[index_value] = value

        digest = value
        while not index.is_root():
            sibling = self.get_node(index.sibling())
            parent = index.parent()
            if index.is_value_odd():
                left, right = sibling, digest
            else:
                left, right = digest, sibling
            digest = merge(left, right)
            if digest == self._empty[parent.depth]:
                self._branches.pop(parent, None)
            else:
                self._branches[parent] = (left, right)
            index = parent

        self._root = digest
        return previous

    def inner_nodes(self) -> Iterator[InnerNodeInfo]:
        """Populated branches only; empty subtrees are left implicit."""
        for index in sorted(self._branches):
            left, right = self._branches[index]
            yield InnerNodeInfo(value=merge(left, right), left=left, right=right)


def _nodes_in_forest(forest: int) -> int:
    # each tree of 2**k leaves has 2**(k+1) - 1 nodes
    return 2 * forest - bin(forest).count("1")


class Mmr:
    """
    Merkle mountain range.

    Nodes are kept in post-order, one perfect tree per set bit of
    ``forest`` (the leaf count), largest tree first.
    """

    def __init__(self, leaves: Iterable[Digest] = ()) -> None:
        self._forest = 0
        self._nodes: list[Digest] = []
        for leaf in leaves:
            self.add(leaf)

    def forest(self) -> int:
        """Number of leaves; its set bits give the peak sizes."""
        return self._forest

    def add(self, leaf: Digest) -> None:
        """Append a leaf, merging equal-sized peaks."""
        leaf = ensure_digest(leaf, "leaf")
        self._nodes.append(leaf)

        left_offset = max(len(self._nodes) - 2, 0)
        right = leaf
        left_tree = 1
        while self._forest & left_tree:
            right = merge(self._nodes[left_offset], right)
            self._nodes.append(right)
            left_offset = max(left_offset - _nodes_in_forest(left_tree), 0)
            left_tree <<= 1

        self._forest += 1

    def _trees(self) -> Iterator[tuple[int, int]]:
        """(offset, leaf count) of each peak's tree, largest first."""
        offset = 0
        for bit in range(self._forest.bit_length() - 1, -1, -1):
            size = 1 << bit
            if self._forest & size:
                yield offset, size
                offset += 2 * size - 1

    def peaks(self) -> list[Digest]:
        return [self._nodes[offset + 2 * size - 2] for offset, size in self._trees()]

    def inner_nodes(self) -> Iterator[InnerNodeInfo]:
        for offset, size in self._trees():
            yield from self._tree_inner_nodes(offset, size)

    def _tree_inner_nodes(self, offset: int, size: int) -> Iterator[InnerNodeInfo]:
        # post-order: left subtree, right subtree, then the parent
        stack = [(offset, size)]
        while stack:
            start, leaves = stack.pop()
            if leaves < 2:
                continue
            half = leaves // 2
            left_end = start + 2 * half - 2
            right_start = start + 2 * half - 1
            right_end = right_start + 2 * half - 2
            yield InnerNodeInfo(
                value=self._nodes[start + 2 * leaves - 2],
                left=self._nodes[left_end],
                right=self._nodes[right_end],
            )
            stack.append((right_start, half))
            stack.append((start, half))


__all__ = [
    "MerkleTree",
    "SimpleSmt",
    "Mmr",
]
