"""
Merkle Paths
Sibling paths, openings and sets of openings against a common root.

Canonical rules:
1. A path lists sibling digests from the leaf's sibling up to, but
   excluding, the root.
2. At each level the current node is the right child when the index
   value is odd: parent = merge(sibling, current); otherwise
   parent = merge(current, sibling).
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from nodestore.crypto.hashing import Digest, ensure_digest, merge
from nodestore.merkle.index import NodeIndex
from nodestore.merkle.node import InnerNodeInfo
from nodestore.schemas.errors import ConflictingRoots, InvalidPath


@dataclass(frozen=True)
class MerklePath:
    """
    Ordered sibling digests, leaf to root.

    Attributes:
        nodes: Sibling digests; ``nodes[0]`` is the leaf's own sibling
    """
    nodes: tuple[Digest, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "nodes", tuple(ensure_digest(n, "sibling") for n in self.nodes)
        )

    def depth(self) -> int:
        return len(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[Digest]:
        return iter(self.nodes)

    def __getitem__(self, item):
        return self.nodes[item]

    def inner_nodes(self, index_value: int, node: Digest) -> Iterator[InnerNodeInfo]:
        """
        Every ancestor of ``node`` implied by this path, leaf side first.

        The index is validated when this method is called, before any node
        is produced; nodes themselves are derived lazily.

        Raises:
            DepthTooBig: If the path is deeper than 64 levels
            InvalidIndex: If ``index_value`` does not fit in the path depth
        """
        index = NodeIndex.new(self.depth(), index_value)
        node = ensure_digest(node, "node")
        return self._iter_inner_nodes(index, node)

    def _iter_inner_nodes(self, index: NodeIndex, value: Digest) -> Iterator[InnerNodeInfo]:
        for sibling in self.nodes:
            if index.is_value_odd():
                left, right = sibling, value
            else:
                left, right = value, sibling
            value = merge(left, right)
            index = index.parent()
            yield InnerNodeInfo(value=value, left=left, right=right)

    def compute_root(self, index_value: int, node: Digest) -> Digest:
        """Root obtained by folding ``node`` with this path."""
        root = ensure_digest(node, "node")
        for info in self.inner_nodes(index_value, node):
            root = info.value
        return root

    def verify(self, index_value: int, node: Digest, root: Digest) -> bool:
        """True when this path opens ``node`` at ``index_value`` to ``root``."""
        return self.compute_root(index_value, node) == root


@dataclass(frozen=True)
class ValuePath:
    """A value together with the path opening it."""
    value: Digest
    path: MerklePath


@dataclass(frozen=True)
class RootPath:
    """A root together with a path opening some node to it."""
    root: Digest
    path: MerklePath


class MerklePathSet:
    """
    A set of openings of equal depth against one root.

    The first path added establishes the root; every following path must
    resolve to the same root.
    """

    def __init__(self, total_depth: int) -> None:
        NodeIndex.new(total_depth, 0)
        self.total_depth = total_depth
        self._root: Digest | None = None
        self._paths: dict[int, ValuePath] = {}

    def root(self) -> Digest | None:
        return self._root

    def depth(self) -> int:
        return self.total_depth

    def __len__(self) -> int:
        return len(self._paths)

    def add_path(self, index_value: int, value: Digest, path: MerklePath | Sequence[Digest]) -> None:
        """
        Add an opening of ``value`` at ``index_value``.

        Raises:
            InvalidPath: If the path depth differs from the set depth
            InvalidIndex: If ``index_value`` does not fit in the set depth
            ConflictingRoots: If the path resolves to a different root
        """
        if not isinstance(path, MerklePath):
            path = MerklePath(path)
        if path.depth() != self.total_depth:
            raise InvalidPath(
                f"path depth {path.depth()} does not match set depth {self.total_depth}",
                details={"expected": self.total_depth, "actual": path.depth()},
            )
        root = path.compute_root(index_value, value)
        if self._root is None:
            self._root = root
        elif root != self._root:
            raise ConflictingRoots(self._root, root)
        self._paths[index_value] = ValuePath(value=ensure_digest(value), path=path)

    def get_path(self, index_value: int) -> ValuePath:
        """
        Raises:
            KeyError: If no opening exists for ``index_value``
        """
        return self._paths[index_value]

    def indexes(self) -> list[int]:
        return sorted(self._paths)

    def to_paths(self) -> Iterator[tuple[int, ValuePath]]:
        """Openings in ascending index order."""
        for index_value in sorted(self._paths):
            yield index_value, self._paths[index_value]


__all__ = [
    "MerklePath",
    "ValuePath",
    "RootPath",
    "MerklePathSet",
]
