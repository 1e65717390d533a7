"""
Merkle Node Store
Deduplicated in-memory store of the internal nodes of many Merkle trees.

Every internal node is kept once, keyed by its digest, no matter how many
trees share it. Trees are addressed by their root digest; positions inside
a tree by NodeIndex.

This module provides:
- GenericMerkleStore: the algorithms, parameterized over a KvMap backend
- MerkleStore: store backed by a plain MerkleMap
- RecordingMerkleStore: store that records which entries its reads touch,
  for export as a minimal proof

Usage:
    from nodestore.merkle import MerkleStore, MerkleTree, NodeIndex

    store = MerkleStore()
    tree = MerkleTree(leaves)
    store.extend(tree.inner_nodes())

    leaf = store.get_node(tree.root(), NodeIndex(3, 5))
    opening = store.get_path(tree.root(), NodeIndex(3, 5))

Store invariants:
1. A new store holds the 255 nodes describing empty subtrees.
2. Nodes are never removed; the store only grows.
3. Insertion is idempotent: a key always maps to the same children when
   nodes are derived with the compression function.
"""
from __future__ import annotations

import logging
from typing import (
    Generic,
    Iterable,
    Iterator,
    Optional,
    Protocol,
    TypeVar,
    runtime_checkable,
)

from nodestore.config.runtime import StoreConfig, get_default_config
from nodestore.crypto.hashing import Digest, ensure_digest, merge
from nodestore.merkle.backends import KvMap, MerkleMap, RecordingMerkleMap
from nodestore.merkle.empty_roots import bootstrap_nodes, empty_hashes
from nodestore.merkle.index import MAX_INDEX_DEPTH, NodeIndex
from nodestore.merkle.node import InnerNodeInfo, Node
from nodestore.merkle.path import MerklePath, MerklePathSet, RootPath, ValuePath
from nodestore.schemas.errors import (
    DepthTooBig,
    NodeHashMismatch,
    NodeNotInStore,
    RootNotInStore,
)

logger = logging.getLogger(__name__)


M = TypeVar("M", bound=KvMap)
S = TypeVar("S", bound="GenericMerkleStore")


@runtime_checkable
class InnerNodeSource(Protocol):
    """Anything that can describe its internal nodes (trees, accumulators)."""

    def inner_nodes(self) -> Iterable[InnerNodeInfo]:
        ...


def _to_pairs(nodes: Iterable[InnerNodeInfo]) -> Iterator[tuple[Digest, Node]]:
    for info in nodes:
        yield info.value, Node(info.left, info.right)


def _combine_with_empty_hashes(nodes: Iterable[InnerNodeInfo]) -> Iterator[tuple[Digest, Node]]:
    yield from _to_pairs(nodes)
    yield from bootstrap_nodes()


def _reverse_bits(value: int, width: int) -> int:
    """Reverse the lowest ``width`` bits of ``value``."""
    return int(format(value, f"0{width}b")[::-1], 2)


class GenericMerkleStore(Generic[M]):
    """
    Node store over an arbitrary KvMap backend.

    Subclasses pick the backend by setting ``map_class``.
    """

    map_class: type[KvMap] = MerkleMap

    def __init__(
        self,
        nodes: Optional[M] = None,
        *,
        config: Optional[StoreConfig] = None,
    ) -> None:
        """
        Create a store.

        Args:
            nodes: Backend to wrap as-is. When omitted, a new backend is
                created and populated with the empty subtree nodes.
            config: Store configuration; defaults to the process default
        """
        if nodes is None:
            nodes = self.map_class.from_pairs(bootstrap_nodes())
        self._nodes: M = nodes
        self._config = config or get_default_config()

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def from_inner_nodes(
        cls: type[S],
        nodes: Iterable[InnerNodeInfo],
        *,
        config: Optional[StoreConfig] = None,
    ) -> S:
        """Store holding ``nodes`` plus the empty subtree nodes."""
        backend = cls.map_class.from_pairs(_combine_with_empty_hashes(nodes))
        return cls(backend, config=config)

    @classmethod
    def from_tree(
        cls: type[S],
        tree: InnerNodeSource,
        *,
        config: Optional[StoreConfig] = None,
    ) -> S:
        """
        Store holding every internal node of ``tree`` plus the empty nodes.

        ``tree`` may be a balanced tree, a sparse tree, a mountain range or
        any other object exposing ``inner_nodes()``.
        """
        if not isinstance(tree, InnerNodeSource):
            raise TypeError(f"{type(tree).__name__} does not provide inner_nodes()")
        return cls.from_inner_nodes(tree.inner_nodes(), config=config)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def nodes(self) -> M:
        """The backend map."""
        return self._nodes

    def num_internal_nodes(self) -> int:
        """Count of non-leaf nodes in the store."""
        return len(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, digest: object) -> bool:
        return isinstance(digest, bytes) and self._nodes.contains_key(digest)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GenericMerkleStore):
            return NotImplemented
        return type(self) is type(other) and self._nodes == other._nodes

    def __repr__(self) -> str:
        return f"{type(self).__name__}(num_internal_nodes={len(self._nodes)})"

    def get_node(self, root: Digest, index: NodeIndex) -> Digest:
        """
        Digest at ``index`` in the tree rooted at ``root``.

        Raises:
            RootNotInStore: If ``root`` is not in the store, even when
                ``index`` is the root itself
            NodeNotInStore: If a node needed to reach ``index`` is missing
        """
        digest = root
        if self._nodes.get(digest) is None:
            raise RootNotInStore(digest)

        for level in range(index.depth):
            node = self._nodes.get(digest)
            if node is None:
                raise NodeNotInStore(digest, index)
            digest = node.right if index.bit_at(level) else node.left

        return digest

    def get_path(self, root: Digest, index: NodeIndex) -> ValuePath:
        """
        Digest at ``index`` and its opening to ``root``.

        The returned path starts at the sibling of the target node.

        Raises:
            RootNotInStore: If ``root`` is not in the store
            NodeNotInStore: If a node needed to reach ``index`` is missing
        """
        digest = root
        siblings: list[Digest] = []
        if self._nodes.get(digest) is None:
            raise RootNotInStore(digest)

        for level in range(index.depth):
            node = self._nodes.get(digest)
            if node is None:
                raise NodeNotInStore(digest, index)
            if index.bit_at(level):
                siblings.append(node.left)
                digest = node.right
            else:
                siblings.append(node.right)
                digest = node.left

        # collected root to leaf, paths are leaf to root
        siblings.reverse()
        return ValuePath(value=digest, path=MerklePath(tuple(siblings)))

    def get_leaf_depth(self, root: Digest, tree_depth: int, index_value: int) -> int:
        """
        Depth at which the path to ``index_value`` reaches a leaf or an
        empty subtree.

        The tree is traversed from ``root`` for at most ``tree_depth``
        levels, following the bits of ``index_value`` from the most
        significant one.

        Raises:
            DepthTooBig: If ``tree_depth`` exceeds 64, or the tree continues
                below ``tree_depth``
            InvalidIndex: If ``index_value`` does not fit in ``tree_depth``
            RootNotInStore: If ``root`` is not in the store
        """
        if tree_depth > MAX_INDEX_DEPTH:
            raise DepthTooBig(tree_depth)
        NodeIndex.new(tree_depth, index_value)

        if tree_depth == 0:
            return 0

        empty = empty_hashes(tree_depth)
        digest = root
        if not self._nodes.contains_key(digest):
            raise RootNotInStore(digest)

        # traversal goes root to leaf, so consume the index from its top bit
        path = _reverse_bits(index_value, tree_depth)

        for depth in range(tree_depth):
            if digest == empty[depth]:
                return depth

            children = self._nodes.get(digest)
            if children is None:
                return depth

            digest = children.right if path & 1 else children.left
            path >>= 1

        if self._nodes.contains_key(digest):
            raise DepthTooBig(tree_depth + 1)

        return tree_depth

    def inner_nodes(self) -> Iterator[InnerNodeInfo]:
        """Every node of the store as an InnerNodeInfo, in key order."""
        for value, node in self._nodes.items():
            yield InnerNodeInfo(value=value, left=node.left, right=node.right)

    # -------------------------------------------------------------------------
    # Data extractors
    # -------------------------------------------------------------------------

    def subset(self: S, roots: Iterable[Digest]) -> S:
        """
        New store holding exactly the nodes reachable from ``roots``.

        The result starts from an empty backend, so it carries no empty
        subtree nodes beyond those actually reachable. Roots that are not
        in this store are skipped.
        """
        store = type(self)(self.map_class(), config=self._config)
        requested = 0
        for root in roots:
            requested += 1
            store._clone_tree_from(root, self)
        logger.debug(
            f"extracted subset of {len(store)} nodes from {requested} roots "
            f"(source holds {len(self)})"
        )
        return store

    def _clone_tree_from(self, root: Digest, source: "GenericMerkleStore") -> None:
        stack = [root]
        while stack:
            digest = stack.pop()
            node = source._nodes.get(digest)
            if node is None:
                continue
            # already present means its whole subtree was copied before
            if self._nodes.insert(digest, node) is None:
                stack.append(node.right)
                stack.append(node.left)

    # -------------------------------------------------------------------------
    # State mutators
    # -------------------------------------------------------------------------

    def extend(self, nodes: Iterable[InnerNodeInfo]) -> None:
        """Insert internal nodes emitted by a tree."""
        self._nodes.extend(_to_pairs(nodes))

    def add_merkle_path(
        self,
        index_value: int,
        node: Digest,
        path: MerklePath | Iterable[Digest],
    ) -> Digest:
        """
        Insert every ancestor of ``node`` implied by ``path``; return the root.

        When ``config.verify_paths`` is on, each derived parent is checked
        against the compression of its children before insertion. Nodes are
        inserted as they are derived, so a failure part-way leaves the
        already derived ancestors in the store.

        Raises:
            DepthTooBig: If the path is deeper than 64 levels
            InvalidIndex: If ``index_value`` does not fit in the path depth
            NodeHashMismatch: If verification is on and a node is inconsistent
        """
        if not isinstance(path, MerklePath):
            path = MerklePath(tuple(path))

        root = ensure_digest(node, "node")
        verify = self._config.verify_paths
        for info in path.inner_nodes(index_value, node):
            if verify:
                expected = merge(info.left, info.right)
                if expected != info.value:
                    raise NodeHashMismatch(expected, info.value)
            self._nodes.insert(info.value, Node(info.left, info.right))
            root = info.value

        logger.debug(f"added merkle path of depth {path.depth()} at index {index_value}")
        return root

    def add_merkle_paths(
        self,
        paths: Iterable[tuple[int, Digest, MerklePath | Iterable[Digest]]],
    ) -> None:
        """
        Insert the nodes of several Merkle paths, stopping at the first error.

        Each item is an ``(index_value, node, path)`` triple.
        """
        for index_value, node, path in paths:
            self.add_merkle_path(index_value, node, path)

    def add_merkle_path_set(self, path_set: MerklePathSet) -> Optional[Digest]:
        """Insert every opening of ``path_set``; return the set's root."""
        root = path_set.root()
        for index_value, opening in path_set.to_paths():
            self.add_merkle_path(index_value, opening.value, opening.path)
        return root

    def set_node(self, root: Digest, index: NodeIndex, value: Digest) -> RootPath:
        """
        Replace the node at ``index`` with ``value``.

        Siblings do not change when one node changes, so the returned path
        is the existing opening. When the node already equals ``value`` the
        store is left untouched and ``root`` is returned.

        Raises:
            RootNotInStore: If ``root`` is not in the store
            NodeNotInStore: If a node needed to reach ``index`` is missing
        """
        opening = self.get_path(root, index)

        if opening.value != value:
            root = self.add_merkle_path(index.value, value, opening.path)

        return RootPath(root=root, path=opening.path)

    def merge_roots(self, left_root: Digest, right_root: Digest) -> Digest:
        """
        Join two digests under a new parent node and return the parent.

        The children may be leaves, roots or a mix; they need not be in the
        store.
        """
        parent = merge(left_root, right_root)
        self._nodes.insert(parent, Node(left_root, right_root))
        logger.debug(f"merged roots into 0x{parent.hex()}")
        return parent


class MerkleStore(GenericMerkleStore[MerkleMap]):
    """Node store backed by a plain MerkleMap."""

    map_class = MerkleMap

    @classmethod
    def from_map(
        cls,
        nodes: MerkleMap,
        *,
        config: Optional[StoreConfig] = None,
    ) -> "MerkleStore":
        """Wrap an existing map without adding the empty subtree nodes."""
        return cls(nodes, config=config)

    def into_recording(self) -> "RecordingMerkleStore":
        """Recording store over a copy of this store's entries."""
        return RecordingMerkleStore.from_store(self)


class RecordingMerkleStore(GenericMerkleStore[RecordingMerkleMap]):
    """
    Node store that records the entries its queries read.

    Built from an existing MerkleStore; after running queries,
    ``into_proof`` returns the entries a verifier needs to replay them.
    """

    map_class = RecordingMerkleMap

    @classmethod
    def from_store(cls, store: MerkleStore) -> "RecordingMerkleStore":
        """Start recording over the entries of ``store``, with empty history."""
        backend = RecordingMerkleMap.from_pairs(store.nodes.items())
        logger.debug(f"started recording over {len(backend)} nodes")
        return cls(backend, config=store.config)

    def into_proof(self) -> MerkleMap:
        """
        Finalize and return the entries of the initial data set that were read.

        The store cannot be used afterwards.
        """
        proof = self._nodes.into_proof()
        logger.debug(f"exported proof with {len(proof)} nodes")
        return proof


__all__ = [
    "GenericMerkleStore",
    "InnerNodeSource",
    "MerkleStore",
    "RecordingMerkleStore",
]
