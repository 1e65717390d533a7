"""
Common test fixtures shared by all test modules.

Provides factory functions for:
- Leaf digests
- The documented pair of eight-leaf trees sharing all but their last leaf
- Stores built from those trees
"""

from typing import Optional

from nodestore.config import StoreConfig
from nodestore.crypto.hashing import int_to_digest, merge
from nodestore.merkle import MerklePath, MerkleStore, MerkleTree


# =============================================================================
# Leaf Factories
# =============================================================================

def make_leaves(count: int, start: int = 1) -> list[bytes]:
    """
    Create ``count`` distinct leaf digests.

    Leaves start at 1 so none of them equals the empty leaf (all zeros).
    """
    return [int_to_digest(start + i) for i in range(count)]


# =============================================================================
# Tree Factories
# =============================================================================

def make_tree_pair() -> tuple[MerkleTree, MerkleTree]:
    """
    Create T0 = [A..G, H0] and T1 = [A..G, H1].

    The two trees share every leaf except the last one.
    """
    leaves = make_leaves(7)
    h0, h1 = int_to_digest(8), int_to_digest(9)
    return MerkleTree(leaves + [h0]), MerkleTree(leaves + [h1])


def make_store(
    *trees: MerkleTree,
    config: Optional[StoreConfig] = None,
) -> MerkleStore:
    """Create a bootstrapped store holding the inner nodes of ``trees``."""
    store = MerkleStore(config=config)
    for tree in trees:
        store.extend(tree.inner_nodes())
    return store


# =============================================================================
# Path Helpers
# =============================================================================

def fold_path(index_value: int, value: bytes, path: MerklePath) -> bytes:
    """Recompute a root bottom-up without going through MerklePath helpers."""
    digest = value
    for sibling in path.nodes:
        if index_value & 1:
            digest = merge(sibling, digest)
        else:
            digest = merge(digest, sibling)
        index_value >>= 1
    return digest


def reachable_digests(store: MerkleStore, root: bytes) -> set[bytes]:
    """Keys of ``store`` reachable from ``root`` (reference traversal)."""
    seen: set[bytes] = set()
    pending = [root]
    while pending:
        digest = pending.pop()
        node = store.nodes.get(digest)
        if node is None or digest in seen:
            continue
        seen.add(digest)
        pending.extend([node.left, node.right])
    return seen
