"""
nodestore

Deduplicated in-memory store of authenticated-tree internal nodes, shared
across balanced trees, sparse trees and mountain ranges.
"""

from nodestore.merkle import (
    MerklePath,
    MerkleStore,
    MerkleTree,
    Mmr,
    NodeIndex,
    RecordingMerkleStore,
    SimpleSmt,
)

__version__ = "0.1.0"

__all__ = [
    "MerklePath",
    "MerkleStore",
    "MerkleTree",
    "Mmr",
    "NodeIndex",
    "RecordingMerkleStore",
    "SimpleSmt",
    "__version__",
]
