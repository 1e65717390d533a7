"""
Merkle Node Store
Deduplicated storage of the internal nodes of many Merkle trees, with
lookup, openings, incremental updates and proof extraction.

This module provides:
- NodeIndex, MerklePath, ValuePath, RootPath, MerklePathSet: addressing
  and openings
- MerkleStore / RecordingMerkleStore: the node store over a plain or a
  read-recording backend
- MerkleTree, SimpleSmt, Mmr: tree producers whose internal nodes the
  store ingests
- Binary and canonical JSON encodings of the node table

Usage:
    from nodestore.merkle import MerkleStore, MerkleTree, NodeIndex

    store = MerkleStore()
    store.extend(MerkleTree(leaves).inner_nodes())

    recording = store.into_recording()
    recording.get_path(root, NodeIndex(3, 1))
    proof = recording.into_proof()

    verifier = MerkleStore.from_map(proof)
    verifier.get_path(root, NodeIndex(3, 1))
"""
from .index import MAX_INDEX_DEPTH, NodeIndex

from .node import InnerNodeInfo, Node

from .path import MerklePath, MerklePathSet, RootPath, ValuePath

from .empty_roots import (
    EMPTY_LEAF,
    MAX_EMPTY_DEPTH,
    bootstrap_nodes,
    empty_hashes,
    empty_root,
)

from .backends import KvMap, MerkleMap, ReadTracker, RecordingMerkleMap

from .store import (
    GenericMerkleStore,
    InnerNodeSource,
    MerkleStore,
    RecordingMerkleStore,
)

from .trees import MerkleTree, Mmr, SimpleSmt

from .serialization import (
    ByteReader,
    ByteWriter,
    NodeTableSnapshot,
    dumps_store_json,
    load_store,
    loads_store_json,
    read_store,
    save_store,
    store_from_bytes,
    store_to_bytes,
    write_store,
)


__all__ = [
    # Addressing
    "MAX_INDEX_DEPTH",
    "NodeIndex",
    "InnerNodeInfo",
    "Node",
    "MerklePath",
    "MerklePathSet",
    "RootPath",
    "ValuePath",
    # Empty subtrees
    "EMPTY_LEAF",
    "MAX_EMPTY_DEPTH",
    "bootstrap_nodes",
    "empty_hashes",
    "empty_root",
    # Backends
    "KvMap",
    "MerkleMap",
    "ReadTracker",
    "RecordingMerkleMap",
    # Stores
    "GenericMerkleStore",
    "InnerNodeSource",
    "MerkleStore",
    "RecordingMerkleStore",
    # Trees
    "MerkleTree",
    "Mmr",
    "SimpleSmt",
    # Serialization
    "ByteReader",
    "ByteWriter",
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
