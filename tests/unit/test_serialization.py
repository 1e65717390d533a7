"""
Serialization Unit Tests
Tests for nodestore/merkle/serialization.py

Covers:
1. Binary node table layout and strict decoding
2. File save/load
3. Canonical JSON snapshots
"""
import json
import struct

import pytest

from nodestore.crypto.hashing import int_to_digest
from nodestore.merkle import (
    ByteReader,
    ByteWriter,
    MerkleStore,
    NodeIndex,
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
from nodestore.schemas.errors import DeserializationException, NodeHashMismatch


class TestBinaryEncoding:
    """Tests for the flat binary layout."""

    def test_round_trip(self, store_with_pair):
        decoded = store_from_bytes(store_to_bytes(store_with_pair))

        assert decoded == store_with_pair

    def test_layout(self, store_with_pair):
        data = store_to_bytes(store_with_pair)
        count = store_with_pair.num_internal_nodes()

        assert len(data) == 8 + 96 * count
        assert struct.unpack("<Q", data[:8])[0] == count

        first_key = min(store_with_pair.nodes)
        assert data[8:40] == first_key
        node = store_with_pair.nodes.get(first_key)
        assert data[40:72] == node.left
        assert data[72:104] == node.right

    def test_encoding_is_deterministic(self, tree_pair):
        t0, t1 = tree_pair
        a = MerkleStore()
        a.extend(t0.inner_nodes())
        a.extend(t1.inner_nodes())
        b = MerkleStore()
        b.extend(t1.inner_nodes())
        b.extend(t0.inner_nodes())

        assert store_to_bytes(a) == store_to_bytes(b)

    def test_decoding_adds_no_empty_nodes(self, store_with_pair, tree_pair):
        t0, _ = tree_pair
        sub = store_with_pair.subset([t0.root()])

        decoded = store_from_bytes(store_to_bytes(sub))

        assert decoded.num_internal_nodes() == 7
        assert decoded.get_node(t0.root(), NodeIndex(3, 4)) == int_to_digest(5)

    def test_empty_store(self):
        empty = MerkleStore().subset([])

        assert store_to_bytes(empty) == b"\x00" * 8
        assert store_from_bytes(b"\x00" * 8).num_internal_nodes() == 0

    def test_truncated_input_rejected(self, store_with_pair):
        data = store_to_bytes(store_with_pair)

        for cut in (0, 4, 8 + 95, len(data) - 1):
            with pytest.raises(DeserializationException):
                store_from_bytes(data[:cut])

    def test_oversized_count_rejected(self):
        data = struct.pack("<Q", 2 ** 40) + bytes(96)

        with pytest.raises(DeserializationException, match="exceeds"):
            store_from_bytes(data)

    def test_trailing_bytes_rejected(self, store_with_pair):
        data = store_to_bytes(store_with_pair) + b"\x00"

        with pytest.raises(DeserializationException, match="trailing"):
            store_from_bytes(data)

    def test_reader_and_writer_compose(self, tree_pair):
        """Two tables written back to back can be read one after the other."""
        t0, t1 = tree_pair
        first = MerkleStore.from_tree(t0).subset([t0.root()])
        second = MerkleStore.from_tree(t1).subset([t1.root()])
        writer = ByteWriter()
        write_store(first, writer)
        write_store(second, writer)

        reader = ByteReader(writer.getvalue())

        assert read_store(reader) == first
        assert read_store(reader) == second
        assert reader.remaining() == 0


class TestFileIO:
    """Tests for save_store / load_store."""

    def test_save_and_load(self, tmp_path, store_with_pair):
        path = save_store(store_with_pair, tmp_path / "store.bin")

        assert path.exists()
        assert load_store(path) == store_with_pair

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_store(tmp_path / "missing.bin")


class TestJsonSnapshot:
    """Tests for the canonical JSON form."""

    def test_round_trip(self, store_with_pair):
        text = dumps_store_json(store_with_pair)

        assert loads_store_json(text) == store_with_pair

    def test_snapshot_is_canonical(self, store_with_pair):
        text = dumps_store_json(store_with_pair)
        data = json.loads(text)

        assert " " not in text
        assert data["schema_version"] == "v1"
        assert data["nodes"][0]["key"].startswith("0x")
        keys = [entry["key"] for entry in data["nodes"]]
        assert keys == sorted(keys)

    def test_verify_accepts_consistent_table(self, store_with_pair):
        text = dumps_store_json(store_with_pair)

        assert loads_store_json(text, verify=True) == store_with_pair

    def test_verify_rejects_tampered_entry(self, store_with_pair):
        snapshot = NodeTableSnapshot.from_store(store_with_pair)
        data = snapshot.model_dump()
        data["nodes"][0]["left"] = "0x" + "11" * 32
        text = json.dumps(data)

        with pytest.raises(NodeHashMismatch):
            loads_store_json(text, verify=True)
        assert loads_store_json(text).num_internal_nodes() == store_with_pair.num_internal_nodes()

    def test_invalid_digest_rejected(self):
        text = json.dumps({"schema_version": "v1", "nodes": [{"key": "0x01", "left": "0x01", "right": "0x01"}]})

        with pytest.raises(DeserializationException):
            loads_store_json(text)

    def test_unknown_schema_version_rejected(self):
        with pytest.raises(DeserializationException, match="schema version"):
            loads_store_json(json.dumps({"schema_version": "v9", "nodes": []}))

    def test_invalid_json_rejected(self):
        with pytest.raises(DeserializationException):
            loads_store_json("{not json")
