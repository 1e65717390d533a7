"""
Primitive Type Unit Tests
Tests for hashing, NodeIndex, Node and the empty subtree table.
"""
import hashlib

import pytest

from nodestore.crypto.hashing import (
    DIGEST_SIZE,
    digest_from_hex,
    ensure_digest,
    from_hex,
    hash_concat,
    int_to_digest,
    merge,
    to_hex,
)
from nodestore.merkle import (
    EMPTY_LEAF,
    InnerNodeInfo,
    Node,
    NodeIndex,
    bootstrap_nodes,
    empty_hashes,
    empty_root,
)
from nodestore.merkle.empty_roots import entry
from nodestore.schemas.errors import DepthTooBig, InvalidDigestException, InvalidIndex


class TestMerge:
    """Tests for the compression function."""

    def test_merge_is_sha256_of_concatenation(self):
        left, right = int_to_digest(1), int_to_digest(2)

        assert merge(left, right) == hashlib.sha256(left + right).digest()

    def test_merge_is_order_sensitive(self):
        left, right = int_to_digest(1), int_to_digest(2)

        assert merge(left, right) != merge(right, left)

    def test_merge_rejects_short_input(self):
        with pytest.raises(InvalidDigestException):
            merge(b"\x01" * 31, int_to_digest(2))

    def test_merge_rejects_non_bytes(self):
        with pytest.raises(InvalidDigestException):
            merge("00" * 32, int_to_digest(2))

    def test_hash_concat_skips_validation(self):
        """hash_concat hashes any byte strings; on digests it agrees with merge."""
        a, b = int_to_digest(1), int_to_digest(2)

        assert hash_concat(a, b) == merge(a, b)
        assert hash_concat(b"ab", b"c") == hashlib.sha256(b"abc").digest()


class TestDigestHelpers:
    """Tests for digest validation and hex conversion."""

    def test_ensure_digest_normalizes_bytearray(self):
        value = ensure_digest(bytearray(32))

        assert isinstance(value, bytes)
        assert value == EMPTY_LEAF

    def test_int_to_digest_is_big_endian(self):
        digest = int_to_digest(258)

        assert len(digest) == DIGEST_SIZE
        assert digest[-2:] == b"\x01\x02"

    def test_hex_round_trip(self):
        digest = int_to_digest(0xABCDEF)

        assert digest_from_hex(to_hex(digest)) == digest

    def test_from_hex_requires_prefix(self):
        with pytest.raises(ValueError, match="0x"):
            from_hex("deadbeef")

    def test_digest_from_hex_rejects_wrong_length(self):
        with pytest.raises(InvalidDigestException):
            digest_from_hex("0xdeadbeef")

    def test_digest_from_hex_rejects_bad_characters(self):
        with pytest.raises(InvalidDigestException):
            digest_from_hex("0x" + "zz" * 32)


class TestNodeIndex:
    """Tests for NodeIndex validation and navigation."""

    def test_root(self):
        root = NodeIndex.root()

        assert root.is_root()
        assert root.to_scalar_index() == 1

    @pytest.mark.parametrize("depth,value", [(0, 1), (3, 8), (1, -1), (-1, 0)])
    def test_invalid_values_rejected(self, depth, value):
        with pytest.raises(InvalidIndex):
            NodeIndex(depth, value)

    def test_depth_above_64_rejected(self):
        with pytest.raises(DepthTooBig):
            NodeIndex(65, 0)

    def test_max_depth_accepts_full_range(self):
        index = NodeIndex(64, 2 ** 64 - 1)

        assert index.is_value_odd()

    def test_navigation(self):
        index = NodeIndex(3, 5)

        assert index.sibling() == NodeIndex(3, 4)
        assert index.parent() == NodeIndex(2, 2)
        assert index.parent().left_child() == NodeIndex(3, 4)
        assert index.parent().right_child() == index

    def test_parent_of_root_raises(self):
        with pytest.raises(InvalidIndex):
            NodeIndex.root().parent()

    def test_scalar_index_round_trip(self):
        for scalar in range(1, 64):
            assert NodeIndex.from_scalar_index(scalar).to_scalar_index() == scalar

    def test_bit_at_reads_from_root(self):
        """0b101 at depth 3 goes right, left, right."""
        index = NodeIndex(3, 0b101)

        assert [index.bit_at(level) for level in range(3)] == [1, 0, 1]

    def test_indexes_are_hashable_and_ordered(self):
        indexes = {NodeIndex(2, 1), NodeIndex(1, 1), NodeIndex(2, 1)}

        assert sorted(indexes) == [NodeIndex(1, 1), NodeIndex(2, 1)]


class TestNode:
    """Tests for Node and InnerNodeInfo."""

    def test_node_hash(self):
        node = Node(int_to_digest(1), int_to_digest(2))

        assert node.hash() == merge(int_to_digest(1), int_to_digest(2))

    def test_node_bytes_round_trip(self):
        node = Node(int_to_digest(1), int_to_digest(2))

        assert Node.from_bytes(node.to_bytes()) == node

    def test_node_rejects_bad_child(self):
        with pytest.raises(InvalidDigestException):
            Node(b"short", int_to_digest(2))

    def test_inner_node_info_to_node(self):
        info = InnerNodeInfo(value=int_to_digest(3), left=int_to_digest(1), right=int_to_digest(2))

        assert info.node() == Node(int_to_digest(1), int_to_digest(2))


class TestEmptyRoots:
    """Tests for the empty subtree table."""

    def test_empty_leaf_is_zero(self):
        assert empty_root(0) == bytes(32)

    def test_chain(self):
        for height in (1, 2, 64, 255):
            assert empty_root(height) == merge(empty_root(height - 1), empty_root(height - 1))

    def test_empty_hashes_root_first(self):
        hashes = empty_hashes(3)

        assert len(hashes) == 4
        assert hashes[0] == empty_root(3)
        assert hashes[-1] == EMPTY_LEAF

    def test_entry(self):
        assert entry(8, 8) == EMPTY_LEAF
        assert entry(8, 0) == empty_root(8)

    def test_depth_above_255_raises(self):
        with pytest.raises(DepthTooBig):
            empty_hashes(256)

    def test_bootstrap_nodes(self):
        pairs = list(bootstrap_nodes())

        assert len(pairs) == 255
        assert pairs[0] == (empty_root(1), Node(EMPTY_LEAF, EMPTY_LEAF))
        assert all(node.hash() == key for key, node in pairs)
