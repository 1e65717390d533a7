"""
Tree Producer Unit Tests
Tests for MerkleTree, SimpleSmt and Mmr.
"""
import pytest

from nodestore.crypto.hashing import int_to_digest, merge
from nodestore.merkle import (
    EMPTY_LEAF,
    MerkleStore,
    MerkleTree,
    Mmr,
    NodeIndex,
    SimpleSmt,
    empty_root,
)
from nodestore.schemas.errors import DepthTooBig, InvalidIndex, InvalidNumEntries

from fixtures.common import make_leaves


class TestMerkleTree:
    """Tests for the balanced tree."""

    def test_two_leaves(self):
        a, b = make_leaves(2)
        tree = MerkleTree([a, b])

        assert tree.root() == merge(a, b)
        assert tree.depth() == 1
        assert tree.num_leaves() == 2

    @pytest.mark.parametrize("count", [0, 1, 3, 6])
    def test_rejects_non_power_of_two(self, count):
        with pytest.raises(InvalidNumEntries):
            MerkleTree(make_leaves(count))

    def test_inner_nodes_count(self):
        tree = MerkleTree(make_leaves(8))

        infos = list(tree.inner_nodes())

        assert len(infos) == 7
        assert infos[0].value == tree.root()
        assert all(merge(i.left, i.right) == i.value for i in infos)

    def test_get_node_too_deep(self):
        with pytest.raises(DepthTooBig):
            MerkleTree(make_leaves(4)).get_node(NodeIndex(3, 0))

    def test_update_leaf(self):
        leaves = make_leaves(4)
        tree = MerkleTree(leaves)

        tree.update_leaf(2, int_to_digest(42))

        assert tree.root() == MerkleTree(leaves[:2] + [int_to_digest(42), leaves[3]]).root()


class TestSimpleSmt:
    """Tests for the sparse tree."""

    def test_empty_root(self):
        assert SimpleSmt(64).root() == empty_root(64)

    def test_depth_limits(self):
        with pytest.raises(DepthTooBig):
            SimpleSmt(65)
        with pytest.raises(InvalidNumEntries):
            SimpleSmt(0)

    def test_matches_balanced_tree_when_full(self):
        leaves = make_leaves(8)
        smt = SimpleSmt(3, enumerate(leaves))

        assert smt.root() == MerkleTree(leaves).root()

    def test_insert_returns_previous(self):
        smt = SimpleSmt(8)

        assert smt.insert(5, int_to_digest(1)) == EMPTY_LEAF
        assert smt.insert(5, int_to_digest(2)) == int_to_digest(1)
        assert smt.get_leaf(5) == int_to_digest(2)

    def test_removing_last_leaf_restores_empty_root(self):
        smt = SimpleSmt(8, [(5, int_to_digest(1))])

        smt.insert(5, EMPTY_LEAF)

        assert smt.root() == empty_root(8)
        assert list(smt.inner_nodes()) == []

    def test_inner_nodes_only_populated_branches(self):
        smt = SimpleSmt(16, [(7, int_to_digest(1))])

        assert len(list(smt.inner_nodes())) == 16

    def test_path_opens_leaf(self):
        smt = SimpleSmt(16, [(7, int_to_digest(1)), (9000, int_to_digest(2))])

        path = smt.get_path(NodeIndex(16, 9000))

        assert path.verify(9000, int_to_digest(2), smt.root())

    def test_path_of_root_raises(self):
        with pytest.raises(InvalidIndex):
            SimpleSmt(8).get_path(NodeIndex.root())

    def test_store_opens_sparse_tree(self):
        smt = SimpleSmt(16, [(7, int_to_digest(1))])
        store = MerkleStore.from_tree(smt)

        opening = store.get_path(smt.root(), NodeIndex(16, 7))

        assert opening.value == int_to_digest(1)
        assert opening.path == smt.get_path(NodeIndex(16, 7))
        assert store.get_node(smt.root(), NodeIndex(16, 8)) == EMPTY_LEAF


class TestMmr:
    """Tests for the mountain range."""

    def test_forest_and_peaks(self):
        leaves = make_leaves(7)
        mmr = Mmr(leaves)

        assert mmr.forest() == 7
        assert mmr.peaks() == [
            MerkleTree(leaves[:4]).root(),
            MerkleTree(leaves[4:6]).root(),
            leaves[6],
        ]

    def test_power_of_two_has_single_peak(self):
        leaves = make_leaves(8)

        assert Mmr(leaves).peaks() == [MerkleTree(leaves).root()]

    def test_inner_nodes_count(self):
        """A forest of 4 + 2 + 1 leaves has 3 + 1 + 0 inner nodes."""
        assert len(list(Mmr(make_leaves(7)).inner_nodes())) == 4

    def test_store_opens_each_peak(self):
        leaves = make_leaves(7)
        mmr = Mmr(leaves)
        store = MerkleStore.from_tree(mmr)
        big, mid, _ = mmr.peaks()

        assert store.get_node(big, NodeIndex(2, 1)) == leaves[1]
        assert store.get_node(mid, NodeIndex(1, 1)) == leaves[5]

    def test_add_incrementally(self):
        leaves = make_leaves(5)
        mmr = Mmr()
        for leaf in leaves:
            mmr.add(leaf)

        assert mmr.peaks() == Mmr(leaves).peaks()
        assert mmr.peaks()[1] == leaves[4]
