"""
Test fixtures package for node store tests.

Usage:
    from fixtures.common import make_tree_pair, make_store

    def test_something():
        t0, t1 = make_tree_pair()
        store = make_store(t0, t1)
"""

from .common import (
    fold_path,
    make_leaves,
    make_store,
    make_tree_pair,
    reachable_digests,
)

__all__ = [
    "fold_path",
    "make_leaves",
    "make_store",
    "make_tree_pair",
    "reachable_digests",
]
