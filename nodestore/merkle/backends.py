"""
Storage Backends
Key/value maps that back a node store.

This module provides:
- KvMap: the capability set every backend must offer
- MerkleMap: plain map used by the standard store
- RecordingMerkleMap: map that remembers which initial entries were read,
  so they can later be exported as a self-contained proof

Recording rules:
1. The first read of a key that held a value when recording started
   records (key, value) in the trace.
2. Keys inserted during recording are not part of the initial data set;
   reading them afterwards records nothing.
3. Overwriting an initial key that was never read records its previous
   value, so a verifier can still reconstruct the initial state.
"""
from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, Optional, TypeVar

from nodestore.crypto.hashing import Digest
from nodestore.merkle.node import Node
from nodestore.schemas.errors import RecordingFinalizedException


M = TypeVar("M", bound="KvMap")


class KvMap(ABC):
    """Abstract base class for node store backends."""

    @abstractmethod
    def get(self, key: Digest) -> Optional[Node]:
        """Return the node stored under ``key`` or None."""

    @abstractmethod
    def insert(self, key: Digest, value: Node) -> Optional[Node]:
        """Store ``value`` under ``key`` and return the previous value, if any."""

    @abstractmethod
    def contains_key(self, key: Digest) -> bool:
        """Check whether ``key`` is present."""

    @abstractmethod
    def items(self) -> Iterator[tuple[Digest, Node]]:
        """Iterate over (key, node) pairs in ascending key order."""

    @abstractmethod
    def __len__(self) -> int:
        ...

    def extend(self, pairs: Iterable[tuple[Digest, Node]]) -> None:
        """Insert every (key, node) pair."""
        for key, value in pairs:
            self.insert(key, value)

    @classmethod
    def from_pairs(cls: type[M], pairs: Iterable[tuple[Digest, Node]]) -> M:
        """Build a map holding the given pairs."""
        instance = cls()
        instance.extend(pairs)
        return instance

    def __iter__(self) -> Iterator[Digest]:
        for key, _ in self.items():
            yield key

    def __contains__(self, key: object) -> bool:
        return isinstance(key, bytes) and self.contains_key(key)

    def to_dict(self) -> dict[Digest, Node]:
        return dict(self.items())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KvMap):
            return NotImplemented
        return self.to_dict() == other.to_dict()


class MerkleMap(KvMap):
    """Plain dict-backed map from digest to Node."""

    def __init__(self, data: Optional[dict[Digest, Node]] = None) -> None:
        self._data: dict[Digest, Node] = dict(data) if data else {}

    def get(self, key: Digest) -> Optional[Node]:
        return self._data.get(key)

    def insert(self, key: Digest, value: Node) -> Optional[Node]:
        previous = self._data.get(key)
        self._data[key] = value
        return previous

    def contains_key(self, key: Digest) -> bool:
        return key in self._data

    def items(self) -> Iterator[tuple[Digest, Node]]:
        for key in sorted(self._data):
            yield key, self._data[key]

    def extend(self, pairs: Iterable[tuple[Digest, Node]]) -> None:
        self._data.update(pairs)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MerkleMap(len={len(self._data)})"


class ReadTracker:
    """
    Trace of entries read from a recording map.

    Kept apart from the data map and guarded by its own lock, since reads
    that look immutable to callers still have to update it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._trace: dict[Digest, Node] = {}

    def record(self, key: Digest, value: Node) -> None:
        """Record ``(key, value)`` unless ``key`` was already recorded."""
        with self._lock:
            self._trace.setdefault(key, value)

    def __len__(self) -> int:
        with self._lock:
            return len(self._trace)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._trace

    def take(self) -> dict[Digest, Node]:
        """Return the trace and reset it."""
        with self._lock:
            trace, self._trace = self._trace, {}
            return trace


class RecordingMerkleMap(KvMap):
    """
    Map that records reads of its initial data set.

    Usage:
        recording = RecordingMerkleMap.from_pairs(store_entries)
        recording.get(some_key)
        proof = recording.into_proof()  # MerkleMap with just the read entries
    """

    def __init__(self, data: Optional[dict[Digest, Node]] = None) -> None:
        self._data: dict[Digest, Node] = dict(data) if data else {}
        self._updates: set[Digest] = set()
        self._tracker = ReadTracker()
        self._finalized = False

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[Digest, Node]]) -> "RecordingMerkleMap":
        """Build a recording map whose initial data set is ``pairs``."""
        return cls(dict(pairs))

    def _check_live(self) -> None:
        if self._finalized:
            raise RecordingFinalizedException()

    def _record_hit(self, key: Digest) -> Optional[Node]:
        value = self._data.get(key)
        if value is not None and key not in self._updates:
            self._tracker.record(key, value)
        return value

    def get(self, key: Digest) -> Optional[Node]:
        self._check_live()
        return self._record_hit(key)

    def contains_key(self, key: Digest) -> bool:
        self._check_live()
        return self._record_hit(key) is not None

    def insert(self, key: Digest, value: Node) -> Optional[Node]:
        self._check_live()
        first_update = key not in self._updates
        self._updates.add(key)
        previous = self._data.get(key)
        self._data[key] = value
        if previous is not None and first_update:
            self._tracker.record(key, previous)
        return previous

    def items(self) -> Iterator[tuple[Digest, Node]]:
        # Bulk iteration is not a query; it does not feed the trace
        self._check_live()
        for key in sorted(self._data):
            yield key, self._data[key]

    def __len__(self) -> int:
        return len(self._data)

    def trace_size(self) -> int:
        """Number of entries recorded so far."""
        return len(self._tracker)

    def into_proof(self) -> MerkleMap:
        """
        Finalize recording and return the entries read from the initial data.

        The map cannot be used afterwards.

        Raises:
            RecordingFinalizedException: If the proof was already taken
        """
        self._check_live()
        self._finalized = True
        trace = self._tracker.take()
        self._data = {}
        self._updates = set()
        return MerkleMap(trace)

    def __repr__(self) -> str:
        return f"RecordingMerkleMap(len={len(self._data)}, recorded={self.trace_size()})"


__all__ = [
    "KvMap",
    "MerkleMap",
    "ReadTracker",
    "RecordingMerkleMap",
]
