"""
Striped per-key locking for the shared in-memory stores.

Keys hash onto a fixed pool of locks, so operations on unrelated keys
rarely contend while operations on the same key are serialized.
"""

import threading
from typing import List


class StripedLock:
    """A fixed pool of locks selected by key hash."""

    def __init__(self, stripes: int = 64):
        if stripes <= 0:
            raise ValueError(f"stripes must be positive, got {stripes}")
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(stripes)]

    def for_key(self, key: str) -> threading.Lock:
        """Return the lock guarding ``key``."""
        return self._locks[hash(key) % len(self._locks)]

    def __len__(self) -> int:
        return len(self._locks)
