"""
Response Cache

Maps a normalized-query hash to a previously generated answer. Entries
expire a fixed time after insertion; expiry is checked lazily on read.
"""

import hashlib
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, asdict
from typing import Callable, Dict, Optional

from ..models import CacheEntry
from .locks import StripedLock

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 1800  # 30 minutes


def normalize_query(text: str) -> str:
    """Case-fold and trim a query so trivial variants share a cache key."""
    return text.strip().casefold()


def compute_query_hash(text: str) -> str:
    """
    Compute the cache key for a query.

    Args:
        text: Raw query text

    Returns:
        SHA-256 hex digest of the normalized text
    """
    return hashlib.sha256(normalize_query(text).encode('utf-8')).hexdigest()


@dataclass
class CacheStats:
    """Statistics for cache performance tracking."""
    hits: int = 0
    misses: int = 0
    expired: int = 0
    evictions: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        return self.hits / self.total_requests if self.total_requests > 0 else 0.0

    def to_dict(self) -> Dict:
        return {
            **asdict(self),
            'total_requests': self.total_requests,
            'hit_rate': self.hit_rate
        }


class ResponseCache:
    """
    In-memory answer cache with time-to-live.

    Features:
    - Lazy expiry at read time, plus an optional purge sweep
    - Idempotent put: rewriting a hash resets its age (last write wins)
    - Optional size bound evicting the oldest insertion
    - Striped per-key locks instead of one global lock
    """

    def __init__(
        self,
        ttl: float = DEFAULT_CACHE_TTL,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize the response cache.

        Args:
            ttl: Seconds after insertion at which an entry expires
            max_entries: Upper bound on stored entries (None = unbounded)
            clock: Time source returning seconds, injectable for tests
        """
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")

        self.ttl = ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._locks = StripedLock()
        # Guards ordering/eviction bookkeeping only; held for O(1) work
        self._order_lock = threading.Lock()
        self._stats = CacheStats()

    def get(self, query_hash: str) -> Optional[str]:
        """
        Look up a cached answer.

        Args:
            query_hash: Normalized-query hash

        Returns:
            The cached answer, or None when absent or expired
        """
        with self._locks.for_key(query_hash):
            entry = self._entries.get(query_hash)
            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired(self._clock(), self.ttl):
                self._remove(query_hash, entry)
                self._stats.expired += 1
                self._stats.misses += 1
                logger.debug(f"Cache entry expired for hash: {query_hash[:8]}...")
                return None

            self._stats.hits += 1
            logger.debug(f"Cache hit for hash: {query_hash[:8]}...")
            return entry.answer_text

    def peek(self, query_hash: str) -> Optional[str]:
        """Like ``get``, but records neither a hit nor a miss."""
        with self._locks.for_key(query_hash):
            entry = self._entries.get(query_hash)
            if entry is None or entry.is_expired(self._clock(), self.ttl):
                return None
            return entry.answer_text

    def put(self, query_hash: str, answer_text: str) -> None:
        """
        Store an answer, replacing any existing entry for the hash.

        Args:
            query_hash: Normalized-query hash
            answer_text: Generated answer
        """
        entry = CacheEntry(
            query_hash=query_hash,
            answer_text=answer_text,
            created_at=self._clock()
        )
        with self._locks.for_key(query_hash):
            with self._order_lock:
                self._entries[query_hash] = entry
                self._entries.move_to_end(query_hash)
        self._enforce_bound()

    def _remove(self, query_hash: str, entry: CacheEntry) -> None:
        with self._order_lock:
            # A concurrent put may have replaced the entry
            if self._entries.get(query_hash) is entry:
                del self._entries[query_hash]

    def _enforce_bound(self) -> None:
        if self.max_entries is None:
            return
        with self._order_lock:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self._stats.evictions += 1
                logger.debug(f"Evicted cache entry: {evicted[:8]}...")

    def purge_expired(self) -> int:
        """
        Remove all expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._order_lock:
            stale = [
                key for key, entry in self._entries.items()
                if entry.is_expired(now, self.ttl)
            ]
            for key in stale:
                del self._entries[key]

        if stale:
            logger.info(f"Purged {len(stale)} expired cache entries")
        return len(stale)

    def stats(self) -> Dict:
        """Get cache statistics."""
        return {
            **self._stats.to_dict(),
            'size': len(self._entries),
            'ttl': self.ttl
        }

    def __len__(self) -> int:
        return len(self._entries)
