"""
Test Suite for the Response Cache

Covers query normalization, TTL expiry, idempotent writes, size bounding
and concurrent writers.
"""

import threading

import pytest

from news_rag.query.response_cache import (
    ResponseCache,
    compute_query_hash,
    normalize_query,
)


class TestQueryNormalization:
    """Cache keys must ignore case and surrounding whitespace."""

    @pytest.mark.parametrize("variant", [
        "What happened to interest rates?",
        "  what happened to interest rates?  ",
        "WHAT HAPPENED TO INTEREST RATES?",
        "\tWhat Happened To Interest Rates?\n",
    ])
    def test_variants_share_hash(self, variant):
        assert compute_query_hash(variant) == compute_query_hash("what happened to interest rates?")

    def test_different_queries_differ(self):
        assert compute_query_hash("storm damage") != compute_query_hash("election results")

    def test_inner_whitespace_is_preserved(self):
        assert normalize_query("  Storm   Damage ") == "storm   damage"

    def test_hash_is_stable_hex_digest(self):
        digest = compute_query_hash("storm")
        assert len(digest) == 64
        assert digest == compute_query_hash("storm")


class TestCacheGetPut:
    """Basic lookup behavior."""

    def test_miss_on_empty_cache(self, clock):
        cache = ResponseCache(clock=clock)
        assert cache.get("missing") is None

    def test_put_then_get(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("h", "answer")
        assert cache.get("h") == "answer"

    def test_put_overwrites_last_write_wins(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("h", "first")
        cache.put("h", "second")
        assert cache.get("h") == "second"
        assert len(cache) == 1

    def test_invalid_ttl_rejected(self):
        with pytest.raises(ValueError):
            ResponseCache(ttl=0)


class TestCacheExpiry:
    """Entries are never returned after their TTL elapses."""

    def test_entry_live_before_ttl(self, clock):
        cache = ResponseCache(ttl=1800, clock=clock)
        cache.put("h", "answer")
        clock.advance(1799)
        assert cache.get("h") == "answer"

    def test_entry_expired_after_ttl(self, clock):
        cache = ResponseCache(ttl=1800, clock=clock)
        cache.put("h", "answer")
        clock.advance(1800 + 0.001)
        assert cache.get("h") is None
        assert len(cache) == 0

    def test_put_resets_age(self, clock):
        cache = ResponseCache(ttl=1800, clock=clock)
        cache.put("h", "answer")
        clock.advance(1000)
        cache.put("h", "answer")
        clock.advance(1000)
        assert cache.get("h") == "answer"

    def test_purge_expired(self, clock):
        cache = ResponseCache(ttl=60, clock=clock)
        cache.put("old", "a")
        clock.advance(30)
        cache.put("new", "b")
        clock.advance(31)

        removed = cache.purge_expired()

        assert removed == 1
        assert cache.get("old") is None
        assert cache.get("new") == "b"


class TestCacheBounding:
    """Optional max_entries bound."""

    def test_oldest_entry_evicted(self, clock):
        cache = ResponseCache(max_entries=2, clock=clock)
        cache.put("a", "1")
        cache.put("b", "2")
        cache.put("c", "3")

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("c") == "3"
        assert cache.stats()['evictions'] == 1

    def test_rewrite_refreshes_eviction_order(self, clock):
        cache = ResponseCache(max_entries=2, clock=clock)
        cache.put("a", "1")
        cache.put("b", "2")
        cache.put("a", "1")
        cache.put("c", "3")

        assert cache.get("a") == "1"
        assert cache.get("b") is None


class TestCacheStats:

    def test_hit_and_miss_counts(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("h", "answer")
        cache.get("h")
        cache.get("other")

        stats = cache.stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1
        assert stats['hit_rate'] == 0.5
        assert stats['size'] == 1

    def test_peek_does_not_count(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("h", "answer")

        assert cache.peek("h") == "answer"
        assert cache.peek("other") is None
        clock.advance(1800)
        assert cache.peek("h") is None

        stats = cache.stats()
        assert stats['hits'] == 0
        assert stats['misses'] == 0


class TestCacheConcurrency:
    """Racing writers on the same key leave exactly one live entry."""

    def test_concurrent_puts_same_key(self, clock):
        cache = ResponseCache(clock=clock)
        barrier = threading.Barrier(8)

        def writer(i):
            barrier.wait()
            cache.put("shared", f"answer-{i}")

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 1
        assert cache.get("shared").startswith("answer-")

    def test_concurrent_puts_distinct_keys(self, clock):
        cache = ResponseCache(clock=clock)

        def writer(i):
            for j in range(50):
                cache.put(f"key-{i}-{j}", "x")

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(cache) == 200
