"""Tests for InMemoryCache — TTL expiry and LRU bounds."""

from __future__ import annotations

from courier.core.cache import InMemoryCache


class TestInMemoryCache:
    def test_set_get(self, clock):
        cache = InMemoryCache(clock=clock)
        cache.set("a", {"v": 1})
        assert cache.get("a") == {"v": 1}
        assert cache.exists("a")

    def test_miss(self, clock):
        cache = InMemoryCache(clock=clock)
        assert cache.get("missing") is None
        assert cache.exists("missing") is False

    def test_entry_expires_at_ttl(self, clock):
        cache = InMemoryCache(clock=clock)
        cache.set("a", 1, ttl_seconds=60)

        clock.advance(59.9)
        assert cache.get("a") == 1

        clock.advance(0.1)
        assert cache.get("a") is None
        assert cache.size() == 0

    def test_default_ttl_applies(self, clock):
        cache = InMemoryCache(default_ttl_seconds=10, clock=clock)
        cache.set("a", 1)
        clock.advance(10)
        assert cache.exists("a") is False

    def test_no_ttl_never_expires(self, clock):
        cache = InMemoryCache(default_ttl_seconds=None, clock=clock)
        cache.set("a", 1)
        clock.advance(10**6)
        assert cache.get("a") == 1

    def test_lru_eviction(self, clock):
        cache = InMemoryCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")  # touch: b is now least recent
        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_overwrite_does_not_evict(self, clock):
        cache = InMemoryCache(max_size=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        assert cache.size() == 2
        assert cache.get("b") == 2
        assert cache.get("a") == 10

    def test_delete_and_clear(self, clock):
        cache = InMemoryCache(clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        cache.delete("absent")
        assert cache.get("a") is None
        cache.clear()
        assert cache.size() == 0
