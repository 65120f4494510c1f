#!/usr/bin/env python3
"""Tests for the TTL cache."""

import pytest

from fundflow.core.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Test expiry and invalidation."""

    @pytest.mark.unit
    def test_entry_expires_after_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=60, clock=clock)
        cache.put("A", "Hưng")

        clock.now += 59
        assert cache.get("A") == "Hưng"
        assert "A" in cache

        clock.now += 1
        assert cache.get("A") is None
        assert "A" not in cache
        assert len(cache) == 0

    @pytest.mark.unit
    def test_put_refreshes_timestamp(self):
        clock = FakeClock()
        cache = TTLCache(ttl_seconds=10, clock=clock)
        cache.put("k", 1)
        clock.now += 8
        cache.put("k", 2)
        clock.now += 8

        assert cache.get("k") == 2

    @pytest.mark.unit
    def test_invalidate_one_or_all(self):
        cache = TTLCache(ttl_seconds=60, clock=FakeClock())
        cache.put("a", 1)
        cache.put("b", 2)

        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

        cache.invalidate()
        assert len(cache) == 0
