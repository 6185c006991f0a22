"""
Unit Tests for CacheStore

Validity is strictly ``age < ttl``; ``get`` ignores age (offline access),
``get_valid`` does not.
"""

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from inventory_loader.cache_store import CacheStore


@pytest.fixture
def cache(clock):
    return CacheStore(ttl_seconds=300, clock=clock)


@pytest.mark.unit
class TestCacheValidity:

    def test_empty_cache_is_invalid(self, cache):
        assert not cache.is_valid("inventory")
        assert cache.get_valid("inventory") is None
        assert cache.age_ms("inventory") is None

    def test_fresh_entry_is_valid(self, cache):
        cache.set("inventory", {"products": []})
        assert cache.is_valid("inventory")
        assert cache.get_valid("inventory") == {"products": []}

    def test_valid_just_before_ttl(self, cache, clock):
        cache.set("inventory", "payload")
        clock.advance(299.999)
        assert cache.is_valid("inventory")

    def test_invalid_at_exactly_ttl(self, cache, clock):
        cache.set("inventory", "payload")
        clock.advance(300)
        assert not cache.is_valid("inventory")
        assert cache.get_valid("inventory") is None

    def test_get_ignores_age(self, cache, clock):
        cache.set("inventory", "payload")
        clock.advance(10_000)
        assert cache.get("inventory") == "payload"
        assert cache.has("inventory")

    def test_age_ms(self, cache, clock):
        cache.set("inventory", "payload")
        clock.advance(1.5)
        assert cache.age_ms("inventory") == pytest.approx(1500.0)


@pytest.mark.unit
class TestCacheMutation:

    def test_set_overwrites_and_refreshes_timestamp(self, cache, clock):
        cache.set("inventory", "old")
        clock.advance(299)
        cache.set("inventory", "new")
        clock.advance(100)
        assert cache.get_valid("inventory") == "new"

    def test_clear_evicts_everything(self, cache):
        cache.set("inventory", "a")
        cache.set("other", "b")
        assert cache.size == 2

        cache.clear()

        assert cache.size == 0
        assert cache.get("inventory") is None
        assert not cache.is_valid("inventory")

    def test_keys_are_independent(self, cache):
        cache.set("inventory", "a")
        assert cache.get("other") is None
        assert not cache.has("other")
