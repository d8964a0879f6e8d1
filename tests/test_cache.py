"""Tests for the expiring cache."""

import asyncio
import time

import pytest

from tubefetch.core.cache import TTLCache


class TestSyncAccess:
    def test_set_get(self):
        cache = TTLCache(10)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert "a" in cache
        assert len(cache) == 1

    def test_missing_key_default(self):
        assert TTLCache(10).get("nope", "d") == "d"

    def test_expired_value_never_returned(self, monkeypatch):
        cache = TTLCache(5)
        cache.set("a", 1)
        now = time.monotonic()
        monkeypatch.setattr(time, "monotonic", lambda: now + 6)
        assert cache.get("a") is None
        assert "a" not in cache

    def test_delete_and_clear(self):
        cache = TTLCache(10)
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0


class TestTimers:
    async def test_entry_evicted_after_timeout(self):
        cache = TTLCache(0.05)
        cache.set("a", 1)
        await asyncio.sleep(0.1)
        assert "a" not in cache._entries

    async def test_overwrite_cancels_previous_timer(self):
        cache = TTLCache(0.2)
        cache.set("a", 1)
        first = cache._entries["a"].handle
        await asyncio.sleep(0.12)
        cache.set("a", 2)
        assert first.cancelled()
        # Past the first deadline, within the second
        await asyncio.sleep(0.12)
        assert cache.get("a") == 2
        await asyncio.sleep(0.2)
        assert cache.get("a") is None

    async def test_clear_cancels_timers(self):
        cache = TTLCache(10)
        cache.set("a", 1)
        handle = cache._entries["a"].handle
        cache.clear()
        assert handle.cancelled()


class TestGetOrSet:
    async def test_concurrent_callers_share_one_derivation(self):
        cache = TTLCache(10)
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)
            return "value"

        results = await asyncio.gather(
            cache.get_or_set("k", slow), cache.get_or_set("k", slow)
        )
        assert results == ["value", "value"]
        assert calls == 1

    async def test_settled_value_is_stored(self):
        cache = TTLCache(10)

        async def derive():
            return 42

        assert await cache.get_or_set("k", derive) == 42
        await asyncio.sleep(0)
        assert cache.get("k") == 42

    async def test_failed_derivation_is_removed(self):
        cache = TTLCache(10)

        async def fail():
            raise RuntimeError("boom")

        async def succeed():
            return "ok"

        with pytest.raises(RuntimeError):
            await cache.get_or_set("k", fail)
        await asyncio.sleep(0)
        assert "k" not in cache
        assert await cache.get_or_set("k", succeed) == "ok"

    async def test_cached_value_skips_factory(self):
        cache = TTLCache(10)
        cache.set("k", "cached")

        async def never():
            raise AssertionError("factory called")

        assert await cache.get_or_set("k", never) == "cached"

    async def test_slow_derivation_outlives_timeout(self):
        cache = TTLCache(0.05)
        calls = 0

        async def slow():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.2)
            return "value"

        async def late_caller():
            await asyncio.sleep(0.1)
            return await cache.get_or_set("k", slow)

        results = await asyncio.gather(cache.get_or_set("k", slow), late_caller())
        assert results == ["value", "value"]
        assert calls == 1

    async def test_lifetime_starts_when_derivation_settles(self):
        cache = TTLCache(0.1)

        async def slow():
            await asyncio.sleep(0.15)
            return "value"

        await cache.get_or_set("k", slow)
        await asyncio.sleep(0)
        assert cache.get("k") == "value"
        await asyncio.sleep(0.15)
        assert "k" not in cache
