"""Tests for caching functionality."""

import pytest

from app.config import settings
from app.utils.cache import cache_key, cached, invalidate_cache, invalidate_tracking


@pytest.mark.cache
class TestCacheUtility:
    """Test cache utility functions."""

    def test_cache_key_generation(self):
        """Same args = same key, different args = different key."""
        assert cache_key(limit=50, offset=0) == cache_key(offset=0, limit=50)
        assert cache_key(limit=50, offset=0) != cache_key(limit=100, offset=0)
        assert cache_key() == "default"

    async def test_cached_decorator(self, fake_redis):
        call_count = 0

        @cached(ttl=10, prefix="tracking", key_builder=lambda **kw: kw["code"])
        async def lookup(*, tenant, code):
            nonlocal call_count
            call_count += 1
            return {"code": code, "tenant": tenant}

        assert await lookup(tenant="skyrak", code="TRK-1") == {"code": "TRK-1", "tenant": "skyrak"}
        assert await lookup(tenant="skyrak", code="TRK-1") == {"code": "TRK-1", "tenant": "skyrak"}
        assert call_count == 1
        assert "t:skyrak:tracking:TRK-1" in fake_redis.store

    async def test_keys_are_tenant_scoped(self, fake_redis):
        """Two tenants looking up the same code never share an entry."""
        call_count = 0

        @cached(prefix="tracking", key_builder=lambda **kw: kw["code"])
        async def lookup(*, tenant, code):
            nonlocal call_count
            call_count += 1
            return {"tenant": tenant}

        assert (await lookup(tenant="skyrak", code="TRK-1"))["tenant"] == "skyrak"
        assert (await lookup(tenant="skyline", code="TRK-1"))["tenant"] == "skyline"
        assert call_count == 2
        assert set(fake_redis.store) == {"t:skyrak:tracking:TRK-1", "t:skyline:tracking:TRK-1"}

    async def test_default_key_skips_positional_args(self, fake_redis):
        @cached(prefix="report")
        async def summary(db, *, tenant, limit):
            return {"limit": limit}

        await summary(object(), tenant="skyrak", limit=5)
        await summary(object(), tenant="skyrak", limit=5)
        assert len(fake_redis.store) == 1

    async def test_disabled_cache_bypasses_redis(self, fake_redis, monkeypatch):
        monkeypatch.setattr(settings, "cache_enabled", False)

        @cached(prefix="tracking", key_builder=lambda **kw: kw["code"])
        async def lookup(*, tenant, code):
            return {"code": code}

        await lookup(tenant="skyrak", code="TRK-1")
        assert fake_redis.store == {}

    async def test_redis_failure_falls_back(self, fake_redis):
        fake_redis.fail = True

        @cached(prefix="tracking", key_builder=lambda **kw: kw["code"])
        async def lookup(*, tenant, code):
            return {"code": code}

        assert await lookup(tenant="skyrak", code="TRK-1") == {"code": "TRK-1"}


@pytest.mark.cache
class TestCacheInvalidation:

    async def test_invalidate_within_tenant(self, fake_redis):
        fake_redis.store.update({
            "t:skyrak:tracking:TRK-1": "1",
            "t:skyrak:tracking:TRK-2": "2",
            "t:skyline:tracking:TRK-1": "3",
        })
        assert await invalidate_cache("tracking:*", tenant="skyrak") == 2
        assert set(fake_redis.store) == {"t:skyline:tracking:TRK-1"}

    async def test_invalidate_tracking_clears_owner_and_super_tenant(self, fake_redis):
        fake_redis.store.update({
            "t:skyrak:tracking:TRK-1": "1",
            "t:skyline:tracking:TRK-1": "2",
            "t:skyrak:tracking:TRK-2": "3",
        })
        await invalidate_tracking("skyrak", "TRK-1")
        assert set(fake_redis.store) == {"t:skyrak:tracking:TRK-2"}

    async def test_invalidate_swallows_redis_errors(self, fake_redis):
        fake_redis.fail = True
        assert await invalidate_cache("tracking:*", tenant="skyrak") == 0
