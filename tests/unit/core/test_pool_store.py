"""Tests for PoolStore."""

import hashlib

import pytest

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.pool_item import PoolItem, PoolPayload, ServedFrom
from upstreamcache.core.services.pool_store import PoolStore
from upstreamcache.infrastructure.backends.memory import InMemoryHotStore
from upstreamcache.utils.hashing import hash_key


class ReadOnlyHotStore(InMemoryHotStore):
    """Hot store whose writes fail."""

    async def set(self, key, value, ttl_s=None):
        raise ConnectionError("hot tier down")

    async def add_member(self, key, member):
        raise ConnectionError("hot tier down")


@pytest.fixture
def pool(hot, durable, keys, clock) -> PoolStore:
    return PoolStore(hot, durable, CacheConfig(pool_item_ttl_s=100), keys, clock=clock)


class TestAddItem:
    """Tests for adding pool content."""

    @pytest.mark.asyncio
    async def test_item_id_is_sha1_of_compact_json(self, pool: PoolStore) -> None:
        """Test the item id is derived from the serialized content."""
        item = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))

        assert item.item_id == hashlib.sha1(b'json:{"q":"hi"}').hexdigest()

    @pytest.mark.asyncio
    async def test_duplicate_content_is_stored_once(self, pool: PoolStore, durable) -> None:
        """Test adding identical content twice keeps one durable row."""
        first = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))
        second = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))

        assert first.item_id == second.item_id
        assert await durable.count_pool_items("quotes", hash_key("/quotes")) == 1

    @pytest.mark.asyncio
    async def test_nonce_does_not_split_pools(self, pool: PoolStore, durable) -> None:
        """Test pool keys differing only by nonce share a pool."""
        await pool.add_item("quotes", "/quotes?i=1", PoolPayload({"q": "a"}))
        await pool.add_item("quotes", "/quotes?i=2", PoolPayload({"q": "b"}))

        assert await durable.count_pool_items("quotes", hash_key("/quotes")) == 2

    @pytest.mark.asyncio
    async def test_hot_mirror_has_ttl(self, pool: PoolStore, hot, keys) -> None:
        """Test the hot id set and blob expire with the pool TTL."""
        item = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))
        key_hash = hash_key("/quotes")

        assert await hot.ttl(keys.pool_ids("quotes", key_hash)) == 100
        assert await hot.ttl(keys.pool_item("quotes", key_hash, item.item_id)) == 100


class TestRandomItem:
    """Tests for the read cascade."""

    @pytest.mark.asyncio
    async def test_empty_pool(self, pool: PoolStore) -> None:
        """Test an empty pool returns None."""
        assert await pool.random_item("quotes", "/quotes") is None

    @pytest.mark.asyncio
    async def test_served_from_hot(self, pool: PoolStore) -> None:
        """Test a mirrored item is served from the hot tier."""
        item = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))

        hit = await pool.random_item("quotes", "/quotes?i=zzz")

        assert hit is not None
        assert hit.served_from is ServedFrom.HOT
        assert hit.item_id == item.item_id
        assert hit.data == {"q": "hi"}

    @pytest.mark.asyncio
    async def test_missing_blob_falls_back_to_durable(self, pool: PoolStore, hot, keys) -> None:
        """Test an id without its blob is read from the durable tier and backfilled."""
        item = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))
        blob_key = keys.pool_item("quotes", hash_key("/quotes"), item.item_id)
        await hot.delete(blob_key)

        hit = await pool.random_item("quotes", "/quotes")

        assert hit is not None
        assert hit.served_from is ServedFrom.DURABLE
        assert await hot.get(blob_key) is not None

    @pytest.mark.asyncio
    async def test_expired_hot_tier_uses_durable(self, pool: PoolStore, timer) -> None:
        """Test items remain available after the hot mirror expired."""
        await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))
        timer.advance(101)

        hit = await pool.random_item("quotes", "/quotes")
        assert hit is not None
        assert hit.served_from is ServedFrom.DURABLE

        again = await pool.random_item("quotes", "/quotes")
        assert again is not None
        assert again.served_from is ServedFrom.HOT

    @pytest.mark.asyncio
    async def test_dangling_hot_id_falls_through(self, pool: PoolStore, hot, keys) -> None:
        """Test a hot id with no durable row does not hide other items."""
        item = await pool.add_item("quotes", "/quotes", PoolPayload({"q": "hi"}))
        key_hash = hash_key("/quotes")
        await hot.clear()
        await hot.add_member(keys.pool_ids("quotes", key_hash), "ghost")

        hit = await pool.random_item("quotes", "/quotes")

        assert hit is not None
        assert hit.item_id == item.item_id
        assert hit.served_from is ServedFrom.DURABLE

    @pytest.mark.asyncio
    async def test_random_selection_covers_pool(self, pool: PoolStore) -> None:
        """Test repeated reads eventually return every member."""
        for n in range(3):
            await pool.add_item("quotes", "/quotes", PoolPayload({"n": n}))

        seen = set()
        for _ in range(200):
            hit = await pool.random_item("quotes", "/quotes")
            seen.add(hit.data["n"])

        assert seen == {0, 1, 2}

    @pytest.mark.asyncio
    async def test_failed_backfill_still_serves_durable(self, durable, keys, clock, timer) -> None:
        """Test hot write failures during backfill do not fail the read."""
        pool = PoolStore(ReadOnlyHotStore(timer=timer), durable, CacheConfig(), keys, clock=clock)
        item = PoolItem.from_payload(PoolPayload({"q": "hi"}), now=clock())
        await durable.add_pool_item("quotes", hash_key("/quotes"), "/quotes", item)

        hit = await pool.random_item("quotes", "/quotes")

        assert hit is not None
        assert hit.served_from is ServedFrom.DURABLE
        assert hit.item_id == item.item_id
