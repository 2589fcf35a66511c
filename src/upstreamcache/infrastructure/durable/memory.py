"""In-memory durable store implementation."""

import random

from upstreamcache.core.entities.cache_entry import CacheEntry
from upstreamcache.core.entities.pool_item import PoolItem


class InMemoryDurableStore:
    """Dictionary-backed durable tier.

    Single-process only and lost on restart; meant for tests and local
    runs where no database is configured.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], CacheEntry] = {}
        self._pools: dict[tuple[str, str], dict[str, PoolItem]] = {}

    async def get_entry(self, source_id: str, key_hash: str) -> CacheEntry | None:
        return self._entries.get((source_id, key_hash))

    async def upsert_entry(self, source_id: str, key_hash: str, entry: CacheEntry) -> None:
        self._entries[(source_id, key_hash)] = entry

    async def delete_entry(self, source_id: str, key_hash: str) -> int:
        return 1 if self._entries.pop((source_id, key_hash), None) is not None else 0

    async def add_pool_item(
        self,
        source_id: str,
        key_hash: str,
        pool_key: str,
        item: PoolItem,
    ) -> bool:
        pool = self._pools.setdefault((source_id, key_hash), {})
        if item.item_id in pool:
            return False
        pool[item.item_id] = item
        return True

    async def get_pool_item(
        self, source_id: str, key_hash: str, item_id: str
    ) -> PoolItem | None:
        return self._pools.get((source_id, key_hash), {}).get(item_id)

    async def random_pool_item(self, source_id: str, key_hash: str) -> PoolItem | None:
        pool = self._pools.get((source_id, key_hash))
        if not pool:
            return None
        return random.choice(list(pool.values()))

    async def count_pool_items(self, source_id: str, key_hash: str) -> int:
        return len(self._pools.get((source_id, key_hash), {}))

    def __len__(self) -> int:
        """Return the number of cache entries."""
        return len(self._entries)
