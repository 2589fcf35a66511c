"""Durable cache tier."""

from upstreamcache.core.entities.cache_entry import CacheEntry
from upstreamcache.core.interfaces.durable_store import IDurableStore


class DurableCacheTier:
    """Cache tier over a durable store. Rows have no physical expiry."""

    name = "durable"

    def __init__(self, store: IDurableStore) -> None:
        self._store = store

    async def get(self, source_id: str, key_hash: str) -> CacheEntry | None:
        return await self._store.get_entry(source_id, key_hash)

    async def set(
        self,
        source_id: str,
        key_hash: str,
        entry: CacheEntry,
        ttl_s: int | None = None,
    ) -> None:
        await self._store.upsert_entry(source_id, key_hash, entry)

    async def delete(self, source_id: str, key_hash: str) -> int:
        return await self._store.delete_entry(source_id, key_hash)
