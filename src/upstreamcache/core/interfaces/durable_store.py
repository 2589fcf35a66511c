"""Durable-tier store interface."""

from typing import Protocol

from upstreamcache.core.entities.cache_entry import CacheEntry
from upstreamcache.core.entities.pool_item import PoolItem


class IDurableStore(Protocol):
    """Contract for the authoritative, long-lived relational tier.

    Rows are scoped to ``(source_id, key_hash[, item_id])``. Writes must
    be conflict tolerant so concurrent writers converge.
    """

    async def get_entry(self, source_id: str, key_hash: str) -> CacheEntry | None:
        """Point lookup of a cache entry."""
        ...

    async def upsert_entry(self, source_id: str, key_hash: str, entry: CacheEntry) -> None:
        """Insert or replace a cache entry."""
        ...

    async def delete_entry(self, source_id: str, key_hash: str) -> int:
        """Delete a cache entry; returns the number of rows removed."""
        ...

    async def add_pool_item(
        self,
        source_id: str,
        key_hash: str,
        pool_key: str,
        item: PoolItem,
    ) -> bool:
        """Insert a pool item, doing nothing if it already exists.

        Returns:
            True if a new row was created.
        """
        ...

    async def get_pool_item(
        self, source_id: str, key_hash: str, item_id: str
    ) -> PoolItem | None:
        """Point lookup of a pool item."""
        ...

    async def random_pool_item(self, source_id: str, key_hash: str) -> PoolItem | None:
        """Uniformly random pool item of a pool key, or None if empty."""
        ...

    async def count_pool_items(self, source_id: str, key_hash: str) -> int:
        """Number of stored items of a pool key."""
        ...
