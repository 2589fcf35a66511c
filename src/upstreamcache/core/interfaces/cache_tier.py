"""Cache tier interface."""

from typing import Protocol

from upstreamcache.core.entities.cache_entry import CacheEntry


class ICacheTier(Protocol):
    """One level of the cache cascade.

    ``CacheStore`` composes an ordered list of tiers, hottest first, and
    only ever backfills toward earlier tiers.
    """

    name: str

    async def get(self, source_id: str, key_hash: str) -> CacheEntry | None:
        """Retrieve an entry, or None if this tier does not hold it."""
        ...

    async def set(
        self,
        source_id: str,
        key_hash: str,
        entry: CacheEntry,
        ttl_s: int | None = None,
    ) -> None:
        """Store an entry. Tiers without physical expiry ignore ``ttl_s``."""
        ...

    async def delete(self, source_id: str, key_hash: str) -> int:
        """Delete an entry; returns the number removed."""
        ...
