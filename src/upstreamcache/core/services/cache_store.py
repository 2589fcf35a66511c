"""Tiered cache store - coordinates the cache cascade."""

import logging
import math
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.cache_entry import CacheEntry
from upstreamcache.core.interfaces.cache_tier import ICacheTier
from upstreamcache.core.services.ttl_bump import TtlBumper
from upstreamcache.utils.clock import Clock, utc_now
from upstreamcache.utils.hashing import hash_key
from upstreamcache.utils.keys import normalize_key

logger = logging.getLogger(__name__)


class CacheStore:
    """Reads and writes cache entries across an ordered list of tiers.

    The first tier is the hot tier. Reads walk the tiers in order and
    backfill every earlier tier on a later hit; writes go to the hot tier
    and, unless suppressed, through to every other tier. Data never flows
    from a hot tier back into a durable one except on primary writes.
    """

    def __init__(
        self,
        tiers: Sequence[ICacheTier],
        config: CacheConfig | None = None,
        ttl_bumper: TtlBumper | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the cache store.

        Args:
            tiers: Cache tiers, hottest first.
            config: Optional configuration. Uses defaults if not provided.
            ttl_bumper: Optional TTL bump accounting for hot hits.
            clock: Source of the current UTC time.

        Raises:
            ValueError: If no tier is given.
        """
        if not tiers:
            raise ValueError("CacheStore needs at least one tier")
        self._tiers = list(tiers)
        self._config = config or CacheConfig()
        self._ttl_bumper = ttl_bumper
        self._clock = clock

    @property
    def tiers(self) -> list[ICacheTier]:
        return list(self._tiers)

    async def get(
        self,
        source_id: str,
        key: str,
        record_hit: bool = True,
    ) -> CacheEntry | None:
        """Look up an entry, hottest tier first.

        Args:
            source_id: The entry's source.
            key: The logical key; normalized before use.
            record_hit: Count non-stale hot hits towards a TTL bump.

        Returns:
            The entry with ``stale`` recomputed, or None if no tier has it.
        """
        key_hash = hash_key(normalize_key(key))
        now = self._clock()

        for index, tier in enumerate(self._tiers):
            entry = await tier.get(source_id, key_hash)
            if entry is None:
                continue
            entry = entry.with_staleness(now)
            if index == 0:
                if record_hit and not entry.meta.stale:
                    await self._record_hit(source_id, key_hash)
            else:
                await self._backfill(self._tiers[:index], source_id, key_hash, entry, now)
            return entry

        return None

    async def set(
        self,
        source_id: str,
        key: str,
        entry: CacheEntry,
        ttl_s: int | None = None,
        persist_to_durable: bool = True,
    ) -> CacheEntry:
        """Store an entry.

        Args:
            source_id: The entry's source.
            key: The logical key; normalized before use.
            entry: The entry to store.
            ttl_s: Hot-tier TTL override. Defaults to the entry's ``ttl_s``;
                ``<= 0`` keeps the hot copy until evicted or invalidated.
            persist_to_durable: Write through to the tiers after the first.

        Returns:
            The stored entry, stamped with ``cached_at`` and ``stale``.
        """
        normalized = normalize_key(key)
        key_hash = hash_key(normalized)
        now = self._clock()

        meta = replace(entry.meta, source_id=source_id, key=normalized, cached_at=now)
        stored = replace(entry, meta=meta).with_staleness(now)

        effective_ttl = entry.meta.ttl_s if ttl_s is None else ttl_s
        hot_ttl = effective_ttl if effective_ttl and effective_ttl > 0 else None

        first, *rest = self._tiers
        await first.set(source_id, key_hash, stored, hot_ttl)
        if persist_to_durable:
            for tier in rest:
                await tier.set(source_id, key_hash, stored, hot_ttl)
        return stored

    async def delete(self, source_id: str, key: str) -> int:
        """Remove an entry from every tier.

        Returns:
            Total number of removed copies.
        """
        key_hash = hash_key(normalize_key(key))
        removed = 0
        for tier in self._tiers:
            removed += await tier.delete(source_id, key_hash)
        if removed:
            logger.info("Invalidated %s/%s (%s copies)", source_id, key, removed)
        return removed

    def _backfill_ttl(self, entry: CacheEntry, now: datetime) -> int | None:
        remaining = entry.remaining_ttl_s(now)
        if remaining is None:
            return None
        if remaining <= 0:
            return self._config.backfill_ttl_s
        return math.ceil(remaining)

    async def _backfill(
        self,
        tiers: Sequence[ICacheTier],
        source_id: str,
        key_hash: str,
        entry: CacheEntry,
        now: datetime,
    ) -> None:
        ttl_s = self._backfill_ttl(entry, now)
        for tier in tiers:
            try:
                await tier.set(source_id, key_hash, entry, ttl_s)
            except Exception as e:
                logger.warning(
                    "Backfill of %s tier failed for %s/%s: %s",
                    tier.name, source_id, key_hash, e,
                )

    async def _record_hit(self, source_id: str, key_hash: str) -> None:
        if self._ttl_bumper is None:
            return
        try:
            await self._ttl_bumper.record_hit(source_id, key_hash)
        except Exception as e:
            logger.warning("TTL bump failed for %s/%s: %s", source_id, key_hash, e)
