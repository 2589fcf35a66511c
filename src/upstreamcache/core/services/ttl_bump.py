"""Adaptive hot-tier retention for frequently read keys."""

import logging

from upstreamcache.core.entities.cache_config import TtlBumpConfig
from upstreamcache.core.interfaces.hot_store import IHotStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder

logger = logging.getLogger(__name__)


class TtlBumper:
    """Extends the hot-tier TTL of keys that are read often.

    Only the physical retention of the hot copy changes; the entry's
    ``expires_at`` and the durable tier are never touched. Counters are
    approximate: the first increment of a counter starts its window.
    """

    def __init__(
        self,
        store: IHotStore,
        config: TtlBumpConfig | None = None,
        key_builder: DefaultKeyBuilder | None = None,
    ) -> None:
        self._store = store
        self._config = config or TtlBumpConfig()
        self._keys = key_builder or DefaultKeyBuilder()

    @property
    def config(self) -> TtlBumpConfig:
        return self._config

    async def record_hit(self, source_id: str, key_hash: str) -> bool:
        """Count a non-stale hit and bump the TTL when the threshold is met.

        Args:
            source_id: The entry's source.
            key_hash: Hash of the entry's normalized key.

        Returns:
            True if the hot-tier TTL was extended.
        """
        cfg = self._config
        if not cfg.enabled:
            return False

        counter_key = self._keys.hit_counter(source_id, key_hash)
        count = await self._store.incr(counter_key)
        if count == 1:
            await self._store.expire(counter_key, cfg.window_s)
        if count < cfg.threshold:
            return False

        entry_key = self._keys.entry(source_id, key_hash)
        current = await self._store.ttl(entry_key)
        # Negative means no expiry or missing; leave both alone.
        if current < 0 or current >= cfg.max_ttl_s:
            return False

        cooldown_key = self._keys.bump_cooldown(source_id, key_hash)
        if not await self._store.set_if_absent(cooldown_key, b"1", cfg.cooldown_s):
            return False

        new_ttl = min(current + cfg.delta_s, cfg.max_ttl_s)
        await self._store.expire(entry_key, new_ttl)
        logger.debug(
            "Extended hot TTL of %s/%s from %ss to %ss",
            source_id, key_hash, current, new_ttl,
        )
        return True
