"""Hot cache tier."""

import logging

from upstreamcache.core.entities.cache_entry import CacheEntry
from upstreamcache.core.exceptions import SerializationError
from upstreamcache.core.interfaces.hot_store import IHotStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder
from upstreamcache.infrastructure.serializers.json import JsonSerializer

logger = logging.getLogger(__name__)


class HotCacheTier:
    """Cache tier over a hot store.

    Entries are stored as JSON documents; unreadable documents are
    reported as misses so a corrupted value is never served.
    """

    name = "hot"

    def __init__(
        self,
        store: IHotStore,
        key_builder: DefaultKeyBuilder | None = None,
        serializer: JsonSerializer | None = None,
    ) -> None:
        self._store = store
        self._keys = key_builder or DefaultKeyBuilder()
        self._serializer = serializer or JsonSerializer()

    async def get(self, source_id: str, key_hash: str) -> CacheEntry | None:
        key = self._keys.entry(source_id, key_hash)
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return CacheEntry.from_dict(self._serializer.deserialize(raw))
        except (SerializationError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable hot entry %s: %s", key, e)
            return None

    async def set(
        self,
        source_id: str,
        key_hash: str,
        entry: CacheEntry,
        ttl_s: int | None = None,
    ) -> None:
        payload = self._serializer.serialize(entry.to_dict())
        await self._store.set(self._keys.entry(source_id, key_hash), payload, ttl_s)

    async def delete(self, source_id: str, key_hash: str) -> int:
        return await self._store.delete(self._keys.entry(source_id, key_hash))
