"""Content-addressed pool store for random-sample endpoints."""

import logging

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.pool_item import PoolHit, PoolItem, PoolPayload, ServedFrom
from upstreamcache.core.exceptions import SerializationError
from upstreamcache.core.interfaces.durable_store import IDurableStore
from upstreamcache.core.interfaces.hot_store import IHotStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder
from upstreamcache.infrastructure.serializers.json import JsonSerializer
from upstreamcache.utils.clock import Clock, utc_now
from upstreamcache.utils.hashing import hash_key
from upstreamcache.utils.keys import sanitize_pool_key

logger = logging.getLogger(__name__)


class PoolStore:
    """Stores interchangeable items per pool key and serves random ones.

    Membership is append-only in the durable tier. The hot tier mirrors it
    as an id set plus one blob per item; the two carry their own TTLs and
    may expire independently, which the read cascade tolerates.
    """

    def __init__(
        self,
        hot: IHotStore,
        durable: IDurableStore,
        config: CacheConfig | None = None,
        key_builder: DefaultKeyBuilder | None = None,
        serializer: JsonSerializer | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._hot = hot
        self._durable = durable
        self._config = config or CacheConfig()
        self._keys = key_builder or DefaultKeyBuilder(self._config.key_prefix)
        self._serializer = serializer or JsonSerializer()
        self._clock = clock

    @property
    def _item_ttl_s(self) -> int | None:
        ttl = self._config.pool_item_ttl_s
        return ttl if ttl > 0 else None

    async def add_item(
        self,
        source_id: str,
        pool_key: str,
        payload: PoolPayload,
    ) -> PoolItem:
        """Add content to a pool.

        Identical content maps to the same ``item_id``; adding it again is
        a no-op in the durable tier.

        Args:
            source_id: The pool's source.
            pool_key: The pool key; sanitized before use.
            payload: The content.

        Returns:
            The pool item.
        """
        sanitized = sanitize_pool_key(pool_key)
        key_hash = hash_key(sanitized)
        item = PoolItem.from_payload(payload, now=self._clock())

        inserted = await self._durable.add_pool_item(source_id, key_hash, sanitized, item)
        if not inserted:
            logger.debug("Pool item %s already in %s%s", item.item_id, source_id, sanitized)

        await self._mirror(source_id, key_hash, item, add_to_set=True)
        return item

    async def random_item(self, source_id: str, pool_key: str) -> PoolHit | None:
        """Return a random item of a pool.

        Cascade: a random hot id with its hot blob; else that id from the
        durable tier; else, when the hot id set is empty, a uniformly random
        durable row. Durable answers are backfilled into the hot tier on a
        best-effort basis.

        Returns:
            The item and the tier that served it, or None if the pool is
            empty everywhere.
        """
        sanitized = sanitize_pool_key(pool_key)
        key_hash = hash_key(sanitized)

        item_id = await self._hot.random_member(self._keys.pool_ids(source_id, key_hash))
        if item_id is not None:
            item = await self._hot_item(source_id, key_hash, item_id)
            if item is not None:
                return PoolHit(item=item, served_from=ServedFrom.HOT)

            item = await self._durable.get_pool_item(source_id, key_hash, item_id)
            if item is not None:
                await self._backfill(source_id, key_hash, item, add_to_set=False)
                return PoolHit(item=item, served_from=ServedFrom.DURABLE)
            logger.debug("Hot pool id %s of %s%s has no durable row", item_id, source_id, sanitized)

        item = await self._durable.random_pool_item(source_id, key_hash)
        if item is None:
            return None
        await self._backfill(source_id, key_hash, item, add_to_set=True)
        return PoolHit(item=item, served_from=ServedFrom.DURABLE)

    async def _hot_item(self, source_id: str, key_hash: str, item_id: str) -> PoolItem | None:
        key = self._keys.pool_item(source_id, key_hash, item_id)
        raw = await self._hot.get(key)
        if raw is None:
            return None
        try:
            return PoolItem.from_dict(self._serializer.deserialize(raw), item_id=item_id)
        except (SerializationError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding unreadable pool item %s: %s", key, e)
            return None

    async def _mirror(
        self,
        source_id: str,
        key_hash: str,
        item: PoolItem,
        add_to_set: bool,
    ) -> None:
        ttl_s = self._item_ttl_s
        if add_to_set:
            ids_key = self._keys.pool_ids(source_id, key_hash)
            await self._hot.add_member(ids_key, item.item_id)
            if ttl_s is not None:
                await self._hot.expire(ids_key, ttl_s)
        await self._hot.set(
            self._keys.pool_item(source_id, key_hash, item.item_id),
            self._serializer.serialize(item.to_dict()),
            ttl_s,
        )

    async def _backfill(
        self,
        source_id: str,
        key_hash: str,
        item: PoolItem,
        add_to_set: bool,
    ) -> None:
        try:
            await self._mirror(source_id, key_hash, item, add_to_set)
        except Exception as e:
            logger.warning(
                "Pool backfill failed for %s/%s item %s: %s",
                source_id, key_hash, item.item_id, e,
            )
