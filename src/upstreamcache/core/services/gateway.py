"""Read path over the cache and pool stores."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from upstreamcache.core.entities.cache_entry import CacheEntry
from upstreamcache.core.entities.pool_item import PoolHit
from upstreamcache.core.entities.refresh_job import EnqueueResult, RefreshRequest
from upstreamcache.core.entities.source_config import SourceConfig
from upstreamcache.core.exceptions import UnknownSourceError
from upstreamcache.core.interfaces.source_registry import ISourceRegistry
from upstreamcache.core.services.cache_store import CacheStore
from upstreamcache.core.services.pool_store import PoolStore
from upstreamcache.core.services.refresh_queue import RefreshQueue

logger = logging.getLogger(__name__)

SERVED_FROM_CACHE = "cache"
SERVED_FROM_NONE = "none"
SERVED_FROM_POOL_NONE = "pool-none"


class ReadStatus(str, Enum):
    """Result of a gateway read."""

    HIT = "hit"
    NOT_MODIFIED = "not_modified"
    PENDING = "pending"
    MISS = "miss"


_HTTP_STATUS = {
    ReadStatus.HIT: 200,
    ReadStatus.NOT_MODIFIED: 304,
    ReadStatus.PENDING: 202,
    ReadStatus.MISS: 404,
}


def etag_matches(if_none_match: str | None, etag: str | None) -> bool:
    """Check an ``If-None-Match`` header value against an ETag.

    The header may list several comma-separated tags, quoted or weak;
    ``*`` matches any existing representation.
    """
    if not if_none_match or not etag:
        return False
    wanted = _strip_etag(etag)
    for token in if_none_match.split(","):
        token = token.strip()
        if token == "*" or _strip_etag(token) == wanted:
            return True
    return False


def _strip_etag(tag: str) -> str:
    tag = tag.strip()
    if tag.startswith("W/"):
        tag = tag[2:]
    return tag.strip('"')


@dataclass(frozen=True)
class ReadOutcome:
    """What a read found, plus any refresh it scheduled."""

    status: ReadStatus
    source_id: str
    key: str
    served_from: str = SERVED_FROM_NONE
    entry: CacheEntry | None = None
    pool_hit: PoolHit | None = None
    enqueue: EnqueueResult | None = None

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.status]

    @property
    def etag(self) -> str | None:
        """Pool ``item_id`` or the entry's origin ETag."""
        if self.pool_hit is not None:
            return self.pool_hit.item_id
        if self.entry is not None:
            return self.entry.meta.etag
        return None

    @property
    def data(self) -> Any:
        if self.pool_hit is not None:
            return self.pool_hit.data
        if self.entry is not None:
            return self.entry.data
        return None


class CacheGateway:
    """Serves reads from the cache or pool and schedules refreshes.

    The gateway never calls an origin. Misses and stale hits turn into
    refresh jobs that the runner picks up later.
    """

    def __init__(
        self,
        cache_store: CacheStore,
        pool_store: PoolStore,
        queue: RefreshQueue,
        sources: ISourceRegistry,
    ) -> None:
        self._cache_store = cache_store
        self._pool_store = pool_store
        self._queue = queue
        self._sources = sources

    async def _source(self, source_id: str) -> SourceConfig:
        source = await self._sources.get(source_id)
        if source is None:
            raise UnknownSourceError(source_id)
        return source

    async def read(
        self,
        source_id: str,
        key: str,
        cache_only: bool = False,
        bypass_cache: bool = False,
        if_none_match: str | None = None,
        idempotency_key: str | None = None,
    ) -> ReadOutcome:
        """Read a key of a source.

        Args:
            source_id: The source.
            key: The logical key. For pool sources, the pool key.
            cache_only: Never schedule a refresh on a miss.
            bypass_cache: Schedule a refresh even on a hit.
            if_none_match: The caller's ``If-None-Match`` header value.
            idempotency_key: Token forwarded to the refresh queue.

        Returns:
            The read outcome.

        Raises:
            UnknownSourceError: If the source is not configured.
        """
        source = await self._source(source_id)
        if source.supports_pool:
            return await self._read_pool(
                source, key, cache_only, bypass_cache, if_none_match, idempotency_key
            )
        return await self._read_entry(
            source, key, cache_only, bypass_cache, if_none_match, idempotency_key
        )

    async def invalidate(self, source_id: str, key: str) -> int:
        """Drop a key from every cache tier.

        Returns:
            Number of removed copies.
        """
        return await self._cache_store.delete(source_id, key)

    async def _read_pool(
        self,
        source: SourceConfig,
        key: str,
        cache_only: bool,
        bypass_cache: bool,
        if_none_match: str | None,
        idempotency_key: str | None,
    ) -> ReadOutcome:
        hit = await self._pool_store.random_item(source.id, key)

        if hit is None:
            if cache_only:
                return ReadOutcome(
                    ReadStatus.MISS, source.id, key, served_from=SERVED_FROM_POOL_NONE
                )
            result = await self._queue.enqueue_pool_collection(
                source.id, key, idempotency_key=idempotency_key
            )
            return ReadOutcome(
                ReadStatus.PENDING,
                source.id,
                key,
                served_from=SERVED_FROM_POOL_NONE,
                enqueue=result,
            )

        enqueued = None
        if bypass_cache:
            enqueued = await self._queue.enqueue_pool_collection(
                source.id, key, idempotency_key=idempotency_key
            )

        status = (
            ReadStatus.NOT_MODIFIED
            if etag_matches(if_none_match, hit.item_id)
            else ReadStatus.HIT
        )
        return ReadOutcome(
            status,
            source.id,
            key,
            served_from=f"pool-{hit.served_from.value}",
            pool_hit=hit,
            enqueue=enqueued,
        )

    async def _read_entry(
        self,
        source: SourceConfig,
        key: str,
        cache_only: bool,
        bypass_cache: bool,
        if_none_match: str | None,
        idempotency_key: str | None,
    ) -> ReadOutcome:
        entry = await self._cache_store.get(source.id, key)

        if entry is None:
            if cache_only:
                return ReadOutcome(ReadStatus.MISS, source.id, key)
            result = await self._queue.enqueue(
                RefreshRequest(source_id=source.id, key=key),
                idempotency_key=idempotency_key,
            )
            return ReadOutcome(ReadStatus.PENDING, source.id, key, enqueue=result)

        enqueued = None
        if entry.meta.stale or bypass_cache:
            enqueued = await self._queue.enqueue(
                RefreshRequest(source_id=source.id, key=key),
                idempotency_key=idempotency_key,
            )
            logger.debug(
                "Refresh of %s%s requested on read: %s", source.id, key, enqueued.enqueued
            )

        status = (
            ReadStatus.NOT_MODIFIED
            if etag_matches(if_none_match, entry.meta.etag)
            else ReadStatus.HIT
        )
        return ReadOutcome(
            status,
            source.id,
            key,
            served_from=SERVED_FROM_CACHE,
            entry=entry,
            enqueue=enqueued,
        )
