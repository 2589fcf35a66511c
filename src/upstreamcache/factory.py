"""Factory wiring the refresh pipeline from configuration."""

import logging
from dataclasses import dataclass

import httpx

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.interfaces.durable_store import IDurableStore
from upstreamcache.core.interfaces.hot_store import IHotStore
from upstreamcache.core.interfaces.source_registry import ISourceRegistry
from upstreamcache.core.services.cache_store import CacheStore
from upstreamcache.core.services.gateway import CacheGateway
from upstreamcache.core.services.origin_fetcher import OriginFetcher
from upstreamcache.core.services.pool_store import PoolStore
from upstreamcache.core.services.rate_limiter import RateLimiter
from upstreamcache.core.services.refresh_queue import RefreshQueue
from upstreamcache.core.services.runner import Runner
from upstreamcache.core.services.ttl_bump import TtlBumper
from upstreamcache.infrastructure.backends.memory import InMemoryHotStore
from upstreamcache.infrastructure.backends.redis_store import RedisHotStore
from upstreamcache.infrastructure.durable.memory import InMemoryDurableStore
from upstreamcache.infrastructure.durable.sql import SqlDurableStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder
from upstreamcache.infrastructure.serializers.json import JsonSerializer
from upstreamcache.infrastructure.sources.memory import InMemorySourceRegistry
from upstreamcache.infrastructure.sources.sql import SqlSourceRegistry
from upstreamcache.infrastructure.tiers.durable import DurableCacheTier
from upstreamcache.infrastructure.tiers.hot import HotCacheTier

logger = logging.getLogger(__name__)


@dataclass
class Pipeline:
    """Every component of one deployment, sharing stores and key layout."""

    config: CacheConfig
    hot: IHotStore
    durable: IDurableStore
    sources: ISourceRegistry
    cache_store: CacheStore
    pool_store: PoolStore
    queue: RefreshQueue
    rate_limiter: RateLimiter
    fetcher: OriginFetcher
    runner: Runner
    gateway: CacheGateway

    async def close(self) -> None:
        """Release the HTTP client and store connections."""
        await self.fetcher.close()
        if isinstance(self.hot, RedisHotStore):
            await self.hot.close()
        if isinstance(self.durable, SqlDurableStore):
            await self.durable.close()


def build_pipeline(
    config: CacheConfig | None = None,
    redis_url: str | None = None,
    database_url: str | None = None,
    sources: ISourceRegistry | None = None,
    client: httpx.AsyncClient | None = None,
) -> Pipeline:
    """Build a pipeline.

    Without ``redis_url`` the hot tier lives in process memory; without
    ``database_url`` so does the durable tier. The source registry
    defaults to the database's ``sources`` table, or to an empty
    in-memory registry.

    Args:
        config: Pipeline configuration. Uses defaults if not provided.
        redis_url: Redis URL for the hot tier.
        database_url: SQLAlchemy URL for the durable tier.
        sources: Source registry to use instead of the default.
        client: HTTP client for origin fetches.

    Returns:
        The wired pipeline.
    """
    config = config or CacheConfig()
    keys = DefaultKeyBuilder(config.key_prefix)
    serializer = JsonSerializer()

    hot: IHotStore
    if redis_url:
        hot = RedisHotStore(redis_url, key_prefix=config.key_prefix)
    else:
        hot = InMemoryHotStore()

    durable: IDurableStore
    if database_url:
        sql_store = SqlDurableStore(database_url)
        durable = sql_store
        if sources is None:
            sources = SqlSourceRegistry(sql_store.engine, create_schema=True)
    else:
        durable = InMemoryDurableStore()
    if sources is None:
        sources = InMemorySourceRegistry()

    ttl_bumper = TtlBumper(hot, config.ttl_bump, keys) if config.ttl_bump.enabled else None
    cache_store = CacheStore(
        [HotCacheTier(hot, keys, serializer), DurableCacheTier(durable)],
        config=config,
        ttl_bumper=ttl_bumper,
    )
    pool_store = PoolStore(hot, durable, config, keys, serializer)
    queue = RefreshQueue(hot, config, keys, serializer)
    rate_limiter = RateLimiter(hot, keys)
    fetcher = OriginFetcher(client, config)

    logger.debug(
        "Built pipeline: hot=%s durable=%s",
        type(hot).__name__,
        type(durable).__name__,
    )
    return Pipeline(
        config=config,
        hot=hot,
        durable=durable,
        sources=sources,
        cache_store=cache_store,
        pool_store=pool_store,
        queue=queue,
        rate_limiter=rate_limiter,
        fetcher=fetcher,
        runner=Runner(sources, queue, rate_limiter, cache_store, pool_store, fetcher, config),
        gateway=CacheGateway(cache_store, pool_store, queue, sources),
    )
