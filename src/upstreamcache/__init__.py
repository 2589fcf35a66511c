"""upstreamcache - Refresh-ahead cache in front of rate-limited HTTP APIs.

Reads are answered from a two-tier cache (a hot key-value store in
front of a durable relational store) and never wait on an origin.
Misses and stale hits schedule refresh jobs; a runner drains the
per-source job queues within rate limits and time budgets, revalidating
with ETag / Last-Modified. Sources that serve random samples are cached
as content-addressed pools.

Example:
    import asyncio

    from upstreamcache import (
        CacheConfig,
        InMemorySourceRegistry,
        SourceConfig,
        build_pipeline,
    )

    async def main() -> None:
        registry = InMemorySourceRegistry(
            [SourceConfig(id="weather", base_url="https://api.example.com", cache_ttl_s=600)]
        )
        pipeline = build_pipeline(
            CacheConfig.from_env(),
            redis_url="redis://localhost:6379",
            database_url="sqlite:///upstreamcache.db",
            sources=registry,
        )

        outcome = await pipeline.gateway.read("weather", "/v1/today?city=oslo")
        print(outcome.status)  # ReadStatus.PENDING, a refresh job is queued

        summary = await pipeline.runner.run_once()
        print(summary.to_dict())

        outcome = await pipeline.gateway.read("weather", "/v1/today?city=oslo")
        print(outcome.http_status, outcome.data)

        await pipeline.close()

    asyncio.run(main())
"""

from upstreamcache.core.entities import (
    CacheConfig,
    CacheEntry,
    CacheMeta,
    DataEncoding,
    EnqueueRejection,
    EnqueueResult,
    PoolHit,
    PoolItem,
    PoolPayload,
    RateLimitDecision,
    RateLimitPolicy,
    RefreshJob,
    RefreshRequest,
    RunSummary,
    ServedFrom,
    SourceConfig,
    SourceRunStats,
    TtlBumpConfig,
)
from upstreamcache.core.exceptions import (
    SerializationError,
    UnknownSourceError,
    UpstreamCacheError,
)
from upstreamcache.core.interfaces import (
    ICacheTier,
    IDurableStore,
    IHotStore,
    ISourceRegistry,
)
from upstreamcache.core.services import (
    CacheGateway,
    CacheStore,
    OriginFetcher,
    PoolStore,
    RateLimiter,
    ReadOutcome,
    ReadStatus,
    RefreshQueue,
    Runner,
    TtlBumper,
)
from upstreamcache.factory import Pipeline, build_pipeline
from upstreamcache.infrastructure import (
    DefaultKeyBuilder,
    DurableCacheTier,
    HotCacheTier,
    InMemoryDurableStore,
    InMemoryHotStore,
    InMemorySourceRegistry,
    JsonSerializer,
    RedisHotStore,
    SqlDurableStore,
    SqlSourceRegistry,
)
from upstreamcache.settings import CacheSettings
from upstreamcache.utils.keys import normalize_key, sanitize_pool_key

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core entities
    "CacheConfig",
    "TtlBumpConfig",
    "CacheSettings",
    "CacheEntry",
    "CacheMeta",
    "DataEncoding",
    "RefreshJob",
    "RefreshRequest",
    "EnqueueResult",
    "EnqueueRejection",
    "PoolHit",
    "PoolItem",
    "PoolPayload",
    "ServedFrom",
    "RateLimitPolicy",
    "RateLimitDecision",
    "RunSummary",
    "SourceRunStats",
    "SourceConfig",
    # Exceptions
    "UpstreamCacheError",
    "SerializationError",
    "UnknownSourceError",
    # Core interfaces
    "IHotStore",
    "IDurableStore",
    "ICacheTier",
    "ISourceRegistry",
    # Core services
    "CacheStore",
    "TtlBumper",
    "PoolStore",
    "RefreshQueue",
    "RateLimiter",
    "OriginFetcher",
    "Runner",
    "CacheGateway",
    "ReadOutcome",
    "ReadStatus",
    # Infrastructure implementations
    "InMemoryHotStore",
    "RedisHotStore",
    "InMemoryDurableStore",
    "SqlDurableStore",
    "HotCacheTier",
    "DurableCacheTier",
    "InMemorySourceRegistry",
    "SqlSourceRegistry",
    "DefaultKeyBuilder",
    "JsonSerializer",
    # Wiring
    "Pipeline",
    "build_pipeline",
    # Keys
    "normalize_key",
    "sanitize_pool_key",
]
