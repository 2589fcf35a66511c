"""Core domain layer for upstreamcache."""

from upstreamcache.core.entities import CacheConfig, CacheEntry, RefreshJob, SourceConfig
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
    PoolStore,
    RateLimiter,
    RefreshQueue,
    Runner,
)

__all__ = [
    # Entities
    "CacheConfig",
    "CacheEntry",
    "RefreshJob",
    "SourceConfig",
    # Exceptions
    "UpstreamCacheError",
    "SerializationError",
    "UnknownSourceError",
    # Interfaces
    "ICacheTier",
    "IDurableStore",
    "IHotStore",
    "ISourceRegistry",
    # Services
    "CacheGateway",
    "CacheStore",
    "PoolStore",
    "RateLimiter",
    "RefreshQueue",
    "Runner",
]
