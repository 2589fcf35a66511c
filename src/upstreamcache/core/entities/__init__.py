"""Domain entities for upstreamcache."""

from upstreamcache.core.entities.cache_config import CacheConfig, TtlBumpConfig
from upstreamcache.core.entities.cache_entry import (
    CacheEntry,
    CacheMeta,
    DataEncoding,
    compute_expires_at,
    is_stale,
)
from upstreamcache.core.entities.pool_item import (
    PoolHit,
    PoolItem,
    PoolPayload,
    ServedFrom,
)
from upstreamcache.core.entities.rate_limit import RateLimitDecision, RateLimitPolicy
from upstreamcache.core.entities.refresh_job import (
    EnqueueRejection,
    EnqueueResult,
    RefreshJob,
    RefreshRequest,
)
from upstreamcache.core.entities.run_summary import RunSummary, SourceRunStats
from upstreamcache.core.entities.source_config import SourceConfig

__all__ = [
    "CacheConfig",
    "TtlBumpConfig",
    "CacheEntry",
    "CacheMeta",
    "DataEncoding",
    "compute_expires_at",
    "is_stale",
    "PoolHit",
    "PoolItem",
    "PoolPayload",
    "ServedFrom",
    "RateLimitDecision",
    "RateLimitPolicy",
    "EnqueueRejection",
    "EnqueueResult",
    "RefreshJob",
    "RefreshRequest",
    "RunSummary",
    "SourceRunStats",
    "SourceConfig",
]
