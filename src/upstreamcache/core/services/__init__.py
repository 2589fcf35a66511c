"""Domain services for upstreamcache."""

from upstreamcache.core.services.cache_store import CacheStore
from upstreamcache.core.services.gateway import (
    CacheGateway,
    ReadOutcome,
    ReadStatus,
    etag_matches,
)
from upstreamcache.core.services.origin_fetcher import (
    TRANSIENT_STATUSES,
    ClassifiedBody,
    OriginFetcher,
    classify_body,
)
from upstreamcache.core.services.pool_store import PoolStore
from upstreamcache.core.services.rate_limiter import RateLimiter
from upstreamcache.core.services.refresh_queue import RefreshQueue
from upstreamcache.core.services.runner import Runner
from upstreamcache.core.services.ttl_bump import TtlBumper

__all__ = [
    "CacheStore",
    "TtlBumper",
    "PoolStore",
    "RefreshQueue",
    "RateLimiter",
    # Refresh
    "Runner",
    "OriginFetcher",
    "ClassifiedBody",
    "classify_body",
    "TRANSIENT_STATUSES",
    # Read path
    "CacheGateway",
    "ReadOutcome",
    "ReadStatus",
    "etag_matches",
]
