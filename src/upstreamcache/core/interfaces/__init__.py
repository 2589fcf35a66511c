"""Core interfaces (Protocol classes) for upstreamcache."""

from upstreamcache.core.interfaces.cache_tier import ICacheTier
from upstreamcache.core.interfaces.durable_store import IDurableStore
from upstreamcache.core.interfaces.hot_store import (
    TTL_MISSING,
    TTL_NO_EXPIRY,
    IHotStore,
)
from upstreamcache.core.interfaces.source_registry import ISourceRegistry

__all__ = [
    "ICacheTier",
    "IDurableStore",
    "IHotStore",
    "ISourceRegistry",
    "TTL_MISSING",
    "TTL_NO_EXPIRY",
]
