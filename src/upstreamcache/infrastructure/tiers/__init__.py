"""Cache tier adapters."""

from upstreamcache.infrastructure.tiers.durable import DurableCacheTier
from upstreamcache.infrastructure.tiers.hot import HotCacheTier

__all__ = ["DurableCacheTier", "HotCacheTier"]
