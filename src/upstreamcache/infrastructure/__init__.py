"""Infrastructure layer implementations for upstreamcache."""

from upstreamcache.infrastructure.backends import InMemoryHotStore, RedisHotStore
from upstreamcache.infrastructure.durable import InMemoryDurableStore, SqlDurableStore
from upstreamcache.infrastructure.key_builders import DefaultKeyBuilder
from upstreamcache.infrastructure.serializers import JsonSerializer
from upstreamcache.infrastructure.sources import InMemorySourceRegistry, SqlSourceRegistry
from upstreamcache.infrastructure.tiers import DurableCacheTier, HotCacheTier

__all__ = [
    "InMemoryHotStore",
    "RedisHotStore",
    "InMemoryDurableStore",
    "SqlDurableStore",
    "DefaultKeyBuilder",
    "JsonSerializer",
    "InMemorySourceRegistry",
    "SqlSourceRegistry",
    "DurableCacheTier",
    "HotCacheTier",
]
