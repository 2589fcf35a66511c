"""Hot store implementations."""

from upstreamcache.infrastructure.backends.memory import InMemoryHotStore
from upstreamcache.infrastructure.backends.redis_store import RedisHotStore

__all__ = ["InMemoryHotStore", "RedisHotStore"]
