"""Source registry implementations."""

from upstreamcache.infrastructure.sources.memory import InMemorySourceRegistry
from upstreamcache.infrastructure.sources.sql import SqlSourceRegistry

__all__ = ["InMemorySourceRegistry", "SqlSourceRegistry"]
