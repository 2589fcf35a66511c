"""Durable store implementations."""

from upstreamcache.infrastructure.durable.memory import InMemoryDurableStore
from upstreamcache.infrastructure.durable.schema import (
    SchemaGate,
    async_url,
    cache_entries,
    create_engine_for_url,
    init_schema,
    metadata,
    pool_items,
    sources,
)
from upstreamcache.infrastructure.durable.sql import SqlDurableStore

__all__ = [
    "InMemoryDurableStore",
    "SqlDurableStore",
    "SchemaGate",
    "async_url",
    "cache_entries",
    "create_engine_for_url",
    "init_schema",
    "metadata",
    "pool_items",
    "sources",
]
