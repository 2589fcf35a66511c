"""Relational schema of the durable tier and the sources table."""

import asyncio

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

metadata = MetaData()

cache_entries = Table(
    "cache_entries",
    metadata,
    Column("source_id", String(255), primary_key=True),
    Column("key_hash", String(64), primary_key=True),
    Column("key", Text, nullable=False),
    Column("data", JSON),
    Column("meta", JSON, nullable=False),
    Column("expires_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

pool_items = Table(
    "pool_items",
    metadata,
    Column("source_id", String(255), primary_key=True),
    Column("key_hash", String(64), primary_key=True),
    Column("item_id", String(40), primary_key=True),
    Column("pool_key", Text, nullable=False),
    Column("item", JSON),
    Column("encoding", String(16), nullable=False),
    Column("content_type", String(255)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

# Owned by the source-configuration service; read-only here.
sources = Table(
    "sources",
    metadata,
    Column("id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("base_url", Text, nullable=False),
    Column("default_headers", JSON),
    Column("default_query", JSON),
    Column("rate_limit", JSON),
    Column("cache_ttl_s", Integer, nullable=False),
    Column("key_template", String(512), nullable=False),
    Column("supports_pool", Boolean, nullable=False),
)


_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
}


def async_url(url: str) -> str:
    """Rewrite a plain database URL to use an async driver.

    URLs that already name a driver are returned unchanged.
    """
    scheme, sep, rest = url.partition("://")
    if not sep or "+" in scheme:
        return url
    return f"{_ASYNC_DRIVERS.get(scheme, scheme)}://{rest}"


def create_engine_for_url(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine, sharing one connection for in-memory SQLite.

    Args:
        url: SQLAlchemy database URL, with or without an async driver.
        echo: Log SQL statements.

    Returns:
        The engine.
    """
    url = async_url(url)
    if url.startswith("sqlite"):
        options: dict = {"connect_args": {"check_same_thread": False}}
        if url.split("://", 1)[1] in ("", "/:memory:"):
            options["poolclass"] = StaticPool
        return create_async_engine(url, echo=echo, **options)
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


async def init_schema(engine: AsyncEngine) -> None:
    """Create all tables. Safe to call multiple times."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


class SchemaGate:
    """Creates the tables once, on the first statement against an engine."""

    def __init__(self, engine: AsyncEngine, enabled: bool = True) -> None:
        self._engine = engine
        self._ready = not enabled
        self._lock = asyncio.Lock()

    async def ensure(self) -> None:
        if self._ready:
            return
        async with self._lock:
            if not self._ready:
                await init_schema(self._engine)
                self._ready = True
