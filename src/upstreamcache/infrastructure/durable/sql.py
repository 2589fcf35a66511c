"""SQLAlchemy durable store implementation."""

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine

from upstreamcache.core.entities.cache_entry import CacheEntry, DataEncoding
from upstreamcache.core.entities.pool_item import PoolItem
from upstreamcache.infrastructure.durable.schema import (
    SchemaGate,
    cache_entries,
    create_engine_for_url,
    pool_items,
)
from upstreamcache.utils.clock import ensure_utc, utc_now

logger = logging.getLogger(__name__)

_INSERTS: dict[str, Any] = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class SqlDurableStore:
    """Durable tier on a relational database.

    Uses dialect-specific ``INSERT ... ON CONFLICT`` so concurrent writers
    converge: cache entries are upserted, pool items are inserted once.
    Supports PostgreSQL (asyncpg) and SQLite (aiosqlite) through
    SQLAlchemy's asyncio engine. Missing tables are created on the first
    statement.
    """

    def __init__(self, engine: AsyncEngine | str, create_schema: bool = True) -> None:
        """Initialize the store.

        Args:
            engine: An engine or a database URL.
            create_schema: Create missing tables before the first statement.

        Raises:
            ValueError: If the database dialect is not supported.
        """
        self._engine = create_engine_for_url(engine) if isinstance(engine, str) else engine
        dialect = self._engine.dialect.name
        if dialect not in _INSERTS:
            raise ValueError(f"Unsupported database dialect: {dialect!r}")
        self._insert = _INSERTS[dialect]
        self._schema = SchemaGate(self._engine, enabled=create_schema)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def get_entry(self, source_id: str, key_hash: str) -> CacheEntry | None:
        stmt = select(cache_entries.c.data, cache_entries.c.meta).where(
            cache_entries.c.source_id == source_id,
            cache_entries.c.key_hash == key_hash,
        )
        await self._schema.ensure()
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt)).first()
        if row is None:
            return None
        try:
            return CacheEntry.from_dict({"data": row.data, "meta": row.meta})
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Failed to read durable entry %s/%s: %s", source_id, key_hash, e
            )
            return None

    async def upsert_entry(self, source_id: str, key_hash: str, entry: CacheEntry) -> None:
        values = {
            "source_id": source_id,
            "key_hash": key_hash,
            "key": entry.meta.key,
            "data": entry.data,
            "meta": entry.meta.to_dict(),
            "expires_at": entry.meta.expires_at,
            "updated_at": utc_now(),
        }
        stmt = self._insert(cache_entries).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[cache_entries.c.source_id, cache_entries.c.key_hash],
            set_={
                "key": stmt.excluded.key,
                "data": stmt.excluded.data,
                "meta": stmt.excluded.meta,
                "expires_at": stmt.excluded.expires_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._schema.ensure()
        async with self._engine.begin() as conn:
            await conn.execute(stmt)

    async def delete_entry(self, source_id: str, key_hash: str) -> int:
        stmt = delete(cache_entries).where(
            cache_entries.c.source_id == source_id,
            cache_entries.c.key_hash == key_hash,
        )
        await self._schema.ensure()
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
        return result.rowcount

    async def add_pool_item(
        self,
        source_id: str,
        key_hash: str,
        pool_key: str,
        item: PoolItem,
    ) -> bool:
        stmt = self._insert(pool_items).values(
            source_id=source_id,
            key_hash=key_hash,
            item_id=item.item_id,
            pool_key=pool_key,
            item=item.data,
            encoding=item.encoding.value,
            content_type=item.content_type,
            created_at=item.created_at,
        )
        stmt = stmt.on_conflict_do_nothing(
            index_elements=[
                pool_items.c.source_id,
                pool_items.c.key_hash,
                pool_items.c.item_id,
            ]
        )
        await self._schema.ensure()
        async with self._engine.begin() as conn:
            result = await conn.execute(stmt)
        return result.rowcount == 1

    async def get_pool_item(
        self, source_id: str, key_hash: str, item_id: str
    ) -> PoolItem | None:
        stmt = self._pool_select(source_id, key_hash).where(
            pool_items.c.item_id == item_id
        )
        await self._schema.ensure()
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt)).first()
        return None if row is None else _row_to_item(row)

    async def random_pool_item(self, source_id: str, key_hash: str) -> PoolItem | None:
        stmt = self._pool_select(source_id, key_hash).order_by(func.random()).limit(1)
        await self._schema.ensure()
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt)).first()
        return None if row is None else _row_to_item(row)

    async def count_pool_items(self, source_id: str, key_hash: str) -> int:
        stmt = (
            select(func.count())
            .select_from(pool_items)
            .where(
                pool_items.c.source_id == source_id,
                pool_items.c.key_hash == key_hash,
            )
        )
        await self._schema.ensure()
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return int(result.scalar_one())

    def _pool_select(self, source_id: str, key_hash: str) -> Any:
        return select(
            pool_items.c.item_id,
            pool_items.c.item,
            pool_items.c.encoding,
            pool_items.c.content_type,
            pool_items.c.created_at,
        ).where(
            pool_items.c.source_id == source_id,
            pool_items.c.key_hash == key_hash,
        )

    async def close(self) -> None:
        """Dispose of the engine's connections."""
        await self._engine.dispose()


def _row_to_item(row: Any) -> PoolItem:
    return PoolItem(
        item_id=row.item_id,
        data=row.item,
        encoding=DataEncoding(row.encoding),
        content_type=row.content_type,
        created_at=ensure_utc(row.created_at),
    )
