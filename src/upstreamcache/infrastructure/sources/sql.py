"""SQLAlchemy source registry."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from upstreamcache.core.entities.source_config import SourceConfig
from upstreamcache.infrastructure.durable.schema import SchemaGate, sources

logger = logging.getLogger(__name__)


class SqlSourceRegistry:
    """Reads source configuration from the ``sources`` table."""

    def __init__(self, engine: AsyncEngine, create_schema: bool = False) -> None:
        self._engine = engine
        self._schema = SchemaGate(engine, enabled=create_schema)

    async def get(self, source_id: str) -> SourceConfig | None:
        stmt = select(sources).where(sources.c.id == source_id)
        await self._schema.ensure()
        async with self._engine.connect() as conn:
            row = (await conn.execute(stmt)).mappings().first()
        if row is None:
            return None
        try:
            return SourceConfig.from_row(row)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Invalid configuration for source %s: %s", source_id, e)
            return None

    async def list_source_ids(self) -> list[str]:
        stmt = select(sources.c.id).order_by(sources.c.id)
        await self._schema.ensure()
        async with self._engine.connect() as conn:
            result = await conn.execute(stmt)
            return [row.id for row in result]
