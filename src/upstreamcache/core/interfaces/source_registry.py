"""Source registry interface."""

from typing import Protocol

from upstreamcache.core.entities.source_config import SourceConfig


class ISourceRegistry(Protocol):
    """Read-only lookup of source configuration."""

    async def get(self, source_id: str) -> SourceConfig | None:
        """Return a source's configuration, or None if unknown."""
        ...

    async def list_source_ids(self) -> list[str]:
        """Return the ids of every configured source."""
        ...
