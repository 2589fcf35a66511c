"""In-memory source registry."""

from collections.abc import Iterable

from upstreamcache.core.entities.source_config import SourceConfig


class InMemorySourceRegistry:
    """Source registry holding configs in a dictionary."""

    def __init__(self, sources: Iterable[SourceConfig] = ()) -> None:
        self._sources: dict[str, SourceConfig] = {s.id: s for s in sources}

    async def get(self, source_id: str) -> SourceConfig | None:
        return self._sources.get(source_id)

    async def list_source_ids(self) -> list[str]:
        return sorted(self._sources)

    def register(self, source: SourceConfig) -> None:
        """Add or replace a source."""
        self._sources[source.id] = source
