"""Exceptions raised by upstreamcache."""


class UpstreamCacheError(Exception):
    """Base class for upstreamcache errors."""


class SerializationError(UpstreamCacheError):
    """Raised when serialization or deserialization fails."""


class UnknownSourceError(UpstreamCacheError, LookupError):
    """Raised when a source id has no configuration."""

    def __init__(self, source_id: str) -> None:
        super().__init__(f"Unknown source: {source_id!r}")
        self.source_id = source_id
