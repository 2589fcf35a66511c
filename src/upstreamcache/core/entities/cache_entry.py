"""Cache entry entity."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from upstreamcache.utils.clock import parse_datetime, utc_now


class DataEncoding(str, Enum):
    """How an entry's ``data`` is represented."""

    JSON = "json"
    TEXT = "text"
    BASE64 = "base64"


def is_stale(expires_at: datetime | None, now: datetime | None = None) -> bool:
    """Check whether an entry with the given expiry is stale.

    Args:
        expires_at: The expiry time, or None for entries that never expire.
        now: Reference time. Defaults to the current UTC time.

    Returns:
        True once ``now`` has reached ``expires_at``.
    """
    if expires_at is None:
        return False
    return (now or utc_now()) >= expires_at


def compute_expires_at(now: datetime, ttl_s: int | None) -> datetime | None:
    """Expiry for a TTL in seconds; non-positive TTLs never expire."""
    if ttl_s is None or ttl_s <= 0:
        return None
    return now + timedelta(seconds=ttl_s)


@dataclass(frozen=True)
class CacheMeta:
    """Metadata stored alongside cached data.

    ``stale`` is derived from ``expires_at`` and is recomputed whenever an
    entry is read; a stored value is never trusted.
    """

    source_id: str
    key: str
    cached_at: datetime
    expires_at: datetime | None = None
    stale: bool = False
    ttl_s: int = 0
    etag: str | None = None
    last_modified: str | None = None
    origin_status: int | None = None
    content_type: str | None = None
    data_encoding: DataEncoding = DataEncoding.JSON

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "source_id": self.source_id,
            "key": self.key,
            "cached_at": self.cached_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "stale": self.stale,
            "ttl_s": self.ttl_s,
            "etag": self.etag,
            "last_modified": self.last_modified,
            "origin_status": self.origin_status,
            "content_type": self.content_type,
            "data_encoding": self.data_encoding.value,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CacheMeta":
        """Rebuild metadata from its dictionary form.

        The stored ``stale`` flag is ignored.

        Raises:
            ValueError: If ``cached_at`` is missing or empty.
        """
        cached_at = parse_datetime(raw.get("cached_at"))
        if cached_at is None:
            raise ValueError("cache metadata has no cached_at")
        return cls(
            source_id=raw["source_id"],
            key=raw["key"],
            cached_at=cached_at,
            expires_at=parse_datetime(raw.get("expires_at")),
            ttl_s=int(raw.get("ttl_s") or 0),
            etag=raw.get("etag"),
            last_modified=raw.get("last_modified"),
            origin_status=raw.get("origin_status"),
            content_type=raw.get("content_type"),
            data_encoding=DataEncoding(raw.get("data_encoding") or "json"),
        )


@dataclass(frozen=True)
class CacheEntry:
    """Immutable cached value with its metadata."""

    data: Any
    meta: CacheMeta

    def with_staleness(self, now: datetime | None = None) -> "CacheEntry":
        """Return a copy whose ``stale`` flag reflects ``now``."""
        stale = is_stale(self.meta.expires_at, now)
        return replace(self, meta=replace(self.meta, stale=stale))

    def remaining_ttl_s(self, now: datetime | None = None) -> float | None:
        """Seconds until expiry; None for entries that never expire."""
        if self.meta.expires_at is None:
            return None
        return (self.meta.expires_at - (now or utc_now())).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {"data": self.data, "meta": self.meta.to_dict()}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "CacheEntry":
        """Rebuild an entry from its dictionary form."""
        return cls(data=raw.get("data"), meta=CacheMeta.from_dict(raw["meta"]))

    @classmethod
    def create(
        cls,
        source_id: str,
        key: str,
        data: Any,
        ttl_s: int = 0,
        encoding: DataEncoding = DataEncoding.JSON,
        etag: str | None = None,
        last_modified: str | None = None,
        origin_status: int | None = 200,
        content_type: str | None = None,
        now: datetime | None = None,
    ) -> "CacheEntry":
        """Factory method to create a fresh entry.

        Args:
            source_id: The owning source.
            key: The (normalized) cache key.
            data: The payload.
            ttl_s: Time-to-live in seconds; ``<= 0`` never expires.
            encoding: How ``data`` is represented.
            etag: Origin ETag, if any.
            last_modified: Origin Last-Modified header, if any.
            origin_status: Origin HTTP status.
            content_type: Origin content type.
            now: Creation time. Defaults to the current UTC time.

        Returns:
            A new CacheEntry.
        """
        created = now or utc_now()
        expires_at = compute_expires_at(created, ttl_s)
        meta = CacheMeta(
            source_id=source_id,
            key=key,
            cached_at=created,
            expires_at=expires_at,
            stale=is_stale(expires_at, created),
            ttl_s=ttl_s,
            etag=etag,
            last_modified=last_modified,
            origin_status=origin_status,
            content_type=content_type,
            data_encoding=encoding,
        )
        return cls(data=data, meta=meta)
