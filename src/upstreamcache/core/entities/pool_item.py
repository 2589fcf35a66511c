"""Pool item entities."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from upstreamcache.core.entities.cache_entry import DataEncoding
from upstreamcache.utils.clock import parse_datetime, utc_now
from upstreamcache.utils.hashing import content_hash


class ServedFrom(str, Enum):
    """Tier that answered a pool read."""

    HOT = "hot"
    DURABLE = "durable"


@dataclass(frozen=True)
class PoolPayload:
    """Content to add to a pool."""

    data: Any
    encoding: DataEncoding = DataEncoding.JSON
    content_type: str | None = None


@dataclass(frozen=True)
class PoolItem:
    """Content-addressed member of a pool.

    ``item_id`` is derived from the content, so adding the same content
    twice to a pool key is a no-op.
    """

    item_id: str
    data: Any
    encoding: DataEncoding
    content_type: str | None
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to the hot-tier blob format."""
        return {
            "item_id": self.item_id,
            "data": self.data,
            "encoding": self.encoding.value,
            "content_type": self.content_type,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any], item_id: str | None = None) -> "PoolItem":
        """Rebuild an item from a blob; ``item_id`` overrides the stored id."""
        encoding = DataEncoding(raw.get("encoding") or "json")
        return cls(
            item_id=item_id or raw["item_id"],
            data=raw.get("data"),
            encoding=encoding,
            content_type=raw.get("content_type"),
            created_at=parse_datetime(raw.get("created_at")) or utc_now(),
        )

    @classmethod
    def from_payload(
        cls,
        payload: PoolPayload,
        now: datetime | None = None,
    ) -> "PoolItem":
        """Create an item, computing its content hash."""
        encoding = DataEncoding(payload.encoding)
        return cls(
            item_id=content_hash(encoding.value, payload.data),
            data=payload.data,
            encoding=encoding,
            content_type=payload.content_type,
            created_at=now or utc_now(),
        )


@dataclass(frozen=True)
class PoolHit:
    """A pool item together with the tier that served it."""

    item: PoolItem
    served_from: ServedFrom

    @property
    def item_id(self) -> str:
        return self.item.item_id

    @property
    def data(self) -> Any:
        return self.item.data

    @property
    def encoding(self) -> DataEncoding:
        return self.item.encoding

    @property
    def content_type(self) -> str | None:
        return self.item.content_type
