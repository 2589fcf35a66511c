"""Source configuration entity."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from upstreamcache.core.entities.rate_limit import RateLimitPolicy


@dataclass(frozen=True)
class SourceConfig:
    """Settings of one upstream API.

    Sources are managed elsewhere; this package only reads them.
    """

    id: str
    base_url: str
    name: str = ""
    default_headers: dict[str, str] = field(default_factory=dict)
    default_query: dict[str, str] = field(default_factory=dict)
    rate_limit: RateLimitPolicy = field(default_factory=RateLimitPolicy)
    cache_ttl_s: int = 300
    key_template: str = ""
    supports_pool: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SourceConfig":
        """Build a config from a ``sources`` row.

        JSON columns may be NULL or hold non-string values; both are
        tolerated.
        """
        return cls(
            id=str(row["id"]),
            base_url=str(row["base_url"]),
            name=row.get("name") or "",
            default_headers=_string_map(row.get("default_headers")),
            default_query=_string_map(row.get("default_query")),
            rate_limit=RateLimitPolicy.from_dict(row.get("rate_limit")),
            cache_ttl_s=int(row.get("cache_ttl_s") or 0),
            key_template=row.get("key_template") or "",
            supports_pool=bool(row.get("supports_pool")),
        )


def _string_map(raw: Mapping[str, Any] | None) -> dict[str, str]:
    if not raw:
        return {}
    return {str(k): str(v) for k, v in raw.items() if v is not None}
