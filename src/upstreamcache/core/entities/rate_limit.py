"""Rate limiting entities."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class RateLimitPolicy:
    """Per-source admission policy for one fixed one-minute window."""

    per_minute: int = 60
    burst: int = 0

    @property
    def limit(self) -> int:
        """Total admissions per window."""
        return self.per_minute + self.burst

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any] | None) -> "RateLimitPolicy":
        """Build a policy from a loosely typed mapping (e.g. a JSON column)."""
        if not raw:
            return cls()
        return cls(
            per_minute=int(raw.get("per_minute", 60)),
            burst=int(raw.get("burst", 0) or 0),
        )


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of one admission attempt."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime
