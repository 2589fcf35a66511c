"""Refresh job entities."""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from upstreamcache.utils.clock import parse_datetime, utc_now
from upstreamcache.utils.keys import is_pool_job_key


class EnqueueRejection(str, Enum):
    """Why a refresh request was not enqueued."""

    DUPLICATE = "duplicate"
    IDEMPOTENT_REJECT = "idempotent_reject"
    INVALID = "invalid"


@dataclass(frozen=True)
class RefreshRequest:
    """A caller's request to refresh one key of a source."""

    source_id: str
    key: str
    priority: int = 0


@dataclass(frozen=True)
class RefreshJob:
    """A queued refresh.

    Owned by the queue until popped. The runner then drops it or puts a
    copy with an incremented ``attempts`` back on the queue.
    """

    id: str
    source_id: str
    key: str
    enqueued_at: datetime
    priority: int = 0
    attempts: int = 0

    @property
    def is_pool_job(self) -> bool:
        """True when the key addresses a pool collection job."""
        return is_pool_job_key(self.key)

    def next_attempt(self) -> "RefreshJob":
        """Copy of this job with ``attempts`` incremented."""
        return replace(self, attempts=self.attempts + 1)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the queue record format."""
        return {
            "id": self.id,
            "source_id": self.source_id,
            "key": self.key,
            "priority": self.priority,
            "attempts": self.attempts,
            "enqueued_at": self.enqueued_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RefreshJob":
        """Rebuild a job from its queue record."""
        enqueued_at = parse_datetime(raw.get("enqueued_at")) or utc_now()
        return cls(
            id=str(raw["id"]),
            source_id=str(raw["source_id"]),
            key=str(raw["key"]),
            enqueued_at=enqueued_at,
            priority=int(raw.get("priority") or 0),
            attempts=int(raw.get("attempts") or 0),
        )

    @classmethod
    def create(
        cls,
        source_id: str,
        key: str,
        priority: int = 0,
        now: datetime | None = None,
    ) -> "RefreshJob":
        """Create a new job with a fresh id and zero attempts."""
        return cls(
            id=uuid.uuid4().hex,
            source_id=source_id,
            key=key,
            enqueued_at=now or utc_now(),
            priority=priority,
        )


@dataclass(frozen=True)
class EnqueueResult:
    """Outcome of an enqueue call. Never persisted."""

    enqueued: bool
    job_id: str | None = None
    reason: EnqueueRejection | None = None

    @classmethod
    def accepted(cls, job_id: str) -> "EnqueueResult":
        return cls(enqueued=True, job_id=job_id)

    @classmethod
    def rejected(cls, reason: EnqueueRejection) -> "EnqueueResult":
        return cls(enqueued=False, reason=reason)
