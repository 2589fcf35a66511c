"""Fixed-window rate limiter."""

import logging
from datetime import timedelta, timezone

from upstreamcache.core.entities.rate_limit import RateLimitDecision, RateLimitPolicy
from upstreamcache.core.interfaces.hot_store import IHotStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder
from upstreamcache.utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)

WINDOW_S = 60
# Counters outlive their window slightly and then clean themselves up.
COUNTER_GRACE_S = 5


class RateLimiter:
    """Per-source admission control over UTC wall-clock minutes.

    Every ``acquire`` call is counted, including denied ones, so the
    counter reflects demand rather than admitted load and retries cannot
    reset the effective threshold.
    """

    def __init__(
        self,
        store: IHotStore,
        key_builder: DefaultKeyBuilder | None = None,
        clock: Clock = utc_now,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            store: Hot store holding the window counters.
            key_builder: Builder for counter keys.
            clock: Source of the current UTC time.
        """
        self._store = store
        self._keys = key_builder or DefaultKeyBuilder()
        self._clock = clock

    async def acquire(self, source_id: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Count one admission attempt for a source.

        Args:
            source_id: The source being called.
            policy: The source's rate limit.

        Returns:
            The admission decision for the current window.
        """
        now = self._clock().astimezone(timezone.utc)
        window_start = now.replace(second=0, microsecond=0)
        window = int(window_start.timestamp()) // WINDOW_S
        key = self._keys.rate_limit(source_id, window)

        count = await self._store.incr(key)
        if count == 1:
            await self._store.expire(key, WINDOW_S + COUNTER_GRACE_S)

        limit = policy.limit
        allowed = count <= limit
        if not allowed:
            logger.debug("Rate limit reached for %s (%s/%s)", source_id, count, limit)

        return RateLimitDecision(
            allowed=allowed,
            limit=limit,
            remaining=max(0, limit - count),
            reset_at=window_start + timedelta(seconds=WINDOW_S),
        )
