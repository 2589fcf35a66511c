"""Per-source refresh job queue with duplicate suppression."""

import logging
from collections.abc import Iterable

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.refresh_job import (
    EnqueueRejection,
    EnqueueResult,
    RefreshJob,
    RefreshRequest,
)
from upstreamcache.core.exceptions import SerializationError
from upstreamcache.core.interfaces.hot_store import IHotStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder
from upstreamcache.infrastructure.serializers.json import JsonSerializer
from upstreamcache.utils.clock import Clock, utc_now
from upstreamcache.utils.hashing import hash_key
from upstreamcache.utils.keys import (
    is_pool_job_key,
    make_pool_job_key,
    normalize_key,
    pool_key_from_job_key,
)

logger = logging.getLogger(__name__)

REFRESH_OPERATION = "refresh"
POOL_OPERATION = "pool"


class RefreshQueue:
    """FIFO job queue per source, stored as a hot-store list.

    Two independent guards protect the queue, both "set if absent with
    TTL" so at most one caller wins per window:

    - the idempotency guard collapses retries of the same logical request
      (same caller-supplied idempotency key);
    - the dedupe guard collapses bursts of distinct requests for the same
      resource.

    Jobs are popped from the head. ``push_back`` returns a job unchanged
    to the tail (rate-limit back-pressure) and ``requeue`` appends a copy
    with one more attempt (transient failures).
    """

    def __init__(
        self,
        store: IHotStore,
        config: CacheConfig | None = None,
        key_builder: DefaultKeyBuilder | None = None,
        serializer: JsonSerializer | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._store = store
        self._config = config or CacheConfig()
        self._keys = key_builder or DefaultKeyBuilder(self._config.key_prefix)
        self._serializer = serializer or JsonSerializer()
        self._clock = clock

    async def enqueue(
        self,
        request: RefreshRequest,
        idempotency_key: str | None = None,
        dedupe_ttl_s: int | None = None,
        idempotency_ttl_s: int | None = None,
    ) -> EnqueueResult:
        """Enqueue a refresh unless a guard rejects it.

        Args:
            request: What to refresh.
            idempotency_key: Optional caller token; a second request with
                the same token for the same key is rejected.
            dedupe_ttl_s: Dedupe window. Defaults to the configured one.
            idempotency_ttl_s: Idempotency window. Defaults to the
                configured one.

        Returns:
            The enqueue outcome. Rejections are results, never exceptions.
        """
        if not request.source_id.strip() or not request.key.strip():
            return EnqueueResult.rejected(EnqueueRejection.INVALID)

        source_id = request.source_id
        normalized = normalize_key(request.key)
        key_hash = hash_key(normalized)
        job = RefreshJob.create(source_id, normalized, request.priority, now=self._clock())
        marker = job.id.encode()

        if idempotency_key:
            idem_key = self._idempotency_key(source_id, normalized, key_hash, idempotency_key)
            ttl = self._config.idempotency_ttl_s if idempotency_ttl_s is None else idempotency_ttl_s
            if not await self._store.set_if_absent(idem_key, marker, ttl):
                logger.debug("Idempotent reject for %s%s", source_id, normalized)
                return EnqueueResult.rejected(EnqueueRejection.IDEMPOTENT_REJECT)

        dedupe_key = self._keys.dedupe(source_id, key_hash)
        ttl = self._config.dedupe_ttl_s if dedupe_ttl_s is None else dedupe_ttl_s
        if not await self._store.set_if_absent(dedupe_key, marker, ttl):
            logger.debug("Duplicate refresh for %s%s", source_id, normalized)
            return EnqueueResult.rejected(EnqueueRejection.DUPLICATE)

        await self._push(job)
        logger.debug("Enqueued job %s for %s%s", job.id, source_id, normalized)
        return EnqueueResult.accepted(job.id)

    def _idempotency_key(
        self, source_id: str, normalized: str, key_hash: str, token: str
    ) -> str:
        # Pool job keys carry a fresh nonce; scope retries by the pool key instead.
        if is_pool_job_key(normalized):
            pool_hash = hash_key(pool_key_from_job_key(normalized))
            return self._keys.idempotency(source_id, POOL_OPERATION, pool_hash, token)
        return self._keys.idempotency(source_id, REFRESH_OPERATION, key_hash, token)

    async def enqueue_many(
        self,
        requests: Iterable[RefreshRequest],
        idempotency_key: str | None = None,
        dedupe_ttl_s: int | None = None,
        idempotency_ttl_s: int | None = None,
    ) -> list[EnqueueResult]:
        """Enqueue requests one by one.

        The batch is not atomic: each request is guarded independently.

        Returns:
            One result per request, in input order.
        """
        results = []
        for request in requests:
            results.append(
                await self.enqueue(
                    request,
                    idempotency_key=idempotency_key,
                    dedupe_ttl_s=dedupe_ttl_s,
                    idempotency_ttl_s=idempotency_ttl_s,
                )
            )
        return results

    async def enqueue_pool_collection(
        self,
        source_id: str,
        pool_key: str,
        priority: int = 0,
        idempotency_key: str | None = None,
    ) -> EnqueueResult:
        """Enqueue a job that collects one more item into a pool.

        The job key carries a fresh nonce, so collection jobs for the same
        pool are not deduplicated against each other. An idempotency key
        is scoped to the pool key, so a retried pool read is rejected.
        """
        request = RefreshRequest(
            source_id=source_id,
            key=make_pool_job_key(pool_key),
            priority=priority,
        )
        return await self.enqueue(request, idempotency_key=idempotency_key)

    async def pop(self, source_id: str) -> RefreshJob | None:
        """Remove and return the job at the head of a source's queue.

        Malformed records are logged and skipped.

        Returns:
            The job, or None if the queue is empty.
        """
        queue_key = self._keys.queue(source_id)
        while True:
            raw = await self._store.pop_front(queue_key)
            if raw is None:
                return None
            try:
                return RefreshJob.from_dict(self._serializer.deserialize(raw))
            except (SerializationError, KeyError, TypeError, ValueError) as e:
                logger.warning("Dropping malformed job record from %s: %s", queue_key, e)

    async def push_back(self, job: RefreshJob) -> int:
        """Return a popped job, unchanged, to the tail of its queue.

        Returns:
            The queue length after the push.
        """
        return await self._push(job)

    async def requeue(self, job: RefreshJob) -> RefreshJob:
        """Append a copy of a job with ``attempts`` incremented.

        Returns:
            The queued copy.
        """
        retry = job.next_attempt()
        await self._push(retry)
        return retry

    async def _push(self, job: RefreshJob) -> int:
        payload = self._serializer.serialize(job.to_dict())
        return await self._store.push_back(self._keys.queue(job.source_id), payload)
