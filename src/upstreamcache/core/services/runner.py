"""Refresh runner - drains per-source queues against the origins."""

import logging
import time
from collections.abc import Callable
from dataclasses import replace
from enum import Enum

import httpx

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.cache_entry import CacheEntry, compute_expires_at
from upstreamcache.core.entities.pool_item import PoolPayload
from upstreamcache.core.entities.refresh_job import RefreshJob
from upstreamcache.core.entities.run_summary import RunSummary, SourceRunStats
from upstreamcache.core.entities.source_config import SourceConfig
from upstreamcache.core.interfaces.source_registry import ISourceRegistry
from upstreamcache.core.services.cache_store import CacheStore
from upstreamcache.core.services.origin_fetcher import (
    TRANSIENT_STATUSES,
    OriginFetcher,
    classify_body,
)
from upstreamcache.core.services.pool_store import PoolStore
from upstreamcache.core.services.rate_limiter import RateLimiter
from upstreamcache.core.services.refresh_queue import RefreshQueue
from upstreamcache.utils.clock import Clock, utc_now
from upstreamcache.utils.keys import pool_key_from_job_key

logger = logging.getLogger(__name__)


class JobOutcome(str, Enum):
    UPDATED = "updated"
    NOT_MODIFIED = "not_modified"
    TRANSIENT = "transient"
    FAILED = "failed"


def conditional_headers(prior: CacheEntry | None) -> dict[str, str]:
    """Conditional request headers for revalidating a cached entry."""
    if prior is None:
        return {}
    if prior.meta.etag:
        return {"If-None-Match": prior.meta.etag}
    if prior.meta.last_modified:
        return {"If-Modified-Since": prior.meta.last_modified}
    return {}


class Runner:
    """Processes queued refresh jobs within per-source and time budgets.

    One run visits each source in turn and pops up to ``max_per_source``
    jobs from its queue. Every job first takes a rate-limit token; a
    denied job goes back to the tail of the queue and the source is left
    for the next run. A job requeued after a transient failure is not
    retried within the same run: popping it again ends the source. The wall-clock budget is checked before each pop,
    so an in-flight job always completes.
    """

    def __init__(
        self,
        sources: ISourceRegistry,
        queue: RefreshQueue,
        rate_limiter: RateLimiter,
        cache_store: CacheStore,
        pool_store: PoolStore,
        fetcher: OriginFetcher,
        config: CacheConfig | None = None,
        clock: Clock = utc_now,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sources = sources
        self._queue = queue
        self._rate_limiter = rate_limiter
        self._cache_store = cache_store
        self._pool_store = pool_store
        self._fetcher = fetcher
        self._config = config or CacheConfig()
        self._clock = clock
        self._timer = timer

    async def run_once(
        self,
        source_id: str | None = None,
        max_per_source: int | None = None,
        time_budget_ms: int | None = None,
    ) -> RunSummary:
        """Run one refresh pass.

        Args:
            source_id: Restrict the pass to one source. All registered
                sources are visited when omitted.
            max_per_source: Job cap per source. Defaults to the configured one.
            time_budget_ms: Wall-clock budget. Defaults to the configured one.

        Returns:
            Per-source counters and the pass duration.
        """
        started = self._timer()
        max_jobs = (
            self._config.runner_max_per_source if max_per_source is None else max_per_source
        )
        budget_ms = (
            self._config.runner_time_budget_ms if time_budget_ms is None else time_budget_ms
        )
        deadline = started + budget_ms / 1000

        if source_id is not None:
            source_ids = [source_id]
        else:
            source_ids = await self._sources.list_source_ids()

        summary = RunSummary()
        for sid in source_ids:
            if self._timer() >= deadline:
                summary.budget_exhausted = True
                break

            source = await self._sources.get(sid)
            if source is None:
                logger.warning("Skipping unknown source %s", sid)
                continue

            stats = SourceRunStats()
            summary.sources[sid] = stats
            summary.processed_sources += 1
            if await self._drain(source, stats, max_jobs, deadline):
                summary.budget_exhausted = True
                break

        summary.duration_ms = (self._timer() - started) * 1000
        logger.info(
            "Refresh run finished: %s sources in %.1fms%s",
            summary.processed_sources,
            summary.duration_ms,
            " (time budget exhausted)" if summary.budget_exhausted else "",
        )
        return summary

    async def _drain(
        self,
        source: SourceConfig,
        stats: SourceRunStats,
        max_jobs: int,
        deadline: float,
    ) -> bool:
        """Process jobs of one source. Returns True when out of time."""
        requeued: set[str] = set()
        for _ in range(max_jobs):
            if self._timer() >= deadline:
                return True

            job = await self._queue.pop(source.id)
            if job is None:
                break
            if job.id in requeued:
                await self._queue.push_back(job)
                break

            decision = await self._rate_limiter.acquire(source.id, source.rate_limit)
            if not decision.allowed:
                await self._queue.push_back(job)
                stats.throttled = True
                logger.info(
                    "Source %s throttled until %s, job %s returned to queue",
                    source.id, decision.reset_at.isoformat(), job.id,
                )
                break

            stats.dequeued += 1
            if await self._process(source, job, stats):
                requeued.add(job.id)
        return False

    async def _process(
        self,
        source: SourceConfig,
        job: RefreshJob,
        stats: SourceRunStats,
    ) -> bool:
        """Run one job. Returns True when it was put back for a retry."""
        try:
            if job.is_pool_job:
                outcome = await self._run_pool_job(source, job)
            else:
                outcome = await self._run_cache_job(source, job)
        except httpx.TransportError as e:
            logger.warning(
                "Origin unreachable for job %s (%s%s): %s", job.id, source.id, job.key, e
            )
            outcome = JobOutcome.TRANSIENT

        if outcome is JobOutcome.UPDATED:
            stats.updated += 1
        elif outcome is JobOutcome.NOT_MODIFIED:
            stats.not_modified += 1
        elif outcome is JobOutcome.TRANSIENT:
            stats.errors += 1
            return await self._retry(job, stats)
        else:
            stats.errors += 1
        return False

    async def _retry(self, job: RefreshJob, stats: SourceRunStats) -> bool:
        if job.attempts + 1 < self._config.max_job_attempts:
            await self._queue.requeue(job)
            stats.requeued += 1
            return True
        stats.dropped += 1
        logger.warning(
            "Dropping job %s (%s%s) after %s attempts",
            job.id, job.source_id, job.key, job.attempts + 1,
        )
        return False

    def _failure(self, source: SourceConfig, job: RefreshJob, status: int) -> JobOutcome:
        if status in TRANSIENT_STATUSES:
            logger.info("Transient status %s for %s%s", status, source.id, job.key)
            return JobOutcome.TRANSIENT
        logger.warning("Origin returned %s for %s%s", status, source.id, job.key)
        return JobOutcome.FAILED

    async def _run_pool_job(self, source: SourceConfig, job: RefreshJob) -> JobOutcome:
        pool_key = pool_key_from_job_key(job.key)
        response = await self._fetcher.fetch(source, pool_key)
        if not response.is_success:
            return self._failure(source, job, response.status_code)

        body = classify_body(response)
        await self._pool_store.add_item(
            source.id,
            pool_key,
            PoolPayload(data=body.data, encoding=body.encoding, content_type=body.content_type),
        )
        return JobOutcome.UPDATED

    async def _run_cache_job(self, source: SourceConfig, job: RefreshJob) -> JobOutcome:
        prior = await self._cache_store.get(source.id, job.key, record_hit=False)
        response = await self._fetcher.fetch(source, job.key, conditional_headers(prior))
        status = response.status_code
        now = self._clock()

        if status == 304:
            if prior is None:
                logger.warning(
                    "Origin answered 304 for %s%s without a cached entry", source.id, job.key
                )
                return JobOutcome.FAILED
            meta = replace(
                prior.meta,
                ttl_s=source.cache_ttl_s,
                expires_at=compute_expires_at(now, source.cache_ttl_s),
                etag=response.headers.get("etag") or prior.meta.etag,
                last_modified=response.headers.get("last-modified") or prior.meta.last_modified,
            )
            await self._cache_store.set(source.id, job.key, replace(prior, meta=meta))
            return JobOutcome.NOT_MODIFIED

        if not response.is_success:
            return self._failure(source, job, status)

        body = classify_body(response)
        entry = CacheEntry.create(
            source_id=source.id,
            key=job.key,
            data=body.data,
            ttl_s=source.cache_ttl_s,
            encoding=body.encoding,
            etag=response.headers.get("etag"),
            last_modified=response.headers.get("last-modified"),
            origin_status=status,
            content_type=body.content_type,
            now=now,
        )
        await self._cache_store.set(source.id, job.key, entry)
        return JobOutcome.UPDATED
