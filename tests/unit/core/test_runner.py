"""Tests for Runner."""

from datetime import timedelta

import httpx
import pytest

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.cache_entry import CacheEntry, DataEncoding
from upstreamcache.core.entities.rate_limit import RateLimitPolicy
from upstreamcache.core.entities.refresh_job import RefreshRequest
from upstreamcache.core.entities.source_config import SourceConfig
from upstreamcache.core.services.cache_store import CacheStore
from upstreamcache.core.services.origin_fetcher import OriginFetcher
from upstreamcache.core.services.pool_store import PoolStore
from upstreamcache.core.services.rate_limiter import RateLimiter
from upstreamcache.core.services.refresh_queue import RefreshQueue
from upstreamcache.core.services.runner import Runner, conditional_headers
from upstreamcache.infrastructure.sources.memory import InMemorySourceRegistry
from upstreamcache.infrastructure.tiers.durable import DurableCacheTier
from upstreamcache.infrastructure.tiers.hot import HotCacheTier

WEATHER = SourceConfig(
    id="weather",
    base_url="https://weather.example.com",
    cache_ttl_s=600,
    rate_limit=RateLimitPolicy(per_minute=100),
)
QUOTES = SourceConfig(
    id="quotes",
    base_url="https://quotes.example.com",
    supports_pool=True,
)


class Origin:
    """Scripted origin: a list of responses per path, or a fixed handler."""

    def __init__(self) -> None:
        self.routes: dict[str, list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, *responses) -> None:
        self.routes.setdefault(path, []).extend(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        responses = self.routes[request.url.path]
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(response, Exception):
            raise response
        return response


async def no_sleep(_seconds: float) -> None:
    return None


class Harness:
    """Components wired around one in-memory hot and durable store."""

    def __init__(self, hot, durable, keys, clock, timer, config=None, sources=(WEATHER, QUOTES)):
        self.config = config or CacheConfig(fetch_attempts=1)
        self.origin = Origin()
        self.clock = clock
        self.timer = timer
        self.registry = InMemorySourceRegistry(sources)
        self.queue = RefreshQueue(hot, self.config, keys, clock=clock)
        self.limiter = RateLimiter(hot, keys, clock=clock)
        self.cache = CacheStore(
            [HotCacheTier(hot, keys), DurableCacheTier(durable)], self.config, clock=clock
        )
        self.pool = PoolStore(hot, durable, self.config, keys, clock=clock)
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.origin))
        self.fetcher = OriginFetcher(client, self.config, sleep=no_sleep)
        self.runner = Runner(
            self.registry,
            self.queue,
            self.limiter,
            self.cache,
            self.pool,
            self.fetcher,
            self.config,
            clock=clock,
            timer=timer,
        )

    async def enqueue(self, source_id: str, key: str) -> None:
        result = await self.queue.enqueue(RefreshRequest(source_id, key))
        assert result.enqueued


@pytest.fixture
def harness(hot, durable, keys, clock, timer) -> Harness:
    return Harness(hot, durable, keys, clock, timer)


class TestRegularJobs:
    """Tests for cache refresh jobs."""

    @pytest.mark.asyncio
    async def test_success_writes_entry(self, harness: Harness) -> None:
        """Test a 200 response becomes a fresh cache entry."""
        harness.origin.add(
            "/v1/today",
            httpx.Response(200, json={"t": 21}, headers={"ETag": '"v1"'}),
        )
        await harness.enqueue("weather", "/v1/today")

        summary = await harness.runner.run_once(source_id="weather")

        stats = summary.sources["weather"]
        assert (stats.dequeued, stats.updated, stats.errors) == (1, 1, 0)
        entry = await harness.cache.get("weather", "/v1/today")
        assert entry.data == {"t": 21}
        assert entry.meta.etag == '"v1"'
        assert entry.meta.origin_status == 200
        assert entry.meta.expires_at == harness.clock() + timedelta(seconds=600)

    @pytest.mark.asyncio
    async def test_revalidation_sends_etag(self, harness: Harness) -> None:
        """Test a prior entry's ETag is sent as If-None-Match."""
        prior = CacheEntry.create("weather", "/v1/today", {"t": 1}, ttl_s=600, etag='"v1"')
        await harness.cache.set("weather", "/v1/today", prior)
        harness.origin.add("/v1/today", httpx.Response(304))
        await harness.enqueue("weather", "/v1/today")

        await harness.runner.run_once()

        assert harness.origin.requests[0].headers["If-None-Match"] == '"v1"'

    @pytest.mark.asyncio
    async def test_not_modified_extends_expiry(self, harness: Harness) -> None:
        """Test a 304 keeps the data and moves expires_at forward."""
        prior = CacheEntry.create(
            "weather", "/v1/today", {"t": 1}, ttl_s=60, etag='"v1"', now=harness.clock()
        )
        await harness.cache.set("weather", "/v1/today", prior)
        harness.clock.advance(120)
        harness.origin.add("/v1/today", httpx.Response(304))
        await harness.enqueue("weather", "/v1/today")

        summary = await harness.runner.run_once()

        assert summary.sources["weather"].not_modified == 1
        entry = await harness.cache.get("weather", "/v1/today")
        assert entry.data == {"t": 1}
        assert entry.meta.stale is False
        assert entry.meta.ttl_s == 600
        assert entry.meta.expires_at == harness.clock() + timedelta(seconds=600)

    @pytest.mark.asyncio
    async def test_not_modified_without_prior_is_error(self, harness: Harness) -> None:
        """Test a 304 with nothing cached counts as a permanent error."""
        harness.origin.add("/v1/today", httpx.Response(304))
        await harness.enqueue("weather", "/v1/today")

        summary = await harness.runner.run_once()

        stats = summary.sources["weather"]
        assert (stats.errors, stats.requeued, stats.dropped) == (1, 0, 0)

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self, harness: Harness) -> None:
        """Test a 404 is counted and the job discarded."""
        harness.origin.add("/v1/today", httpx.Response(404))
        await harness.enqueue("weather", "/v1/today")

        summary = await harness.runner.run_once()

        assert summary.sources["weather"].errors == 1
        assert summary.sources["weather"].requeued == 0
        assert await harness.queue.pop("weather") is None

    @pytest.mark.asyncio
    async def test_text_body(self, harness: Harness) -> None:
        """Test non-JSON bodies are stored with their encoding."""
        harness.origin.add(
            "/v1/feed", httpx.Response(200, text="<rss/>", headers={"content-type": "application/rss+xml"})
        )
        await harness.enqueue("weather", "/v1/feed")

        await harness.runner.run_once()

        entry = await harness.cache.get("weather", "/v1/feed")
        assert entry.meta.data_encoding is DataEncoding.TEXT
        assert entry.data == "<rss/>"


class TestRetries:
    """Tests for transient failures."""

    @pytest.mark.asyncio
    async def test_three_failures_then_drop(self, harness: Harness) -> None:
        """Test a job is requeued twice and dropped on the third failure."""
        harness.origin.add("/v1/today", httpx.Response(503))
        await harness.enqueue("weather", "/v1/today")

        first = await harness.runner.run_once()
        second = await harness.runner.run_once()
        third = await harness.runner.run_once()

        assert first.sources["weather"].requeued == 1
        assert second.sources["weather"].requeued == 1
        assert third.sources["weather"].requeued == 0
        assert third.sources["weather"].dropped == 1
        assert await harness.queue.pop("weather") is None
        assert len(harness.origin.requests) == 3

    @pytest.mark.asyncio
    async def test_requeued_job_waits_for_next_run(self, harness: Harness) -> None:
        """Test a failed job is retried on the next run, not the same one."""
        harness.origin.add("/v1/today", httpx.Response(503))
        await harness.enqueue("weather", "/v1/today")

        summary = await harness.runner.run_once(source_id="weather")

        stats = summary.sources["weather"]
        assert (stats.dequeued, stats.errors, stats.requeued, stats.dropped) == (1, 1, 1, 0)
        assert len(harness.origin.requests) == 1
        job = await harness.queue.pop("weather")
        assert job.attempts == 1

    @pytest.mark.asyncio
    async def test_requeue_does_not_block_later_jobs(self, harness: Harness) -> None:
        """Test jobs queued behind a failing one still run in the same pass."""
        harness.origin.add("/a", httpx.Response(503))
        harness.origin.add("/b", httpx.Response(200, json={"b": 1}))
        await harness.enqueue("weather", "/a")
        await harness.enqueue("weather", "/b")

        summary = await harness.runner.run_once(source_id="weather")

        stats = summary.sources["weather"]
        assert (stats.dequeued, stats.updated, stats.requeued) == (2, 1, 1)
        assert (await harness.queue.pop("weather")).key == "/a"

    @pytest.mark.asyncio
    async def test_requeued_job_carries_attempts(self, harness: Harness) -> None:
        """Test the requeued copy has attempts incremented."""
        harness.origin.add("/v1/today", httpx.Response(429))
        await harness.enqueue("weather", "/v1/today")

        await harness.runner.run_once(max_per_source=1)

        job = await harness.queue.pop("weather")
        assert job.attempts == 1

    @pytest.mark.asyncio
    async def test_network_error_is_transient(self, harness: Harness) -> None:
        """Test transport errors are retried like transient statuses."""
        harness.origin.add("/v1/today", httpx.ConnectError("refused"))
        await harness.enqueue("weather", "/v1/today")

        summary = await harness.runner.run_once(max_per_source=1)

        assert summary.sources["weather"].errors == 1
        assert summary.sources["weather"].requeued == 1

    @pytest.mark.asyncio
    async def test_recovery_after_transient_error(self, harness: Harness) -> None:
        """Test a requeued job succeeds on a later run."""
        harness.origin.add("/v1/today", httpx.Response(502), httpx.Response(200, json={"t": 2}))
        await harness.enqueue("weather", "/v1/today")

        await harness.runner.run_once(max_per_source=1)
        summary = await harness.runner.run_once(max_per_source=1)

        assert summary.sources["weather"].updated == 1
        assert (await harness.cache.get("weather", "/v1/today")).data == {"t": 2}


class TestBudgets:
    """Tests for rate limits and time budgets."""

    @pytest.mark.asyncio
    async def test_rate_limit_pushes_back(self, hot, durable, keys, clock, timer) -> None:
        """Test a denied job stays queued and the source is marked throttled."""
        limited = SourceConfig(
            id="weather",
            base_url="https://weather.example.com",
            rate_limit=RateLimitPolicy(per_minute=1),
        )
        harness = Harness(hot, durable, keys, clock, timer, sources=[limited])
        harness.origin.add("/a", httpx.Response(200, json=1))
        harness.origin.add("/b", httpx.Response(200, json=2))
        await harness.enqueue("weather", "/a")
        await harness.enqueue("weather", "/b")

        summary = await harness.runner.run_once()

        stats = summary.sources["weather"]
        assert stats.throttled is True
        assert stats.dequeued == 1
        job = await harness.queue.pop("weather")
        assert job.key == "/b"
        assert job.attempts == 0

    @pytest.mark.asyncio
    async def test_max_per_source(self, harness: Harness) -> None:
        """Test at most max_per_source jobs run per source."""
        for path in ("/a", "/b", "/c"):
            harness.origin.add(path, httpx.Response(200, json=path))
            await harness.enqueue("weather", path)

        summary = await harness.runner.run_once(max_per_source=2)

        assert summary.sources["weather"].dequeued == 2
        assert (await harness.queue.pop("weather")).key == "/c"

    @pytest.mark.asyncio
    async def test_time_budget(self, hot, durable, keys, clock, timer) -> None:
        """Test no job starts once the time budget is spent."""
        harness = Harness(hot, durable, keys, clock, timer)

        def slow(request: httpx.Request) -> httpx.Response:
            timer.advance(0.6)
            return httpx.Response(200, json={})

        client = httpx.AsyncClient(transport=httpx.MockTransport(slow))
        harness.runner._fetcher = OriginFetcher(client, harness.config, sleep=no_sleep)
        for path in ("/a", "/b", "/c"):
            await harness.enqueue("weather", path)

        summary = await harness.runner.run_once(time_budget_ms=1000)

        assert summary.budget_exhausted is True
        assert summary.sources["weather"].dequeued == 2

    @pytest.mark.asyncio
    async def test_unknown_source_is_skipped(self, harness: Harness) -> None:
        """Test unknown sources do not fail the run."""
        summary = await harness.runner.run_once(source_id="missing")

        assert summary.processed_sources == 0
        assert summary.sources == {}

    @pytest.mark.asyncio
    async def test_all_sources_visited(self, harness: Harness) -> None:
        """Test a run without source_id visits every registered source."""
        summary = await harness.runner.run_once()

        assert summary.processed_sources == 2
        assert set(summary.sources) == {"quotes", "weather"}


class TestPoolJobs:
    """Tests for pool collection jobs."""

    @pytest.mark.asyncio
    async def test_pool_job_adds_item(self, harness: Harness) -> None:
        """Test a pool job fetches the pool key without the nonce."""
        harness.origin.add("/quotes", httpx.Response(200, json={"q": "hi"}))
        await harness.queue.enqueue_pool_collection("quotes", "/quotes?tag=x")

        summary = await harness.runner.run_once(source_id="quotes")

        assert summary.sources["quotes"].updated == 1
        request = harness.origin.requests[0]
        assert dict(request.url.params) == {"tag": "x"}
        hit = await harness.pool.random_item("quotes", "/quotes?tag=x")
        assert hit.data == {"q": "hi"}

    @pytest.mark.asyncio
    async def test_pool_job_transient_failure(self, harness: Harness) -> None:
        """Test pool jobs are retried like regular ones."""
        harness.origin.add("/quotes", httpx.Response(503))
        await harness.queue.enqueue_pool_collection("quotes", "/quotes")

        summary = await harness.runner.run_once(source_id="quotes")

        assert summary.sources["quotes"].requeued == 1
        assert await harness.pool.random_item("quotes", "/quotes") is None


class TestConditionalHeaders:
    """Tests for conditional_headers."""

    def test_prefers_etag(self) -> None:
        """Test ETag wins over Last-Modified."""
        entry = CacheEntry.create("s", "/k", 1, etag='"v"', last_modified="Mon")
        assert conditional_headers(entry) == {"If-None-Match": '"v"'}

    def test_last_modified(self) -> None:
        """Test Last-Modified is used without an ETag."""
        entry = CacheEntry.create("s", "/k", 1, last_modified="Mon")
        assert conditional_headers(entry) == {"If-Modified-Since": "Mon"}

    def test_no_prior(self) -> None:
        """Test no headers without a prior entry."""
        assert conditional_headers(None) == {}
