"""Origin HTTP fetches with per-attempt timeouts and retry."""

import asyncio
import base64
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlsplit

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
    wait_random,
)

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.core.entities.cache_entry import DataEncoding
from upstreamcache.core.entities.source_config import SourceConfig

logger = logging.getLogger(__name__)

# Statuses the runner treats as transient at the job level.
TRANSIENT_STATUSES = frozenset({429, 502, 503})

_TEXTUAL_MEDIA_TYPES = frozenset(
    {
        "application/xml",
        "application/javascript",
        "application/x-www-form-urlencoded",
    }
)


def is_retryable_status(status: int) -> bool:
    """Statuses retried within one fetch call."""
    return status >= 500 or status == 429


@dataclass(frozen=True)
class ClassifiedBody:
    """A response body in its cacheable representation."""

    data: Any
    encoding: DataEncoding
    content_type: str | None


def classify_body(response: httpx.Response) -> ClassifiedBody:
    """Represent a response body as JSON, text or base64.

    JSON media types are parsed (falling back to text when the body does
    not parse), textual media types are decoded, anything else is base64
    encoded. Without a content type, bodies that decode as UTF-8 are text.

    Args:
        response: The origin response.

    Returns:
        The classified body.
    """
    content_type = response.headers.get("content-type")
    media_type = (content_type or "").split(";")[0].strip().lower()

    if media_type.endswith("json"):
        try:
            return ClassifiedBody(response.json(), DataEncoding.JSON, content_type)
        except ValueError:
            logger.debug("Body declared as %s is not valid JSON", media_type)
            return ClassifiedBody(response.text, DataEncoding.TEXT, content_type)

    if (
        media_type.startswith("text/")
        or media_type.endswith("+xml")
        or media_type in _TEXTUAL_MEDIA_TYPES
    ):
        return ClassifiedBody(response.text, DataEncoding.TEXT, content_type)

    if not media_type:
        try:
            return ClassifiedBody(response.content.decode("utf-8"), DataEncoding.TEXT, None)
        except UnicodeDecodeError:
            pass

    encoded = base64.b64encode(response.content).decode("ascii")
    return ClassifiedBody(encoded, DataEncoding.BASE64, content_type)


class OriginFetcher:
    """Fetches keys of a source from its origin API.

    Each call makes up to ``fetch_attempts`` attempts with their own
    timeout. 5xx and 429 responses are retried after a jittered backoff
    that grows with the attempt number; every other response is returned
    at once. When no attempt produced a response, the last transport
    error is raised.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        config: CacheConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            client: HTTP client. One is created (and owned) if omitted.
            config: Optional configuration. Uses defaults if not provided.
            sleep: Awaitable sleep used between attempts.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self._config = config or CacheConfig()
        self._sleep = sleep

    @staticmethod
    def build_request(source: SourceConfig, key: str) -> tuple[str, dict[str, str]]:
        """Resolve a key against a source.

        Returns:
            The URL and the query parameters; the key's own parameters
            override the source's default query.
        """
        parts = urlsplit(key)
        url = f"{source.base_url.rstrip('/')}{parts.path}"
        params = dict(source.default_query)
        params.update(parse_qsl(parts.query, keep_blank_values=True))
        return url, params

    async def fetch(
        self,
        source: SourceConfig,
        key: str,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Fetch a key from the source's origin.

        Args:
            source: The source configuration.
            key: The normalized key (path plus optional query).
            headers: Extra headers, e.g. conditional request headers.

        Returns:
            The first non-retryable response, or the last response received
            when the attempts ran out.

        Raises:
            httpx.TransportError: If no attempt produced a response.
        """
        url, params = self.build_request(source, key)
        request_headers = {**source.default_headers, **(headers or {})}
        timeout = httpx.Timeout(self._config.fetch_timeout_s)
        attempts = self._config.fetch_attempts
        base = self._config.fetch_backoff_s
        responses: list[httpx.Response] = []

        async def attempt() -> httpx.Response:
            response = await self._client.get(
                url, params=params, headers=request_headers, timeout=timeout
            )
            responses.append(response)
            return response

        def log_retry(retry_state: RetryCallState) -> None:
            outcome = retry_state.outcome
            if outcome is not None and outcome.failed:
                logger.warning(
                    "Fetch of %s failed (attempt %s/%s): %s",
                    url, retry_state.attempt_number, attempts, outcome.exception(),
                )
            else:
                logger.info(
                    "Fetch of %s returned %s (attempt %s/%s)",
                    url, responses[-1].status_code, retry_state.attempt_number, attempts,
                )

        def give_up(retry_state: RetryCallState) -> httpx.Response:
            if responses:
                return responses[-1]
            raise retry_state.outcome.exception()

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=base, increment=base) + wait_random(0, base),
            retry=(
                retry_if_exception_type(httpx.TransportError)
                | retry_if_result(lambda r: is_retryable_status(r.status_code))
            ),
            before_sleep=log_retry,
            retry_error_callback=give_up,
            sleep=self._sleep,
        )
        return await retrying(attempt)

    async def close(self) -> None:
        """Close the HTTP client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "OriginFetcher":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.close()
