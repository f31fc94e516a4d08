"""Throttled, TTL-cached web requestor used by the two-host comparison steps."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Protocol

import httpx

from webparity.cache import CacheStore
from webparity.config import Config
from webparity.errors import InvalidArgumentError
from webparity.fetching.fetcher import NetworkFetcher
from webparity.metrics import MetricsSink, NullMetrics
from webparity.models import RequestMethod
from webparity.throttle import HandleLimiter

logger = logging.getLogger(__name__)


class WebRequestor(Protocol):
    async def get_headers(self, url: str) -> dict[str, str] | None: ...

    async def get_contents(self, url: str) -> str | None: ...


def _require_url(url: str) -> None:
    if not isinstance(url, str) or not url.strip():
        raise InvalidArgumentError("URL must be provided.")


def _decode_headers(payload: str) -> dict[str, str] | None:
    try:
        decoded = json.loads(payload)
    except json.JSONDecodeError:
        return None
    return decoded if isinstance(decoded, dict) else None


class CacheableWebRequestor:
    """Cache-first GET/HEAD requestor.

    Every call checks the file cache first and only touches the network on a
    miss. ``None`` means the resource is unavailable (non-200 status, or
    connection resets past the retry limit). Concurrent misses for the same
    URL each fetch and store; the last write wins.

    When no client is injected, use the requestor as an async context manager
    so it can own an ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        config: Config,
        client: httpx.AsyncClient | None = None,
        metrics: MetricsSink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.metrics = metrics or NullMetrics()
        self.limiter = HandleLimiter(
            max_handles=config.max_concurrent_handles,
            wait_interval=config.handle_wait_interval_seconds,
            metrics=self.metrics,
        )
        self.cache = CacheStore(config.cache_path, config.ttl_seconds, self.limiter, clock=clock)
        self._owns_client = client is None
        self._fetcher: NetworkFetcher | None = None
        if client is not None:
            self._fetcher = self._build_fetcher(client)

    def _build_fetcher(self, client: httpx.AsyncClient) -> NetworkFetcher:
        return NetworkFetcher(
            client,
            retry_delay=self.config.retry_delay_seconds,
            max_retries=self.config.max_retries,
            metrics=self.metrics,
        )

    async def __aenter__(self) -> CacheableWebRequestor:
        if self._fetcher is None:
            client = httpx.AsyncClient(
                timeout=self.config.timeout,
                follow_redirects=True,
                limits=httpx.Limits(max_connections=self.config.max_connections),
            )
            self._fetcher = self._build_fetcher(client)
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._owns_client and self._fetcher is not None:
            await self._fetcher.client.aclose()
            self._fetcher = None

    @property
    def fetcher(self) -> NetworkFetcher:
        if self._fetcher is None:
            raise RuntimeError("no http client: inject one or use 'async with CacheableWebRequestor(...)'")
        return self._fetcher

    async def get_headers(self, url: str) -> dict[str, str] | None:
        _require_url(url)

        cached = await self.cache.lookup(url, RequestMethod.HEAD)
        if cached is not None:
            headers = _decode_headers(cached)
            if headers is not None:
                return headers
            logger.warning("discarding unreadable cached headers for %s", url)

        result = await self.fetcher.fetch(url, RequestMethod.HEAD)
        if result is None:
            return None

        await self.cache.store(url, RequestMethod.HEAD, json.dumps(result.headers, sort_keys=True))
        return result.headers

    async def get_contents(self, url: str) -> str | None:
        _require_url(url)

        cached = await self.cache.lookup(url, RequestMethod.GET)
        if cached is not None:
            return cached

        result = await self.fetcher.fetch(url, RequestMethod.GET)
        if result is None:
            return None

        payload = result.payload or ""
        await self.cache.store(url, RequestMethod.GET, payload)
        return payload
