from __future__ import annotations

import asyncio
import logging

import httpx

from webparity import __version__
from webparity.errors import NetworkFault, is_connection_reset
from webparity.metrics import NETWORK, MetricsSink, NullMetrics
from webparity.models import Classification, FetchResult, RequestMethod

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 10.0
DEFAULT_MAX_RETRIES = 3


class NetworkFetcher:
    """Issues GET/HEAD requests through an injected httpx client.

    Connection resets are replayed after ``retry_delay`` seconds, at most
    ``max_retries`` times. Any other transport failure raises ``NetworkFault``.
    A non-200 status is not an error: ``fetch`` returns ``None``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        max_retries: int = DEFAULT_MAX_RETRIES,
        metrics: MetricsSink | None = None,
    ) -> None:
        self.client = client
        self.retry_delay = max(retry_delay, 0.0)
        self.max_retries = max(max_retries, 0)
        self._metrics = metrics or NullMetrics()
        self._headers = {"User-Agent": f"webparity/{__version__}"}

    async def _send(self, url: str, method: RequestMethod) -> httpx.Response:
        self._metrics.increment(NETWORK)
        try:
            if method is RequestMethod.GET:
                return await self.client.get(url, headers=self._headers)
            return await self.client.head(url, headers=self._headers)
        finally:
            self._metrics.decrement(NETWORK)

    async def fetch(self, url: str, method: RequestMethod | str) -> FetchResult | None:
        request_method = RequestMethod.coerce(method)
        attempt = 0

        while True:
            attempt += 1
            try:
                response = await self._send(url, request_method)
                break
            except (httpx.HTTPError, OSError) as exc:
                if not is_connection_reset(exc):
                    raise NetworkFault(f"{request_method.value} {url} failed: {exc}") from exc
                if attempt > self.max_retries:
                    logger.warning(
                        "giving up on %s %s after %d attempts: %s",
                        request_method.value,
                        url,
                        attempt,
                        exc,
                    )
                    return None
                logger.info(
                    "connection reset on %s %s (attempt %d), retrying in %.1fs",
                    request_method.value,
                    url,
                    attempt,
                    self.retry_delay,
                )
                await asyncio.sleep(self.retry_delay)

        if response.status_code != 200:
            logger.warning("%s %s returned status %d", request_method.value, url, response.status_code)
            return None

        headers = dict(response.headers.items())
        classification = Classification.from_content_type(headers.get("content-type"))
        body: str | None = None
        if request_method is RequestMethod.GET and classification is Classification.HTML:
            body = response.text

        return FetchResult(
            url=url,
            method=request_method,
            status_code=response.status_code,
            headers=headers,
            body=body,
            classification=classification,
            attempts=attempt,
        )
