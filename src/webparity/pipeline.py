from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone

import httpx

from webparity.config import Config
from webparity.metrics import InFlightCounter
from webparity.models import PageFetch, RunReport
from webparity.output.report import build_report
from webparity.pairing import PairFetcher
from webparity.requestor import CacheableWebRequestor

logger = logging.getLogger(__name__)


async def run(
    config: Config,
    paths: list[str],
    source_host: str,
    destination_host: str,
    client: httpx.AsyncClient | None = None,
) -> RunReport:
    run_id = str(uuid.uuid4())
    timestamp = datetime.now(tz=timezone.utc)
    metrics = InFlightCounter()
    semaphore = asyncio.Semaphore(config.concurrency)

    async with CacheableWebRequestor(config, client=client, metrics=metrics) as requestor:
        pairs = PairFetcher(requestor, source_host, destination_host)

        async def process_one(path: str) -> PageFetch:
            async with semaphore:
                item = await pairs.fetch(path)
                if item.failed:
                    logger.warning("%s failed at %s", path, item.error_step.value)
                else:
                    logger.info("%s fetched as %s", path, item.resource_type.value)
                return item

        items = await asyncio.gather(*(process_one(path) for path in paths))

    return build_report(
        items=list(items),
        run_id=run_id,
        timestamp=timestamp,
        source_host=source_host,
        destination_host=destination_host,
        metrics=metrics.snapshot(),
    )
