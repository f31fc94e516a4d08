from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from webparity.errors import InvalidArgumentError, WebParityError
from webparity.models import Classification, ErrorStep, PageFetch, ResourceType
from webparity.requestor import WebRequestor

logger = logging.getLogger(__name__)

T = TypeVar("T")


def join_url(host: str, path: str) -> str:
    return f"{host.rstrip('/')}/{path.lstrip('/')}"


async def _guarded(
    call: Callable[[str], Awaitable[T | None]],
    url: str,
    absent_message: str,
    errors: list[str],
) -> T | None:
    try:
        value = await call(url)
    except WebParityError as exc:
        logger.error("fetch failed for %s: %s", url, exc)
        errors.append(f"{url}: {exc}")
        return None
    if value is None:
        errors.append(absent_message)
    return value


class PairFetcher:
    """Fetches one path from the source and destination hosts for comparison."""

    def __init__(self, requestor: WebRequestor, source_host: str, destination_host: str) -> None:
        if not source_host:
            raise InvalidArgumentError("You must supply a source host")
        if not destination_host:
            raise InvalidArgumentError("You must supply a destination host")
        self.requestor = requestor
        self.source_host = source_host
        self.destination_host = destination_host

    async def fetch(self, path: str) -> PageFetch:
        source_url = join_url(self.source_host, path)
        destination_url = join_url(self.destination_host, path)
        errors: list[str] = []

        source_headers, destination_headers = await asyncio.gather(
            _guarded(self.requestor.get_headers, source_url, "Source was a non-200 status", errors),
            _guarded(
                self.requestor.get_headers,
                destination_url,
                "Destination was a non-200 status",
                errors,
            ),
        )
        if errors or source_headers is None or destination_headers is None:
            return PageFetch(path=path, error_step=ErrorStep.FETCH_HEADERS, fetch_errors=errors)

        # Source and destination are assumed to share a media type.
        content_type = source_headers.get("content-type")
        if Classification.from_content_type(content_type) is Classification.OPAQUE:
            return PageFetch(
                path=path,
                resource_type=ResourceType.FILE,
                source_headers=source_headers,
                destination_headers=destination_headers,
            )

        source_content, destination_content = await asyncio.gather(
            _guarded(self.requestor.get_contents, source_url, "Source content was unavailable", errors),
            _guarded(
                self.requestor.get_contents,
                destination_url,
                "Destination content was unavailable",
                errors,
            ),
        )
        if errors:
            return PageFetch(path=path, error_step=ErrorStep.FETCH_CONTENT, fetch_errors=errors)

        return PageFetch(
            path=path,
            resource_type=ResourceType.WEBPAGE,
            source_headers=source_headers,
            destination_headers=destination_headers,
            source_content=source_content,
            destination_content=destination_content,
        )


async def fetch_pair(
    requestor: WebRequestor,
    source_host: str,
    destination_host: str,
    path: str,
) -> PageFetch:
    return await PairFetcher(requestor, source_host, destination_host).fetch(path)
