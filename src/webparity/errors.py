from __future__ import annotations

import httpx


class WebParityError(RuntimeError):
    """Base class for failures raised by the requestor core."""


class InvalidArgumentError(WebParityError, ValueError):
    """A caller passed an empty or malformed argument."""


class InvalidURLError(InvalidArgumentError):
    """The URL could not be parsed as an absolute http(s) URL."""


class UnknownMethodError(WebParityError):
    """Only GET and HEAD are supported."""


class CacheIOError(WebParityError):
    """Filesystem failure other than a missing file while reading or writing the cache."""


class NetworkFault(WebParityError):
    """Transport failure that is not worth retrying."""


RESET_MARKERS = ("connection reset", "econnreset")


def is_connection_reset(exc: BaseException) -> bool:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, ConnectionResetError):
            return True
        if isinstance(current, httpx.TransportError):
            message = str(current).lower()
            if any(marker in message for marker in RESET_MARKERS):
                return True
        current = current.__cause__ or current.__context__
    return False
