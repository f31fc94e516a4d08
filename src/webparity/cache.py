"""File cache keyed by (hostname, url path, method) with mtime-based freshness."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import posixpath
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlsplit

from webparity.errors import CacheIOError, InvalidURLError
from webparity.metrics import FS_DELETE, FS_READ, FS_WRITE
from webparity.models import RequestMethod
from webparity.throttle import HandleLimiter

logger = logging.getLogger(__name__)

SLOT_SUFFIXES = (".html", ".json")
# Written into the root on first store; prune refuses to sweep a directory without it.
CACHE_MARKER = ".webparity-cache"


def _host_label(url: str) -> tuple[str, list[str]]:
    try:
        split = urlsplit(url.strip())
        port = split.port
    except ValueError as exc:
        raise InvalidURLError(f"invalid url: {url!r}") from exc

    if split.scheme.lower() not in ("http", "https") or not split.hostname:
        raise InvalidURLError(f"not an absolute http(s) url: {url!r}")

    host = split.hostname.lower()
    if port is not None:
        host = f"{host}_{port}"

    normalized = posixpath.normpath("/" + split.path) if split.path else "/"
    segments = [segment for segment in normalized.split("/") if segment not in ("", ".", "..")]
    return host, segments


def resolve_slot_path(base_dir: Path, url: str, method: RequestMethod | str) -> Path:
    """Map a request onto ``base_dir/<path segments>/<hostname>.<ext>``.

    The hostname lives in the file name so that two hosts serving the same
    path share a directory. Query strings and fragments are not part of the slot.
    """
    request_method = RequestMethod.coerce(method)
    host, segments = _host_label(url)
    return Path(base_dir).joinpath(*segments, f"{host}.{request_method.extension}")


class CacheStore:
    def __init__(
        self,
        root: Path,
        ttl: float,
        limiter: HandleLimiter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.root = Path(root).expanduser()
        self.ttl = ttl
        self.limiter = limiter
        self._clock = clock
        self._marked = False

    def path_for(self, url: str, method: RequestMethod | str) -> Path:
        return resolve_slot_path(self.root, url, method)

    def _is_fresh(self, mtime: float) -> bool:
        return self._clock() - mtime < self.ttl

    def _read_fresh(self, path: Path) -> str | None:
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheIOError(f"cannot stat {path}: {exc}") from exc

        if not self._is_fresh(mtime):
            return None

        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheIOError(f"cannot read {path}: {exc}") from exc

        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("discarding undecodable cache file %s", path)
            return None

    def _write(self, path: Path, payload: str) -> None:
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not self._marked:
                (self.root / CACHE_MARKER).touch(exist_ok=True)
                self._marked = True
            tmp.write_bytes(payload.encode("utf-8"))
            os.replace(tmp, path)
        except OSError as exc:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise CacheIOError(f"cannot write {path}: {exc}") from exc

    async def lookup(self, url: str, method: RequestMethod | str) -> str | None:
        path = self.path_for(url, method)
        async with self.limiter.ticket(FS_READ):
            payload = await asyncio.to_thread(self._read_fresh, path)
        if payload is None:
            logger.debug("cache miss %s", path)
        else:
            logger.debug("cache hit %s", path)
        return payload

    async def store(self, url: str, method: RequestMethod | str, payload: str) -> Path:
        path = self.path_for(url, method)
        async with self.limiter.ticket(FS_WRITE):
            await asyncio.to_thread(self._write, path, payload)
        logger.debug("cached %s (%d chars)", path, len(payload))
        return path

    def _expired_slots(self) -> list[Path]:
        if not self.root.is_dir():
            return []
        if not (self.root / CACHE_MARKER).is_file():
            raise CacheIOError(
                f"refusing to prune {self.root}: no {CACHE_MARKER} marker, not a webparity cache"
            )
        expired: list[Path] = []
        try:
            for path in self.root.rglob("*"):
                if path.suffix not in SLOT_SUFFIXES or path.name.startswith("."):
                    continue
                try:
                    mtime = path.stat().st_mtime
                except FileNotFoundError:
                    continue
                if path.is_file() and not self._is_fresh(mtime):
                    expired.append(path)
        except OSError as exc:
            raise CacheIOError(f"cannot scan {self.root}: {exc}") from exc
        return expired

    def _delete_if_stale(self, path: Path) -> bool:
        try:
            if self._is_fresh(path.stat().st_mtime):
                return False
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise CacheIOError(f"cannot delete {path}: {exc}") from exc
        return True

    async def prune(self) -> int:
        """Delete slot files whose age exceeds the TTL. Returns the number removed."""
        async with self.limiter.ticket(FS_READ):
            candidates = await asyncio.to_thread(self._expired_slots)
        removed = 0
        for path in candidates:
            async with self.limiter.ticket(FS_DELETE):
                if await asyncio.to_thread(self._delete_if_stale, path):
                    removed += 1
        logger.info("pruned %d expired cache files under %s", removed, self.root)
        return removed
