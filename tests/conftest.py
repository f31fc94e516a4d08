from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
import sys

import httpx
import pytest


sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from webparity.config import Config  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch) -> None:  # noqa: ANN001
    for name in (
        "WEBPARITY_CACHE_PATH",
        "WEBPARITY_CACHE_DURATION",
        "WEBPARITY_MAX_CONCURRENT_HANDLES",
        "WEBPARITY_HANDLE_WAIT_INTERVAL_MS",
        "WEBPARITY_RETRY_DELAY_MS",
        "WEBPARITY_MAX_RETRIES",
        "WEBPARITY_TIMEOUT",
        "WEBPARITY_MAX_CONNECTIONS",
        "WEBPARITY_CONCURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_config(tmp_path) -> Callable[..., Config]:  # noqa: ANN001
    def _make(**overrides: object) -> Config:
        values: dict[str, object] = {"cache_path": tmp_path / "cache", "retry_delay_ms": 0}
        values.update(overrides)
        return Config(**values)

    return _make


def html_response(body: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/html; charset=utf-8"},
        text=body,
    )


def mock_client(handler: Callable[[httpx.Request], object]) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
