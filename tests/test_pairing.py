from __future__ import annotations

import asyncio

import pytest

from webparity.errors import CacheIOError, InvalidArgumentError
from webparity.models import OPAQUE_SENTINEL, ErrorStep, ResourceType
from webparity.pairing import PairFetcher, fetch_pair, join_url

SOURCE = "https://old.example"
DESTINATION = "https://new.example/"


class FakeRequestor:
    def __init__(
        self,
        headers: dict[str, dict[str, str] | None | Exception],
        contents: dict[str, str | None | Exception] | None = None,
    ) -> None:
        self.headers = headers
        self.contents = contents or {}
        self.content_calls: list[str] = []

    async def get_headers(self, url: str) -> dict[str, str] | None:
        value = self.headers.get(url)
        if isinstance(value, Exception):
            raise value
        return value

    async def get_contents(self, url: str) -> str | None:
        self.content_calls.append(url)
        value = self.contents.get(url)
        if isinstance(value, Exception):
            raise value
        return value


HTML = {"content-type": "text/html; charset=utf-8"}


def test_join_url() -> None:
    assert join_url("https://a.example/", "/about") == "https://a.example/about"
    assert join_url("https://a.example", "about") == "https://a.example/about"


def test_webpage_pair() -> None:
    requestor = FakeRequestor(
        headers={"https://old.example/about": HTML, "https://new.example/about": HTML},
        contents={
            "https://old.example/about": "<html>old</html>",
            "https://new.example/about": "<html>new</html>",
        },
    )
    item = asyncio.run(PairFetcher(requestor, SOURCE, DESTINATION).fetch("/about"))

    assert item.resource_type is ResourceType.WEBPAGE
    assert not item.failed
    assert item.source_content == "<html>old</html>"
    assert item.destination_content == "<html>new</html>"


def test_non_html_pair_is_file_and_skips_contents() -> None:
    pdf = {"content-type": "application/pdf"}
    requestor = FakeRequestor(
        headers={"https://old.example/a.pdf": pdf, "https://new.example/a.pdf": pdf},
    )
    item = asyncio.run(PairFetcher(requestor, SOURCE, DESTINATION).fetch("/a.pdf"))

    assert item.resource_type is ResourceType.FILE
    assert item.source_headers == pdf
    assert requestor.content_calls == []


def test_unavailable_headers_fail_the_header_step() -> None:
    requestor = FakeRequestor(headers={"https://old.example/gone": HTML, "https://new.example/gone": None})
    item = asyncio.run(PairFetcher(requestor, SOURCE, DESTINATION).fetch("/gone"))

    assert item.error_step is ErrorStep.FETCH_HEADERS
    assert item.fetch_errors == ["Destination was a non-200 status"]
    assert requestor.content_calls == []


def test_header_faults_are_recorded_not_raised() -> None:
    requestor = FakeRequestor(
        headers={
            "https://old.example/x": CacheIOError("cannot stat"),
            "https://new.example/x": HTML,
        }
    )
    item = asyncio.run(PairFetcher(requestor, SOURCE, DESTINATION).fetch("/x"))

    assert item.error_step is ErrorStep.FETCH_HEADERS
    assert item.fetch_errors == ["https://old.example/x: cannot stat"]


def test_content_failures_fail_the_content_step() -> None:
    requestor = FakeRequestor(
        headers={"https://old.example/p": HTML, "https://new.example/p": HTML},
        contents={"https://old.example/p": "<html/>", "https://new.example/p": None},
    )
    item = asyncio.run(PairFetcher(requestor, SOURCE, DESTINATION).fetch("/p"))

    assert item.error_step is ErrorStep.FETCH_CONTENT
    assert item.fetch_errors == ["Destination content was unavailable"]


def test_opaque_content_is_passed_through() -> None:
    requestor = FakeRequestor(
        headers={"https://old.example/p": HTML, "https://new.example/p": HTML},
        contents={"https://old.example/p": OPAQUE_SENTINEL, "https://new.example/p": "<html/>"},
    )
    item = asyncio.run(PairFetcher(requestor, SOURCE, DESTINATION).fetch("/p"))

    assert item.resource_type is ResourceType.WEBPAGE
    assert item.source_content == OPAQUE_SENTINEL


@pytest.mark.parametrize("source,destination", [("", DESTINATION), (SOURCE, "")])
def test_hosts_are_required(source: str, destination: str) -> None:
    with pytest.raises(InvalidArgumentError):
        PairFetcher(FakeRequestor(headers={}), source, destination)


def test_fetch_pair_function_matches_fetcher() -> None:
    requestor = FakeRequestor(
        headers={"https://old.example/doc": {"content-type": "application/pdf"}, "https://new.example/doc": HTML},
    )
    item = asyncio.run(fetch_pair(requestor, SOURCE, DESTINATION, "/doc"))

    assert item.resource_type is ResourceType.FILE
    assert requestor.content_calls == []


def test_fetch_pair_requires_hosts() -> None:
    with pytest.raises(InvalidArgumentError):
        asyncio.run(fetch_pair(FakeRequestor(headers={}), SOURCE, "", "/doc"))
