from __future__ import annotations

import json
from datetime import datetime, timezone

from webparity.models import ErrorStep, PageFetch, ResourceType
from webparity.output.report import build_report, emit_report


def _items() -> list[PageFetch]:
    return [
        PageFetch(
            path="/a",
            resource_type=ResourceType.WEBPAGE,
            source_headers={},
            destination_headers={},
            source_content="<html>a</html>",
            destination_content="<html>a</html>",
        ),
        PageFetch(path="/b.pdf", resource_type=ResourceType.FILE, source_headers={}, destination_headers={}),
        PageFetch(path="/c", error_step=ErrorStep.FETCH_HEADERS, fetch_errors=["Source was a non-200 status"]),
    ]


def test_build_report_counts_outcomes() -> None:
    report = build_report(
        items=_items(),
        run_id="id",
        timestamp=datetime(2026, 2, 14, tzinfo=timezone.utc),
        source_host="https://old.example",
        destination_host="https://new.example",
    )

    assert report.webpage_count == 1
    assert report.file_count == 1
    assert report.failure_count == 1
    assert report.metrics == {}


def test_emit_report_omits_page_bodies_by_default(capsys) -> None:  # noqa: ANN001
    report = build_report(
        items=_items(),
        run_id="id",
        timestamp=datetime(2026, 2, 14, tzinfo=timezone.utc),
        source_host="https://old.example",
        destination_host="https://new.example",
        metrics={"network.total": 4},
    )

    emit_report(report)
    payload = json.loads(capsys.readouterr().out)
    assert "source_content" not in payload["items"][0]
    assert payload["items"][2]["error_step"] == "FETCH_HEADERS"
    assert payload["metrics"] == {"network.total": 4}

    emit_report(report, include_content=True)
    payload = json.loads(capsys.readouterr().out)
    assert payload["items"][0]["source_content"] == "<html>a</html>"
