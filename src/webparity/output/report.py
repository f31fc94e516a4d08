from __future__ import annotations

import json
import sys
from datetime import datetime

from webparity.models import PageFetch, ResourceType, RunReport


def build_report(
    items: list[PageFetch],
    run_id: str,
    timestamp: datetime,
    source_host: str,
    destination_host: str,
    metrics: dict[str, int] | None = None,
) -> RunReport:
    webpage_count = sum(1 for item in items if item.resource_type == ResourceType.WEBPAGE)
    file_count = sum(1 for item in items if item.resource_type == ResourceType.FILE)
    failure_count = sum(1 for item in items if item.failed)

    return RunReport(
        run_id=run_id,
        timestamp=timestamp,
        source_host=source_host,
        destination_host=destination_host,
        items=items,
        webpage_count=webpage_count,
        file_count=file_count,
        failure_count=failure_count,
        metrics=metrics or {},
    )


def emit_report(report: RunReport, include_content: bool = False) -> None:
    exclude = None if include_content else {"items": {"__all__": {"source_content", "destination_content"}}}
    payload = report.model_dump(mode="json", exclude=exclude)
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")
