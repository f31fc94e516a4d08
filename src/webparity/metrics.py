"""In-flight operation counters used for diagnostics only."""

from __future__ import annotations

from collections import Counter
from typing import Protocol

FS_READ = "fs_read"
FS_WRITE = "fs_write"
FS_DELETE = "fs_delete"
NETWORK = "network"


class MetricsSink(Protocol):
    def increment(self, category: str) -> None: ...

    def decrement(self, category: str) -> None: ...


class NullMetrics:
    def increment(self, category: str) -> None:
        return None

    def decrement(self, category: str) -> None:
        return None


class InFlightCounter:
    """Tracks current and peak in-flight operations per category."""

    def __init__(self) -> None:
        self.current: Counter[str] = Counter()
        self.peak: Counter[str] = Counter()
        self.total: Counter[str] = Counter()

    def increment(self, category: str) -> None:
        self.current[category] += 1
        self.total[category] += 1
        if self.current[category] > self.peak[category]:
            self.peak[category] = self.current[category]

    def decrement(self, category: str) -> None:
        self.current[category] -= 1

    def snapshot(self) -> dict[str, int]:
        values: dict[str, int] = {}
        for category in sorted(set(self.total) | set(self.current)):
            values[f"{category}.in_flight"] = self.current[category]
            values[f"{category}.peak"] = self.peak[category]
            values[f"{category}.total"] = self.total[category]
        return values
