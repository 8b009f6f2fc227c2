"""Progress reporting contracts shared by pipeline components."""

from __future__ import annotations

from typing import Protocol, TypedDict, runtime_checkable


class ProgressReporter(Protocol):
    async def report(self, progress: int, message: str) -> None: ...


class SegmentMetrics(TypedDict, total=False):
    progress: int
    progress_message: str

    segments_done: int
    segments_total: int
    segments_failed: int


@runtime_checkable
class MetricsProgressReporter(ProgressReporter, Protocol):
    async def report_metrics(self, metrics: SegmentMetrics) -> None: ...
