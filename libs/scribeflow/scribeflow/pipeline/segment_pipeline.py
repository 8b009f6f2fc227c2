"""Drive audio segments through a processing function and recombine them."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from scribeflow.models.job import JobStatus, ProcessingJob
from scribeflow.models.segment import AudioSegment, SegmentOutcome, SegmentProcessingResult
from scribeflow.pipeline.context import MetricsProgressReporter, ProgressReporter
from scribeflow.pipeline.job_queue import JobQueue

logger = logging.getLogger(__name__)

SegmentProcessor = Callable[[bytes, int], Awaitable[str]]

TRANSCRIPT_SEPARATOR = "\n\n"


def error_placeholder(index: int) -> str:
    return f"[Error processing segment {index + 1}]"


def _exception_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if message:
        return str(message)
    return str(exc) or exc.__class__.__name__


def _job_error_message(job: ProcessingJob) -> str:
    if job.status is JobStatus.CANCELLED:
        return "cancelled"
    return job.error or "unknown error"


def combine_outcomes(outcomes: Sequence[SegmentOutcome], segments: Sequence[AudioSegment]) -> SegmentProcessingResult:
    """Order outcomes by segment index and assemble the batch result."""
    ordered = sorted(outcomes, key=lambda o: o.index)
    errors = tuple(f"Segment {o.index + 1}: {o.error}" for o in ordered if o.error is not None)
    return SegmentProcessingResult(
        combined_transcript=TRANSCRIPT_SEPARATOR.join(o.transcript for o in ordered),
        segments=tuple(ordered),
        total_duration=sum(s.duration for s in segments),
        errors=errors,
    )


class SegmentPipeline:
    """Run every segment through `process` and recombine in index order.

    Without a queue, segments run one after another on the caller's task.
    With a `JobQueue`, one job per segment is submitted and the queue's
    concurrency, priority and retry settings apply.

    A failing segment never aborts the batch: it contributes a placeholder
    transcript and an entry in `errors`.
    """

    def __init__(
        self,
        queue: JobQueue | None = None,
        *,
        progress_reporter: ProgressReporter | None = None,
    ) -> None:
        self.queue = queue
        self.progress_reporter = progress_reporter

    @property
    def mode(self) -> str:
        return "queue" if self.queue is not None else "sequential"

    async def run(self, segments: Sequence[AudioSegment], process: SegmentProcessor) -> SegmentProcessingResult:
        segments = list(segments)
        if not segments:
            return SegmentProcessingResult(combined_transcript="")

        logger.info("segment pipeline start (mode=%s, segments=%d)", self.mode, len(segments))
        tracker = _ProgressTracker(len(segments), self.progress_reporter)
        if self.queue is None:
            outcomes = await self._run_sequential(segments, process, tracker)
        else:
            outcomes = await self._run_queued(self.queue, segments, process, tracker)

        result = combine_outcomes(outcomes, segments)
        logger.info(
            "segment pipeline done (segments=%d, failed=%d, duration_s=%.2f)",
            len(result.segments),
            len(result.errors),
            result.total_duration,
        )
        return result

    async def _run_sequential(
        self,
        segments: list[AudioSegment],
        process: SegmentProcessor,
        tracker: "_ProgressTracker",
    ) -> list[SegmentOutcome]:
        outcomes: list[SegmentOutcome] = []
        for segment in segments:
            try:
                transcript = await process(segment.payload, segment.index)
            except Exception as exc:
                outcome = self._failed(segment, _exception_message(exc))
            else:
                outcome = self._succeeded(segment, transcript)
            outcomes.append(outcome)
            await tracker.advance(outcome)
        return outcomes

    async def _run_queued(
        self,
        queue: JobQueue,
        segments: list[AudioSegment],
        process: SegmentProcessor,
        tracker: "_ProgressTracker",
    ) -> list[SegmentOutcome]:
        def _bind(index: int) -> Callable[[Any, dict[str, Any]], Awaitable[str]]:
            async def _processor(payload: Any, options: dict[str, Any]) -> str:
                return await process(payload, index)

            return _processor

        job_ids = [
            queue.submit(segment.payload, {"segment_index": segment.index}, processor=_bind(segment.index))
            for segment in segments
        ]

        async def _collect(segment: AudioSegment, job_id: str) -> SegmentOutcome:
            try:
                job = await queue.wait(job_id)
            finally:
                # Results are copied into the outcome; the queue keeps no payloads.
                queue.forget(job_id)
            if job.status is JobStatus.COMPLETED:
                outcome = self._succeeded(segment, job.result)
            else:
                outcome = self._failed(segment, _job_error_message(job))
            await tracker.advance(outcome)
            return outcome

        return list(await asyncio.gather(*(_collect(s, j) for s, j in zip(segments, job_ids))))

    def _succeeded(self, segment: AudioSegment, transcript: Any) -> SegmentOutcome:
        logger.debug("segment done (index=%d, duration_s=%.2f)", segment.index, segment.duration)
        return SegmentOutcome(
            index=segment.index,
            transcript=str(transcript or ""),
            duration=segment.duration,
        )

    def _failed(self, segment: AudioSegment, message: str) -> SegmentOutcome:
        logger.warning("segment failed (index=%d, error=%s)", segment.index, message)
        return SegmentOutcome(
            index=segment.index,
            transcript=error_placeholder(segment.index),
            duration=segment.duration,
            error=message,
        )


class _ProgressTracker:
    def __init__(self, total: int, reporter: ProgressReporter | None) -> None:
        self.total = total
        self.reporter = reporter
        self.done = 0
        self.failed = 0

    async def advance(self, outcome: SegmentOutcome) -> None:
        self.done += 1
        if outcome.failed:
            self.failed += 1
        if self.reporter is None:
            return
        progress = int(self.done * 100 / self.total)
        message = f"segment {self.done}/{self.total}"
        try:
            await self.reporter.report(progress, message)
            if isinstance(self.reporter, MetricsProgressReporter):
                await self.reporter.report_metrics(
                    {
                        "progress": progress,
                        "progress_message": message,
                        "segments_done": self.done,
                        "segments_total": self.total,
                        "segments_failed": self.failed,
                    }
                )
        except Exception:
            logger.exception("progress reporter failed (done=%d, total=%d)", self.done, self.total)
