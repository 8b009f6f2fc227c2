"""Segmentation, queueing and transcription pipeline.

Keep imports lazy so `scribeflow.pipeline.context` can be imported without
pulling in providers and httpx.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scribeflow.pipeline.job_queue import JobQueue
    from scribeflow.pipeline.segment_builder import SegmentBuilder
    from scribeflow.pipeline.segment_pipeline import SegmentPipeline
    from scribeflow.pipeline.transcriber import RecordingTranscriber, process_large_recording

__all__ = [
    "JobQueue",
    "RecordingTranscriber",
    "SegmentBuilder",
    "SegmentPipeline",
    "process_large_recording",
]


def __getattr__(name: str) -> Any:
    if name == "JobQueue":
        from scribeflow.pipeline.job_queue import JobQueue

        return JobQueue
    if name == "SegmentBuilder":
        from scribeflow.pipeline.segment_builder import SegmentBuilder

        return SegmentBuilder
    if name == "SegmentPipeline":
        from scribeflow.pipeline.segment_pipeline import SegmentPipeline

        return SegmentPipeline
    if name == "RecordingTranscriber":
        from scribeflow.pipeline.transcriber import RecordingTranscriber

        return RecordingTranscriber
    if name == "process_large_recording":
        from scribeflow.pipeline.transcriber import process_large_recording

        return process_large_recording
    raise AttributeError(name)
