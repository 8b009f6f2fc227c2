"""Core data models for ScribeFlow."""

from scribeflow.models.job import JobCallbacks, JobStatus, ProcessingJob, QueueStats
from scribeflow.models.segment import (
    AudioSegment,
    DecodedAudio,
    SegmentOutcome,
    SegmentProcessingResult,
    SplitResult,
)
from scribeflow.models.transcription import TranscriptionOptions, TranscriptionResult

__all__ = [
    "AudioSegment",
    "DecodedAudio",
    "JobCallbacks",
    "JobStatus",
    "ProcessingJob",
    "QueueStats",
    "SegmentOutcome",
    "SegmentProcessingResult",
    "SplitResult",
    "TranscriptionOptions",
    "TranscriptionResult",
]
