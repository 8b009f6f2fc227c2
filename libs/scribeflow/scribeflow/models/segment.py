"""Segment models for splitting recordings and reassembling transcripts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

SplitStrategy = Literal["duration", "bytes"]


@dataclass(frozen=True)
class AudioSegment:
    """One contiguous slice of a recording, independently transcribable."""

    index: int
    payload: bytes = field(repr=False)
    start_time: float
    end_time: float

    @property
    def size(self) -> int:
        return len(self.payload)

    @property
    def duration(self) -> float:
        return float(self.end_time) - float(self.start_time)


@dataclass(frozen=True)
class SplitResult:
    segments: list[AudioSegment]
    total_size: int
    total_duration: float
    strategy: SplitStrategy


@dataclass(frozen=True)
class DecodedAudio:
    """Interleaved signed little-endian PCM plus the metadata to slice it."""

    pcm: bytes = field(repr=False)
    sample_rate: int
    channels: int
    sample_width: int = 2

    @property
    def frame_size(self) -> int:
        return int(self.channels) * int(self.sample_width)

    @property
    def frame_count(self) -> int:
        return len(self.pcm) // self.frame_size

    @property
    def duration(self) -> float:
        return self.frame_count / float(self.sample_rate)

    def frames(self, start: int, end: int) -> bytes:
        return self.pcm[start * self.frame_size : end * self.frame_size]


@dataclass(frozen=True)
class SegmentOutcome:
    index: int
    transcript: str
    duration: float
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class SegmentProcessingResult:
    """Ordered outcome of one pipeline run over a batch of segments."""

    combined_transcript: str
    segments: tuple[SegmentOutcome, ...] = ()
    total_duration: float = 0.0
    errors: tuple[str, ...] = ()

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "combined_transcript": self.combined_transcript,
            "segments": [
                {
                    "index": s.index,
                    "transcript": s.transcript,
                    "duration": s.duration,
                    **({"error": s.error} if s.error is not None else {}),
                }
                for s in self.segments
            ],
            "total_duration": self.total_duration,
            "errors": list(self.errors),
        }
