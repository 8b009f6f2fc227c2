"""Request/response models for the transcription capability."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class TranscriptionOptions:
    language: str | None = "nl"
    prompt: str | None = None
    temperature: float = 0.0
    model: str | None = None
    response_format: str = "verbose_json"

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass(frozen=True)
class TranscriptionResult:
    success: bool
    transcript: str = ""
    error: str | None = None
    duration: float | None = None
    language: str | None = None
    retryable: bool = True

    @classmethod
    def ok(cls, transcript: str, *, duration: float | None = None, language: str | None = None) -> "TranscriptionResult":
        return cls(success=True, transcript=transcript, duration=duration, language=language)

    @classmethod
    def failure(cls, error: str, *, retryable: bool = True) -> "TranscriptionResult":
        return cls(success=False, error=error, retryable=retryable)
