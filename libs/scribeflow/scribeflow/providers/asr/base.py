"""Transcription provider base class."""

from abc import ABC, abstractmethod

from scribeflow.models.transcription import TranscriptionOptions, TranscriptionResult


class TranscriptionProvider(ABC):
    """Abstract base class for remote speech-to-text providers.

    Providers report remote failures through `TranscriptionResult.success`
    instead of raising, and never retry internally; retrying is the job
    queue's responsibility.
    """

    name: str

    @abstractmethod
    async def transcribe(
        self,
        payload: bytes,
        options: TranscriptionOptions | None = None,
    ) -> TranscriptionResult:
        """Transcribe one self-contained audio payload.

        Args:
            payload: Encoded audio bytes (WAV, MP3, M4A...).
            options: Language/prompt/temperature hints.

        Returns:
            Result carrying the transcript or the provider's error message.
        """
        ...

    async def close(self) -> None:  # pragma: no cover
        return None

    async def __aenter__(self) -> "TranscriptionProvider":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
