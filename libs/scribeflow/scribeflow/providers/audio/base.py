"""Audio decoder abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod

from scribeflow.models.segment import DecodedAudio


class AudioDecoder(ABC):
    """Turns an encoded audio payload into PCM frames.

    Implementations raise `DecodeError` when the payload cannot be decoded;
    callers treat that as a signal to fall back to byte chunking.
    """

    name: str

    @abstractmethod
    async def decode(self, payload: bytes) -> DecodedAudio:
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover
        return None
