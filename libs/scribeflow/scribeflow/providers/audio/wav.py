"""Pure-Python decoder for PCM WAV payloads."""

from __future__ import annotations

import io
import wave

from scribeflow.exceptions import DecodeError
from scribeflow.models.segment import DecodedAudio
from scribeflow.providers.audio.base import AudioDecoder


class WavDecoder(AudioDecoder):
    """Decode 16-bit PCM WAV without any external binary."""

    name = "wav"

    async def decode(self, payload: bytes) -> DecodedAudio:
        try:
            with wave.open(io.BytesIO(payload), "rb") as wf:
                channels = wf.getnchannels()
                sample_width = wf.getsampwidth()
                sample_rate = wf.getframerate()
                pcm = wf.readframes(wf.getnframes())
        except (wave.Error, EOFError) as exc:
            raise DecodeError(f"invalid WAV payload: {exc}") from exc

        if sample_width != 2:
            raise DecodeError(f"unsupported WAV sample width: {sample_width * 8} bit")
        if not pcm:
            raise DecodeError("WAV payload contains no frames")
        return DecodedAudio(pcm=pcm, sample_rate=sample_rate, channels=channels, sample_width=sample_width)
