"""Split oversized recordings into independently transcribable segments.

Two strategies are used:

- duration: decode the payload, derive a per-segment duration from the size
  ratio, and re-encode each time slice as a standalone WAV file;
- bytes: when decoding is unavailable or fails, cut the raw payload into
  consecutive byte ranges of at most `max_segment_size`.

Decode failures never surface to the caller; only malformed input raises.
"""

from __future__ import annotations

import logging

from scribeflow.config import MAX_SEGMENT_BYTES
from scribeflow.exceptions import InvalidInputError
from scribeflow.models.segment import AudioSegment, DecodedAudio, SplitResult
from scribeflow.providers.audio.base import AudioDecoder
from scribeflow.utils.audio import encode_wav, format_file_size

logger = logging.getLogger(__name__)

# Size of the canonical PCM WAV header written by `encode_wav`.
_WAV_HEADER_BYTES = 44


def _validate(payload: bytes, max_segment_size: int) -> None:
    if not payload:
        raise InvalidInputError("audio payload is empty")
    if int(max_segment_size) <= 0:
        raise InvalidInputError(f"max_segment_size must be > 0 (got {max_segment_size})")


class SegmentBuilder:
    """Decide how to cut one audio payload into ordered `AudioSegment`s.

    Args:
        decoder: Decoder used by the duration strategy. None forces byte chunking.
        min_segment_duration_s: Upper bound of the minimum segment duration
            (the effective floor is ``min(this, total_duration / 10)``).
        fallback_chunk_duration_s: Duration assumed for the whole payload when
            estimating timing of byte chunks.
    """

    def __init__(
        self,
        decoder: AudioDecoder | None = None,
        *,
        min_segment_duration_s: float = 30.0,
        fallback_chunk_duration_s: float = 30.0,
    ) -> None:
        self.decoder = decoder
        self.min_segment_duration_s = float(min_segment_duration_s)
        self.fallback_chunk_duration_s = float(fallback_chunk_duration_s)

    async def split(self, payload: bytes, max_segment_size: int = MAX_SEGMENT_BYTES) -> list[AudioSegment]:
        result = await self.split_with_details(payload, max_segment_size)
        return result.segments

    async def split_with_details(
        self,
        payload: bytes,
        max_segment_size: int = MAX_SEGMENT_BYTES,
    ) -> SplitResult:
        _validate(payload, max_segment_size)
        max_segment_size = int(max_segment_size)

        decoded = await self._try_decode(payload)
        if decoded is None:
            result = self.split_by_bytes(payload, max_segment_size)
        else:
            result = self._split_by_duration(decoded, len(payload), max_segment_size)

        logger.info(
            "split done (strategy=%s, segments=%d, input=%s, max_segment=%s, duration_s=%.2f)",
            result.strategy,
            len(result.segments),
            format_file_size(len(payload)),
            format_file_size(max_segment_size),
            result.total_duration,
        )
        return result

    async def _try_decode(self, payload: bytes) -> DecodedAudio | None:
        if self.decoder is None:
            return None
        try:
            decoded = await self.decoder.decode(payload)
        except Exception as exc:
            logger.warning(
                "decode failed, falling back to byte chunking (decoder=%s, error=%s)",
                getattr(self.decoder, "name", type(self.decoder).__name__),
                exc,
            )
            return None
        if decoded.frame_count <= 0 or decoded.sample_rate <= 0:
            logger.warning("decoded audio has no frames, falling back to byte chunking")
            return None
        return decoded

    def segment_frames_for(self, decoded: DecodedAudio, payload_size: int, max_segment_size: int) -> int:
        """Frames per segment for the duration strategy."""
        rate = decoded.sample_rate
        total_duration = decoded.duration
        approx_frames = int(round(max_segment_size / float(payload_size) * total_duration * rate))

        # Re-encoding compressed input as PCM WAV inflates it; never plan a
        # slice whose encoded size would exceed the limit on its own.
        budget_frames = (max_segment_size - _WAV_HEADER_BYTES) // decoded.frame_size
        if budget_frames >= 1:
            approx_frames = min(approx_frames, budget_frames)

        min_frames = int(round(min(self.min_segment_duration_s, total_duration / 10.0) * rate))
        return max(1, approx_frames, min_frames)

    def segment_duration_for(self, decoded: DecodedAudio, payload_size: int, max_segment_size: int) -> float:
        """Per-segment duration estimate (seconds) for the duration strategy."""
        return self.segment_frames_for(decoded, payload_size, max_segment_size) / float(decoded.sample_rate)

    def _split_by_duration(self, decoded: DecodedAudio, payload_size: int, max_segment_size: int) -> SplitResult:
        frames_per_segment = self.segment_frames_for(decoded, payload_size, max_segment_size)
        total_frames = decoded.frame_count
        rate = decoded.sample_rate

        segments: list[AudioSegment] = []
        start_frame = 0
        while start_frame < total_frames:
            end_frame = min(start_frame + frames_per_segment, total_frames)
            wav = encode_wav(
                decoded.frames(start_frame, end_frame),
                sample_rate=rate,
                channels=decoded.channels,
                sample_width=decoded.sample_width,
            )
            segments.append(
                AudioSegment(
                    index=len(segments),
                    payload=wav,
                    start_time=start_frame / float(rate),
                    end_time=end_frame / float(rate),
                )
            )
            start_frame = end_frame

        oversized = [s.index for s in segments if s.size > max_segment_size]
        if oversized:
            logger.warning(
                "duration split produced segments above the size limit (indexes=%s, limit=%s)",
                oversized,
                format_file_size(max_segment_size),
            )

        return SplitResult(
            segments=segments,
            total_size=sum(s.size for s in segments),
            total_duration=decoded.duration,
            strategy="duration",
        )

    def split_by_bytes(self, payload: bytes, max_segment_size: int = MAX_SEGMENT_BYTES) -> SplitResult:
        """Cut the raw payload into byte ranges of at most `max_segment_size`.

        Timing is only an estimate: each chunk is credited with its share of
        `fallback_chunk_duration_s`. Start/end times are cumulative so the
        ranges stay contiguous.
        """
        _validate(payload, max_segment_size)
        max_segment_size = int(max_segment_size)
        total_size = len(payload)

        segments: list[AudioSegment] = []
        offset = 0
        current_time = 0.0
        while offset < total_size:
            chunk = payload[offset : offset + max_segment_size]
            duration = len(chunk) / float(total_size) * self.fallback_chunk_duration_s
            end_time = current_time + duration
            if offset + len(chunk) >= total_size:
                end_time = self.fallback_chunk_duration_s
            segments.append(
                AudioSegment(
                    index=len(segments),
                    payload=bytes(chunk),
                    start_time=current_time,
                    end_time=end_time,
                )
            )
            offset += len(chunk)
            current_time = end_time

        return SplitResult(
            segments=segments,
            total_size=total_size,
            total_duration=current_time,
            strategy="bytes",
        )
