"""Transcribe recordings of any size: split, fan out, and recombine."""

from __future__ import annotations

import dataclasses
import logging
from typing import Any

from scribeflow.config import MAX_SEGMENT_BYTES, Settings
from scribeflow.exceptions import InvalidInputError, TranscriptionError
from scribeflow.models.segment import SegmentProcessingResult
from scribeflow.models.transcription import TranscriptionOptions
from scribeflow.pipeline.context import ProgressReporter
from scribeflow.pipeline.job_queue import JobQueue
from scribeflow.pipeline.segment_builder import SegmentBuilder
from scribeflow.pipeline.segment_pipeline import SegmentPipeline, SegmentProcessor
from scribeflow.providers.asr.base import TranscriptionProvider
from scribeflow.providers.audio.base import AudioDecoder
from scribeflow.providers.registry import get_audio_decoder, get_transcription_provider
from scribeflow.utils.audio import format_file_size, is_supported_mime_type

logger = logging.getLogger(__name__)

_OPTION_FIELDS = {f.name for f in dataclasses.fields(TranscriptionOptions)}


def options_from_dict(data: dict[str, Any] | None) -> TranscriptionOptions:
    """Build options from a loose dict, ignoring unknown keys."""
    return TranscriptionOptions(**{k: v for k, v in (data or {}).items() if k in _OPTION_FIELDS})


def make_segment_processor(
    provider: TranscriptionProvider,
    options: TranscriptionOptions | None = None,
    *,
    durations: dict[int, float] | None = None,
) -> SegmentProcessor:
    """Adapt a provider to the `(payload, index) -> transcript` contract.

    Unsuccessful results are raised as `TranscriptionError` so the pipeline
    (or queue) treats them as failures. When `durations` is given, audio
    durations reported by the provider are recorded there by segment index.
    """
    options = options or TranscriptionOptions()
    name = getattr(provider, "name", provider.__class__.__name__)

    async def _process(payload: bytes, index: int) -> str:
        result = await provider.transcribe(payload, options)
        if not result.success:
            raise TranscriptionError(name, result.error or "transcription failed", retryable=result.retryable)
        if durations is not None and result.duration is not None:
            durations[index] = float(result.duration)
        logger.debug("segment transcribed (index=%d, chars=%d)", index, len(result.transcript))
        return result.transcript

    return _process


def apply_reported_duration(result: SegmentProcessingResult, duration: float | None) -> SegmentProcessingResult:
    """Replace the estimated duration of a single-segment result with a measured one."""
    if duration is None or len(result.segments) != 1 or result.segments[0].failed:
        return result
    outcome = dataclasses.replace(result.segments[0], duration=float(duration))
    return dataclasses.replace(result, segments=(outcome,), total_duration=float(duration))


async def process_large_recording(
    payload: bytes,
    max_segment_size: int = MAX_SEGMENT_BYTES,
    *,
    builder: SegmentBuilder,
    process: SegmentProcessor,
    pipeline: SegmentPipeline | None = None,
) -> SegmentProcessingResult:
    """Split `payload` and run every segment through `process`."""
    segments = await builder.split(payload, max_segment_size)
    return await (pipeline or SegmentPipeline()).run(segments, process)


class RecordingTranscriber:
    """Composition root: Settings -> decoder, builder, provider, queue, pipeline."""

    def __init__(
        self,
        settings: Settings,
        *,
        provider: TranscriptionProvider | None = None,
        decoder: AudioDecoder | None = None,
        progress_reporter: ProgressReporter | None = None,
    ) -> None:
        self.settings = settings
        self.provider = provider or get_transcription_provider(settings.transcription.model_dump())
        if decoder is None:
            decoder = get_audio_decoder(settings.segmentation.model_dump())
        self.decoder = decoder
        self.builder = SegmentBuilder(
            decoder,
            min_segment_duration_s=settings.segmentation.min_segment_duration_s,
            fallback_chunk_duration_s=settings.segmentation.fallback_chunk_duration_s,
        )
        self.queue = JobQueue.from_config(settings.queue) if settings.uses_queue else None
        self.pipeline = SegmentPipeline(self.queue, progress_reporter=progress_reporter)

    def default_options(self) -> TranscriptionOptions:
        cfg = self.settings.transcription
        return TranscriptionOptions(
            language=cfg.language,
            prompt=cfg.prompt,
            temperature=float(cfg.temperature),
            model=cfg.model,
            response_format=cfg.response_format,
        )

    async def transcribe(
        self,
        payload: bytes,
        options: TranscriptionOptions | dict[str, Any] | None = None,
        *,
        mime_type: str | None = None,
    ) -> SegmentProcessingResult:
        if not payload:
            raise InvalidInputError("audio payload is empty")
        if mime_type is not None and not is_supported_mime_type(mime_type):
            raise InvalidInputError(f"unsupported audio type: {mime_type}")
        if isinstance(options, dict):
            merged = {**self.default_options().to_dict(), **options}
            options = options_from_dict(merged)
        options = options or self.default_options()

        durations: dict[int, float] = {}
        process = make_segment_processor(self.provider, options, durations=durations)
        max_size = self.settings.max_segment_bytes
        if len(payload) <= max_size:
            logger.info("transcribe direct (size=%s)", format_file_size(len(payload)))
            # Nothing is decoded here; the provider's duration replaces the estimate.
            segments = self.builder.split_by_bytes(payload, max_size).segments
            result = await self.pipeline.run(segments, process)
            return apply_reported_duration(result, durations.get(0))

        logger.info(
            "transcribe segmented (size=%s, max_segment=%s, mode=%s)",
            format_file_size(len(payload)),
            format_file_size(max_size),
            self.pipeline.mode,
        )
        return await process_large_recording(
            payload,
            max_size,
            builder=self.builder,
            process=process,
            pipeline=self.pipeline,
        )

    async def close(self) -> None:
        if self.queue is not None:
            await self.queue.close()
        await self.provider.close()
        if self.decoder is not None:
            await self.decoder.close()

    async def __aenter__(self) -> "RecordingTranscriber":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
