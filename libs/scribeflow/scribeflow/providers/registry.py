"""Provider factory and registry."""

from __future__ import annotations

from typing import Any
from collections.abc import Mapping

from scribeflow.exceptions import ConfigurationError
from scribeflow.providers.asr.base import TranscriptionProvider
from scribeflow.providers.audio.base import AudioDecoder


def get_transcription_provider(config: Mapping[str, Any]) -> TranscriptionProvider:
    """Get transcription provider based on configuration."""
    provider_type = str(config.get("provider", "openai_whisper")).strip().lower()

    match provider_type:
        case "openai_whisper" | "groq" | "openai":
            from scribeflow.providers.asr.openai_whisper import OpenAIWhisperProvider

            return OpenAIWhisperProvider(
                base_url=str(config.get("base_url") or ""),
                api_key=str(config.get("api_key") or ""),
                model=str(config.get("model") or "whisper-large-v3-turbo"),
                timeout=float(config.get("timeout", 120.0)),
                provider=provider_type,
            )
        case _:
            raise ConfigurationError(f"Unknown transcription provider: {provider_type}")


def get_audio_decoder(config: Mapping[str, Any]) -> AudioDecoder | None:
    """Get audio decoder; None means segmentation always uses byte chunking."""
    decoder_type = str(config.get("decoder", "ffmpeg")).strip().lower()

    match decoder_type:
        case "ffmpeg":
            from scribeflow.providers.audio.ffmpeg import FFmpegDecoder

            return FFmpegDecoder(
                ffmpeg_bin=str(config.get("ffmpeg_bin") or "ffmpeg"),
                sample_rate=int(config.get("sample_rate", 16000)),
                channels=int(config.get("channels", 1)),
            )
        case "wav":
            from scribeflow.providers.audio.wav import WavDecoder

            return WavDecoder()
        case "none" | "":
            return None
        case _:
            raise ConfigurationError(f"Unknown audio decoder: {decoder_type}")
