"""Transcription provider implementations."""

from scribeflow.providers.asr.base import TranscriptionProvider
from scribeflow.providers.asr.openai_whisper import OpenAIWhisperProvider

__all__ = ["TranscriptionProvider", "OpenAIWhisperProvider"]
