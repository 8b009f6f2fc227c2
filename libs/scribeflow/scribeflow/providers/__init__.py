"""Provider abstractions for external services."""

from scribeflow.providers.registry import get_audio_decoder, get_transcription_provider

__all__ = ["get_audio_decoder", "get_transcription_provider"]
