"""Audio decoder implementations."""

from scribeflow.providers.audio.base import AudioDecoder
from scribeflow.providers.audio.ffmpeg import FFmpegDecoder
from scribeflow.providers.audio.wav import WavDecoder

__all__ = ["AudioDecoder", "FFmpegDecoder", "WavDecoder"]
