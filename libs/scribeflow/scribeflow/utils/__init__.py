"""Utility helpers."""

from scribeflow.utils.audio import (
    encode_wav,
    format_duration,
    format_file_size,
    is_size_exceeded,
    is_supported_mime_type,
    sniff_audio_format,
)
from scribeflow.utils.ffmpeg import resolve_ffmpeg_bin

__all__ = [
    "encode_wav",
    "format_duration",
    "format_file_size",
    "is_size_exceeded",
    "is_supported_mime_type",
    "sniff_audio_format",
    "resolve_ffmpeg_bin",
]
