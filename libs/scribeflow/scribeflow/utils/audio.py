"""Audio byte-level helpers (WAV encoding, container sniffing, display formatting)."""

from __future__ import annotations

import io
import wave

from scribeflow.config import MAX_SEGMENT_BYTES

AUDIO_MIME_TYPES: dict[str, str] = {
    "wav": "audio/wav",
    "mp3": "audio/mpeg",
    "m4a": "audio/mp4",
    "mp4": "audio/mp4",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "webm": "audio/webm",
}

SUPPORTED_MIME_TYPES = (
    "audio/m4a",
    "audio/x-m4a",
    "audio/mp4",
    "audio/wav",
    "audio/wave",
    "audio/mpeg",
    "audio/mp3",
    "audio/webm",
    "audio/ogg",
    "audio/flac",
    "audio/aac",
)

DEFAULT_AUDIO_FORMAT = "m4a"

MAX_SEGMENT_SIZE = MAX_SEGMENT_BYTES


def encode_wav(pcm: bytes, *, sample_rate: int, channels: int, sample_width: int = 2) -> bytes:
    """Wrap raw interleaved PCM frames into a standalone WAV file."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(int(channels))
        wf.setsampwidth(int(sample_width))
        wf.setframerate(int(sample_rate))
        wf.writeframes(pcm)
    return buf.getvalue()


def sniff_audio_format(payload: bytes) -> str | None:
    """Guess the container of an audio payload from its magic bytes.

    Returns a file extension (``wav``, ``mp3``, ``m4a``...) or None when the
    header is not recognised.
    """
    head = bytes(payload[:16])
    if len(head) < 4:
        return None
    if head[:4] == b"RIFF" and head[8:12] == b"WAVE":
        return "wav"
    if head[:4] == b"OggS":
        return "ogg"
    if head[:4] == b"fLaC":
        return "flac"
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "webm"
    if head[4:8] == b"ftyp":
        return "m4a" if head[8:11] == b"M4A" else "mp4"
    if head[:3] == b"ID3":
        return "mp3"
    if head[0] == 0xFF and (head[1] & 0xE0) == 0xE0:
        # ADTS (AAC) sets layer bits to 00; MPEG audio layers are non-zero.
        return "aac" if (head[1] & 0x06) == 0 else "mp3"
    return None


def mime_type_for(fmt: str | None) -> str:
    return AUDIO_MIME_TYPES.get(str(fmt or "").lower(), AUDIO_MIME_TYPES[DEFAULT_AUDIO_FORMAT])


def is_supported_mime_type(mime_type: str | None) -> bool:
    """Check a MIME type against the formats the transcription API accepts.

    Parameters such as ``audio/webm;codecs=opus`` are tolerated.
    """
    if not mime_type:
        return False
    lowered = mime_type.lower()
    return any(fmt in lowered for fmt in SUPPORTED_MIME_TYPES)


def is_size_exceeded(payload: bytes, max_size: int = MAX_SEGMENT_BYTES) -> bool:
    return len(payload) > int(max_size)


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 B"
    units = ("B", "KB", "MB", "GB")
    value = float(num_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    text = f"{value:.1f}".rstrip("0").rstrip(".")
    return f"{text} {units[i]}"


def format_duration(seconds: float) -> str:
    """Format seconds as M:SS (minutes are not wrapped into hours)."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"
