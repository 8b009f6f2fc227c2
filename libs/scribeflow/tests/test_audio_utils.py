from __future__ import annotations

import pytest

from scribeflow.config import MAX_SEGMENT_BYTES
from scribeflow.utils.audio import (
    MAX_SEGMENT_SIZE,
    encode_wav,
    format_duration,
    format_file_size,
    is_size_exceeded,
    is_supported_mime_type,
    mime_type_for,
    sniff_audio_format,
)


@pytest.mark.parametrize(
    ("head", "expected"),
    [
        (b"RIFF\x00\x00\x00\x00WAVEfmt ", "wav"),
        (b"OggS\x00\x02", "ogg"),
        (b"fLaC\x00\x00", "flac"),
        (b"\x1a\x45\xdf\xa3\x01", "webm"),
        (b"\x00\x00\x00\x20ftypM4A \x00", "m4a"),
        (b"\x00\x00\x00\x20ftypisom\x00", "mp4"),
        (b"ID3\x04\x00\x00", "mp3"),
        (b"\xff\xfb\x90\x00", "mp3"),
        (b"\xff\xf1\x50\x80", "aac"),
        (b"hello world", None),
        (b"ab", None),
    ],
)
def test_sniff_audio_format(head: bytes, expected: str | None) -> None:
    assert sniff_audio_format(head) == expected


def test_encode_wav_produces_readable_header() -> None:
    wav = encode_wav(b"\x00\x00" * 100, sample_rate=16000, channels=1)
    assert sniff_audio_format(wav) == "wav"
    assert len(wav) == 44 + 200


def test_mime_type_for_defaults_to_m4a() -> None:
    assert mime_type_for("mp3") == "audio/mpeg"
    assert mime_type_for(None) == "audio/mp4"
    assert mime_type_for("xyz") == "audio/mp4"


def test_is_supported_mime_type() -> None:
    assert is_supported_mime_type("audio/webm;codecs=opus")
    assert is_supported_mime_type("audio/x-m4a")
    assert not is_supported_mime_type("video/quicktime")
    assert not is_supported_mime_type(None)


def test_is_size_exceeded_uses_25mib_default() -> None:
    assert MAX_SEGMENT_BYTES == MAX_SEGMENT_SIZE == 25 * 1024 * 1024
    assert not is_size_exceeded(b"x" * 10)
    assert is_size_exceeded(b"x" * 11, 10)
    assert not is_size_exceeded(b"x" * 10, 10)


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 B"), (512, "512 B"), (1024, "1 KB"), (1536, "1.5 KB"), (25 * 1024 * 1024, "25 MB")],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


def test_format_duration() -> None:
    assert format_duration(0) == "0:00"
    assert format_duration(65.9) == "1:05"
    assert format_duration(3600) == "60:00"
