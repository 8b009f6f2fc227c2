"""Locate ffmpeg and build the argv used to decode audio to raw PCM."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

# Containers ffmpeg can demux from a non-seekable pipe. MP4/M4A keep the
# `moov` index at the end of the file in most encoders and need a real file.
STREAMABLE_FORMATS = frozenset({"wav", "mp3", "ogg", "flac", "webm", "aac"})

STDIN_SOURCE = "pipe:0"


def resolve_ffmpeg_bin(ffmpeg_bin: str = "ffmpeg") -> str:
    """Return a runnable ffmpeg path.

    Lookup order: an explicit existing path, then `PATH`, then the binary
    shipped with the optional `imageio-ffmpeg` wheel. Falls back to the
    name as given so the caller gets a `FileNotFoundError` it can report.
    """
    name = (ffmpeg_bin or "ffmpeg").strip()
    if Path(name).is_file():
        return name

    found = shutil.which(name)
    if found:
        return found

    try:
        import imageio_ffmpeg
    except ImportError:
        logger.debug("ffmpeg %r not on PATH and imageio-ffmpeg is not installed", name)
        return name

    try:
        return str(imageio_ffmpeg.get_ffmpeg_exe())
    except RuntimeError as exc:
        logger.warning("imageio-ffmpeg has no usable binary (%s); using %r", exc, name)
        return name


def ffmpeg_available(ffmpeg_bin: str = "ffmpeg") -> bool:
    resolved = resolve_ffmpeg_bin(ffmpeg_bin)
    return Path(resolved).is_file() or shutil.which(resolved) is not None


def can_stream(fmt: str | None) -> bool:
    return str(fmt or "").lower() in STREAMABLE_FORMATS


def pcm_decode_args(ffmpeg_bin: str, source: str, *, sample_rate: int, channels: int) -> list[str]:
    """argv that decodes `source` (a path or `pipe:0`) to s16le PCM on stdout."""
    args = [ffmpeg_bin, "-hide_banner", "-loglevel", "error"]
    if source != STDIN_SOURCE:
        # ffmpeg reads keyboard commands from stdin unless told not to.
        args.append("-nostdin")
    return [
        *args,
        "-i",
        source,
        "-vn",
        "-ac",
        str(int(channels)),
        "-ar",
        str(int(sample_rate)),
        "-f",
        "s16le",
        "pipe:1",
    ]
