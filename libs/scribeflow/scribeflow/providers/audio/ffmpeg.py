"""FFmpeg-based audio decoder."""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path

from scribeflow.exceptions import DecodeError
from scribeflow.models.segment import DecodedAudio
from scribeflow.providers.audio.base import AudioDecoder
from scribeflow.utils.audio import sniff_audio_format
from scribeflow.utils.ffmpeg import STDIN_SOURCE, can_stream, pcm_decode_args, resolve_ffmpeg_bin
from scribeflow.utils.subprocess import RunResult, run_subprocess

logger = logging.getLogger(__name__)


class FFmpegDecoder(AudioDecoder):
    """Decode any container ffmpeg understands into 16-bit PCM.

    Streamable containers (WAV, MP3, Ogg, FLAC, WebM, ADTS) are piped on
    stdin. MP4/M4A and unrecognised payloads are written to a temporary file
    so ffmpeg can seek to an index stored at the end.
    """

    name = "ffmpeg"

    def __init__(
        self,
        ffmpeg_bin: str = "ffmpeg",
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        timeout_s: float | None = None,
    ) -> None:
        self.ffmpeg_bin = resolve_ffmpeg_bin(ffmpeg_bin)
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.timeout_s = timeout_s

    def _args(self, source: str) -> list[str]:
        return pcm_decode_args(self.ffmpeg_bin, source, sample_rate=self.sample_rate, channels=self.channels)

    async def _run(self, args: list[str], payload: bytes | None) -> RunResult:
        try:
            return await run_subprocess(args, input_bytes=payload, timeout_s=self.timeout_s)
        except FileNotFoundError as exc:
            raise DecodeError(
                f"ffmpeg binary not found: {self.ffmpeg_bin}. "
                "Install ffmpeg and ensure it is in PATH (or install `imageio-ffmpeg`, "
                "or set SEGMENTATION_FFMPEG_BIN)."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise DecodeError(f"ffmpeg decode timed out after {self.timeout_s}s") from exc

    async def decode(self, payload: bytes) -> DecodedAudio:
        fmt = sniff_audio_format(payload)
        if can_stream(fmt):
            result = await self._run(self._args(STDIN_SOURCE), payload)
        else:
            with tempfile.TemporaryDirectory(prefix="scribeflow_decode_") as tmp_dir:
                src = Path(tmp_dir) / f"input.{fmt or 'bin'}"
                src.write_bytes(payload)
                result = await self._run(self._args(str(src)), None)

        logger.debug(
            "ffmpeg decode (format=%s, via=%s, pcm_bytes=%d)",
            fmt or "unknown",
            "stdin" if can_stream(fmt) else "file",
            len(result.stdout),
        )
        if not result.ok:
            raise DecodeError(f"ffmpeg failed (code={result.returncode}): {result.stderr_text}")
        if not result.stdout:
            raise DecodeError("ffmpeg produced no audio frames")
        return DecodedAudio(pcm=result.stdout, sample_rate=self.sample_rate, channels=self.channels)
