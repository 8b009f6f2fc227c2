from __future__ import annotations

from pathlib import Path

import pytest

from scribeflow.exceptions import DecodeError
from scribeflow.providers.audio.ffmpeg import FFmpegDecoder
from scribeflow.providers.audio.wav import WavDecoder
from scribeflow.utils.audio import encode_wav
from scribeflow.utils.ffmpeg import STDIN_SOURCE, ffmpeg_available, pcm_decode_args
from scribeflow.utils.subprocess import RunResult


@pytest.mark.asyncio
async def test_wav_decoder_reads_pcm_and_metadata() -> None:
    pcm = b"\x01\x00\x02\x00" * 50
    decoded = await WavDecoder().decode(encode_wav(pcm, sample_rate=8000, channels=2))

    assert decoded.pcm == pcm
    assert decoded.sample_rate == 8000
    assert decoded.channels == 2
    assert decoded.frame_count == 50
    assert decoded.duration == pytest.approx(50 / 8000)
    assert decoded.frames(10, 12) == pcm[40:48]


@pytest.mark.asyncio
async def test_wav_decoder_rejects_non_wav() -> None:
    with pytest.raises(DecodeError):
        await WavDecoder().decode(b"ID3 not a wav file")


@pytest.mark.asyncio
async def test_wav_decoder_rejects_empty_wav() -> None:
    with pytest.raises(DecodeError):
        await WavDecoder().decode(encode_wav(b"", sample_rate=8000, channels=1))


@pytest.mark.asyncio
async def test_wav_decoder_rejects_8bit_samples() -> None:
    with pytest.raises(DecodeError):
        await WavDecoder().decode(encode_wav(b"\x80" * 10, sample_rate=8000, channels=1, sample_width=1))


@pytest.mark.asyncio
@pytest.mark.skipif(not ffmpeg_available(), reason="ffmpeg not available")
async def test_ffmpeg_decoder_resamples_wav() -> None:
    wav = encode_wav(b"\x00\x00" * 8000, sample_rate=8000, channels=1)
    decoded = await FFmpegDecoder(sample_rate=16000, channels=1).decode(wav)

    assert decoded.sample_rate == 16000
    assert decoded.duration == pytest.approx(1.0, abs=0.05)


@pytest.mark.asyncio
async def test_ffmpeg_decoder_missing_binary_raises_decode_error(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr("scribeflow.providers.audio.ffmpeg.resolve_ffmpeg_bin", lambda b: b)
    decoder = FFmpegDecoder(str(tmp_path / "no-such-ffmpeg"))

    with pytest.raises(DecodeError):
        await decoder.decode(b"RIFF0000WAVE")


class _RecordedRun:
    def __init__(self, result: RunResult) -> None:
        self.result = result
        self.args: list[str] = []
        self.input_bytes: bytes | None = None
        self.source_existed = False

    async def __call__(self, args, *, input_bytes=None, timeout_s=None):  # noqa: ANN001
        self.args = list(args)
        self.input_bytes = input_bytes
        source = self.args[self.args.index("-i") + 1]
        self.source_existed = source != STDIN_SOURCE and Path(source).is_file()
        return self.result


@pytest.fixture()
def recorded_run(monkeypatch) -> _RecordedRun:  # noqa: ANN001
    run = _RecordedRun(RunResult(returncode=0, stdout=b"\x00\x00" * 160, stderr=b""))
    monkeypatch.setattr("scribeflow.providers.audio.ffmpeg.resolve_ffmpeg_bin", lambda b: b)
    monkeypatch.setattr("scribeflow.providers.audio.ffmpeg.run_subprocess", run)
    return run


def test_pcm_decode_args_for_stdin_and_file_sources() -> None:
    piped = pcm_decode_args("ffmpeg", STDIN_SOURCE, sample_rate=16000, channels=1)
    assert piped[piped.index("-i") + 1] == "pipe:0"
    assert "-nostdin" not in piped
    assert piped[-3:] == ["-f", "s16le", "pipe:1"]
    assert piped[piped.index("-ar") + 1] == "16000"

    from_file = pcm_decode_args("ffmpeg", "/tmp/in.m4a", sample_rate=8000, channels=2)
    assert "-nostdin" in from_file
    assert from_file[from_file.index("-ac") + 1] == "2"


@pytest.mark.asyncio
async def test_ffmpeg_decoder_pipes_streamable_formats(recorded_run: _RecordedRun) -> None:
    wav = encode_wav(b"\x01\x00" * 80, sample_rate=8000, channels=1)

    decoded = await FFmpegDecoder(sample_rate=16000).decode(wav)

    assert recorded_run.input_bytes == wav
    assert STDIN_SOURCE in recorded_run.args
    assert decoded.sample_rate == 16000
    assert decoded.frame_count == 160


@pytest.mark.asyncio
async def test_ffmpeg_decoder_writes_mp4_to_temp_file(recorded_run: _RecordedRun) -> None:
    m4a = b"\x00\x00\x00\x20ftypM4A " + b"\x00" * 64

    await FFmpegDecoder().decode(m4a)

    assert recorded_run.input_bytes is None
    assert recorded_run.source_existed
    assert recorded_run.args[recorded_run.args.index("-i") + 1].endswith("input.m4a")


@pytest.mark.asyncio
async def test_ffmpeg_decoder_reports_stderr_on_failure(monkeypatch) -> None:  # noqa: ANN001
    run = _RecordedRun(RunResult(returncode=1, stdout=b"", stderr=b"pipe:0: Invalid data found\n"))
    monkeypatch.setattr("scribeflow.providers.audio.ffmpeg.resolve_ffmpeg_bin", lambda b: b)
    monkeypatch.setattr("scribeflow.providers.audio.ffmpeg.run_subprocess", run)

    with pytest.raises(DecodeError, match="Invalid data found"):
        await FFmpegDecoder().decode(b"OggS" + b"\x00" * 32)
