import pytest

from scribeflow.utils.subprocess import RunResult, run_subprocess


@pytest.mark.asyncio
async def test_run_subprocess_executes_command() -> None:
    result = await run_subprocess(["bash", "-lc", "echo -n hi"])
    assert result.returncode == 0
    assert result.stdout == b"hi"


@pytest.mark.asyncio
async def test_run_subprocess_feeds_stdin() -> None:
    result = await run_subprocess(["cat"], input_bytes=b"pcm")
    assert result.returncode == 0
    assert result.stdout == b"pcm"


@pytest.mark.asyncio
async def test_run_subprocess_reports_failure_without_raising() -> None:
    result = await run_subprocess(["bash", "-c", "echo -n 'bad input' >&2; exit 3"])
    assert not result.ok
    assert result.returncode == 3
    assert result.stderr_text == "bad input"
    assert result.elapsed_s >= 0


def test_stderr_text_keeps_the_tail() -> None:
    result = RunResult(returncode=1, stdout=b"", stderr=b"x" * 5000 + b"last line")
    assert result.stderr_text.endswith("last line")
    assert len(result.stderr_text) == 2000
