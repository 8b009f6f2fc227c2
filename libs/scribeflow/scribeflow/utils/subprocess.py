"""Run external tools (ffmpeg) without blocking the event loop.

The blocking `subprocess.run()` call is pushed onto a worker thread with
`asyncio.to_thread()`; `asyncio.create_subprocess_exec()` depends on child
watchers that hang under some embedded event loops.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Sequence

logger = logging.getLogger(__name__)

_STDERR_TAIL_CHARS = 2000


@dataclass(frozen=True)
class RunResult:
    returncode: int
    stdout: bytes
    stderr: bytes
    elapsed_s: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def stderr_text(self) -> str:
        """Decoded stderr, trimmed to its tail (ffmpeg puts the cause last)."""
        text = self.stderr.decode("utf-8", errors="replace").strip()
        return text[-_STDERR_TAIL_CHARS:]


async def run_subprocess(
    args: Sequence[str],
    *,
    input_bytes: bytes | None = None,
    timeout_s: float | None = None,
) -> RunResult:
    """Run `args` to completion, optionally feeding `input_bytes` on stdin.

    stdout and stderr are always captured. A missing binary surfaces as
    `FileNotFoundError` and a timeout as `subprocess.TimeoutExpired`; a non-zero
    exit is reported through `RunResult.returncode`, never raised.
    """
    argv = [str(a) for a in args]
    stdin_size = len(input_bytes) if input_bytes is not None else 0

    def _run() -> subprocess.CompletedProcess[bytes]:
        return subprocess.run(
            argv,
            input=input_bytes,
            stdin=None if input_bytes is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout_s,
        )

    started = time.monotonic()
    cp = await asyncio.to_thread(_run)
    elapsed = time.monotonic() - started
    logger.debug(
        "subprocess exited (bin=%s, code=%d, stdin_bytes=%d, stdout_bytes=%d, elapsed_s=%.2f)",
        argv[0],
        cp.returncode,
        stdin_size,
        len(cp.stdout or b""),
        elapsed,
    )
    return RunResult(
        returncode=int(cp.returncode),
        stdout=cp.stdout or b"",
        stderr=cp.stderr or b"",
        elapsed_s=elapsed,
    )
