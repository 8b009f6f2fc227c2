"""Bounded-concurrency, priority-ordered asyncio job queue with retry/backoff.

All state (job table, pending heap, in-flight set) is mutated from the event
loop thread only: `submit`/`cancel` run synchronously on the loop and worker
tasks report back through the same loop, so no locks are needed.

Job lifecycle::

    pending -> processing -> completed
                          -> pending   (retry after backoff)
                          -> failed    (retries exhausted / non-retryable)
                          -> cancelled (result discarded, call not aborted)
    pending -> cancelled
"""

from __future__ import annotations

import asyncio
import dataclasses
import heapq
import itertools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal
from uuid import uuid4

from tenacity import RetryCallState, wait_exponential_jitter, wait_incrementing
from tenacity.wait import wait_base

from scribeflow.config import QueueConfig
from scribeflow.error_codes import ErrorCode
from scribeflow.exceptions import ConfigurationError, JobTimeoutError, ScribeFlowError
from scribeflow.models.job import JobCallbacks, JobStatus, ProcessingJob, QueueStats, _utcnow

logger = logging.getLogger(__name__)

Processor = Callable[[Any, dict[str, Any]], Awaitable[Any]]
BackoffKind = Literal["linear", "exponential_jitter"]


def _build_wait(backoff: BackoffKind, base_delay_s: float, max_backoff_s: float) -> wait_base:
    if backoff == "exponential_jitter":
        return wait_exponential_jitter(initial=base_delay_s, max=max_backoff_s, jitter=base_delay_s)
    if backoff == "linear":
        # attempt n waits base * n
        return wait_incrementing(start=base_delay_s, increment=base_delay_s)
    raise ConfigurationError(f"Unknown backoff strategy: {backoff!r} (expected: linear/exponential_jitter)")


def _error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if message:
        return str(message)
    return str(exc) or exc.__class__.__name__


def _error_code(exc: BaseException) -> str:
    code = getattr(exc, "error_code", None)
    if isinstance(code, ErrorCode):
        return code.value
    if code:
        return str(code)
    return ErrorCode.UNKNOWN.value


@dataclass
class _JobEntry:
    """Queue-private bookkeeping kept next to each job."""

    seq: int
    processor: Processor
    callbacks: JobCallbacks
    future: asyncio.Future[ProcessingJob]
    retry_handle: asyncio.TimerHandle | None = None


class JobQueue:
    """Run async units of work with a concurrency cap, priority, and retries.

    Args:
        processor: Default coroutine function ``(payload, options) -> result``.
            A raised exception marks the attempt as failed.
        max_concurrent: Maximum number of jobs in `processing` at once.
        base_retry_delay_s: Base delay for backoff between attempts.
        max_retries: Default retry budget per job.
        backoff: ``linear`` (``base * retry_count``) or ``exponential_jitter``.
        max_backoff_s: Upper bound for exponential backoff.
        job_timeout_s: Per-attempt timeout; None leaves attempts unbounded.
        classify_errors: When True, exceptions with ``retryable=False`` fail
            the job immediately. Otherwise every failure is retried.
    """

    def __init__(
        self,
        processor: Processor | None = None,
        *,
        max_concurrent: int = 2,
        base_retry_delay_s: float = 2.0,
        max_retries: int = 3,
        backoff: BackoffKind = "linear",
        max_backoff_s: float = 60.0,
        job_timeout_s: float | None = None,
        classify_errors: bool = False,
    ) -> None:
        if int(max_concurrent) < 1:
            raise ConfigurationError("max_concurrent must be >= 1")
        if int(max_retries) < 0:
            raise ConfigurationError("max_retries must be >= 0")
        if job_timeout_s is not None and float(job_timeout_s) <= 0:
            raise ConfigurationError("job_timeout_s must be > 0 when set")

        self._processor = processor
        self.max_concurrent = int(max_concurrent)
        self.max_retries = int(max_retries)
        self.job_timeout_s = float(job_timeout_s) if job_timeout_s is not None else None
        self.classify_errors = bool(classify_errors)
        self._wait = _build_wait(backoff, max(0.0, float(base_retry_delay_s)), float(max_backoff_s))

        self._jobs: dict[str, ProcessingJob] = {}
        self._entries: dict[str, _JobEntry] = {}
        self._pending: list[tuple[int, int, str]] = []
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[None]] = set()
        self._seq = itertools.count()
        self._closed = False

    @classmethod
    def from_config(cls, config: QueueConfig, processor: Processor | None = None) -> "JobQueue":
        return cls(
            processor,
            max_concurrent=int(config.max_concurrent),
            base_retry_delay_s=float(config.base_retry_delay_s),
            max_retries=int(config.max_retries),
            backoff=config.backoff,
            max_backoff_s=float(config.max_backoff_s),
            job_timeout_s=config.job_timeout_s,
            classify_errors=bool(config.classify_errors),
        )

    # -- public API ---------------------------------------------------------

    def submit(
        self,
        payload: Any,
        options: dict[str, Any] | None = None,
        callbacks: JobCallbacks | None = None,
        priority: int = 0,
        max_retries: int | None = None,
        *,
        processor: Processor | None = None,
    ) -> str:
        """Queue a job and return its id without waiting for it to run.

        Must be called from a coroutine or callback running on the event loop.
        """
        loop = asyncio.get_running_loop()
        if self._closed:
            raise ScribeFlowError("job queue is closed")
        proc = processor or self._processor
        if proc is None:
            raise ConfigurationError("no processor configured for job queue")
        retries = self.max_retries if max_retries is None else int(max_retries)
        if retries < 0:
            raise ValueError("max_retries must be >= 0")

        job = ProcessingJob(
            id=uuid4().hex,
            payload=payload,
            options=dict(options or {}),
            priority=int(priority),
            max_retries=retries,
        )
        entry = _JobEntry(
            seq=next(self._seq),
            processor=proc,
            callbacks=callbacks or JobCallbacks(),
            future=loop.create_future(),
        )
        self._jobs[job.id] = job
        self._entries[job.id] = entry
        heapq.heappush(self._pending, (-job.priority, entry.seq, job.id))
        logger.debug("job submitted (job_id=%s, priority=%d, max_retries=%d)", job.id, job.priority, retries)

        self._fill_slots()
        return job.id

    def cancel(self, job_id: str) -> bool:
        """Cancel a pending or processing job.

        A processing job leaves the in-flight set immediately, but its
        underlying call keeps running and its outcome is discarded.
        """
        job = self._jobs.get(job_id)
        if job is None or job.status.is_terminal:
            return False

        entry = self._entries[job_id]
        previous = job.status
        if entry.retry_handle is not None:
            entry.retry_handle.cancel()
            entry.retry_handle = None

        job.status = JobStatus.CANCELLED
        job.completed_at = _utcnow()
        job.error_code = ErrorCode.CANCELLED.value
        self._resolve(job_id)

        if previous is JobStatus.PROCESSING:
            self._in_flight.discard(job_id)
            logger.info("job cancelled while processing; remote call left running (job_id=%s)", job_id)
            self._fill_slots()
        else:
            logger.info("job cancelled (job_id=%s)", job_id)
        return True

    def status(self, job_id: str) -> ProcessingJob | None:
        job = self._jobs.get(job_id)
        if job is None:
            return None
        return dataclasses.replace(job, options=dict(job.options))

    def stats(self) -> QueueStats:
        counts = {status: 0 for status in JobStatus}
        for job in self._jobs.values():
            counts[job.status] += 1
        return QueueStats(
            pending=counts[JobStatus.PENDING],
            processing=counts[JobStatus.PROCESSING],
            completed=counts[JobStatus.COMPLETED],
            failed=counts[JobStatus.FAILED],
            cancelled=counts[JobStatus.CANCELLED],
            total=len(self._jobs),
        )

    async def wait(self, job_id: str) -> ProcessingJob:
        """Wait until the job reaches a terminal state and return its snapshot."""
        entry = self._entries.get(job_id)
        if entry is None:
            raise KeyError(job_id)
        return await asyncio.shield(entry.future)

    async def join(self) -> None:
        """Wait until every job currently known to the queue is terminal."""
        while True:
            waiting = [e.future for e in self._entries.values() if not e.future.done()]
            if not waiting:
                return
            await asyncio.gather(*(asyncio.shield(f) for f in waiting))

    def clear_completed(self) -> int:
        """Forget terminal jobs (completed, failed, cancelled); return how many."""
        done = [job_id for job_id, job in self._jobs.items() if job.status.is_terminal]
        for job_id in done:
            self._jobs.pop(job_id, None)
            self._entries.pop(job_id, None)
        return len(done)

    def forget(self, job_id: str) -> bool:
        """Drop one terminal job (and its payload) from the queue.

        Jobs still pending or processing are kept; returns whether the job
        was removed.
        """
        job = self._jobs.get(job_id)
        if job is None or not job.status.is_terminal:
            return False
        del self._jobs[job_id]
        self._entries.pop(job_id, None)
        return True

    async def close(self) -> None:
        """Cancel outstanding work and stop accepting submissions."""
        if self._closed:
            return
        self._closed = True
        for job_id, job in list(self._jobs.items()):
            if not job.status.is_terminal:
                self.cancel(job_id)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("job queue closed")

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def is_empty(self) -> bool:
        return not self._jobs and not self._in_flight

    @property
    def is_processing(self) -> bool:
        return bool(self._in_flight)

    async def __aenter__(self) -> "JobQueue":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    # -- scheduler ----------------------------------------------------------

    def _fill_slots(self) -> None:
        if self._closed:
            return
        while len(self._in_flight) < self.max_concurrent and self._pending:
            _, _, job_id = heapq.heappop(self._pending)
            job = self._jobs.get(job_id)
            # Cancelled or cleared jobs are dropped lazily here.
            if job is None or job.status is not JobStatus.PENDING:
                continue
            self._start(job)

    def _start(self, job: ProcessingJob) -> None:
        entry = self._entries[job.id]
        job.status = JobStatus.PROCESSING
        job.started_at = _utcnow()
        self._in_flight.add(job.id)
        logger.debug("job started (job_id=%s, attempt=%d)", job.id, job.retry_count + 1)

        task = asyncio.get_running_loop().create_task(self._run(job, entry), name=f"scribeflow-job-{job.id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, job: ProcessingJob, entry: _JobEntry) -> None:
        self._invoke(job.id, "on_progress", entry.callbacks.on_progress, 0.0)
        try:
            result = await self._attempt(job, entry)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._handle_failure(job, entry, exc)
        else:
            self._handle_success(job, entry, result)
        finally:
            self._in_flight.discard(job.id)
            self._fill_slots()

    async def _attempt(self, job: ProcessingJob, entry: _JobEntry) -> Any:
        call = entry.processor(job.payload, dict(job.options))
        if self.job_timeout_s is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.job_timeout_s)
        except asyncio.TimeoutError as exc:
            raise JobTimeoutError(job.id, self.job_timeout_s) from exc

    def _handle_success(self, job: ProcessingJob, entry: _JobEntry, result: Any) -> None:
        if job.status is not JobStatus.PROCESSING:
            logger.debug("discarding result of job no longer processing (job_id=%s, status=%s)", job.id, job.status.value)
            return
        job.status = JobStatus.COMPLETED
        job.completed_at = _utcnow()
        job.result = result
        logger.info("job completed (job_id=%s, attempts=%d)", job.id, job.retry_count + 1)
        self._invoke(job.id, "on_progress", entry.callbacks.on_progress, 100.0)
        self._invoke(job.id, "on_complete", entry.callbacks.on_complete, result)
        self._resolve(job.id)

    def _handle_failure(self, job: ProcessingJob, entry: _JobEntry, exc: Exception) -> None:
        if job.status is not JobStatus.PROCESSING:
            logger.debug("discarding failure of job no longer processing (job_id=%s, error=%s)", job.id, exc)
            return

        message = _error_message(exc)
        if self._is_retryable(exc) and job.retry_count < job.max_retries:
            job.retry_count += 1
            job.status = JobStatus.PENDING
            delay = self._backoff_delay(job.retry_count)
            logger.warning(
                "job retrying (job_id=%s, retry=%d/%d, wait_s=%.2f, error=%s)",
                job.id,
                job.retry_count,
                job.max_retries,
                delay,
                message,
            )
            loop = asyncio.get_running_loop()
            entry.retry_handle = loop.call_later(delay, self._requeue, job.id)
            return

        job.status = JobStatus.FAILED
        job.completed_at = _utcnow()
        job.error = message
        job.error_code = _error_code(exc)
        logger.error(
            "job failed (job_id=%s, retries=%d, error_code=%s, error=%s)",
            job.id,
            job.retry_count,
            job.error_code,
            message,
        )
        self._invoke(job.id, "on_error", entry.callbacks.on_error, message)
        self._resolve(job.id)

    def _requeue(self, job_id: str) -> None:
        entry = self._entries.get(job_id)
        job = self._jobs.get(job_id)
        if entry is None or job is None:
            return
        entry.retry_handle = None
        if job.status is not JobStatus.PENDING:
            return
        heapq.heappush(self._pending, (-job.priority, entry.seq, job_id))
        self._fill_slots()

    def _is_retryable(self, exc: Exception) -> bool:
        if not self.classify_errors:
            return True
        return bool(getattr(exc, "retryable", True))

    def _backoff_delay(self, retry_count: int) -> float:
        state = RetryCallState(retry_object=None, fn=None, args=(), kwargs={})
        state.attempt_number = max(1, int(retry_count))
        return max(0.0, float(self._wait(state)))

    def _resolve(self, job_id: str) -> None:
        entry = self._entries.get(job_id)
        if entry is None or entry.future.done():
            return
        snapshot = self.status(job_id)
        if snapshot is not None:
            entry.future.set_result(snapshot)

    def _invoke(self, job_id: str, name: str, callback: Callable[[Any], None] | None, arg: Any) -> None:
        if callback is None:
            return
        try:
            callback(arg)
        except Exception:
            logger.exception("job callback failed (job_id=%s, callback=%s)", job_id, name)
