"""Job model for the bounded-concurrency processing queue."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED}


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass
class ProcessingJob:
    id: str
    payload: Any = field(repr=False)
    options: dict[str, Any] = field(default_factory=dict)
    status: JobStatus = JobStatus.PENDING
    priority: int = 0
    retry_count: int = 0
    max_retries: int = 3
    created_at: datetime = field(default_factory=_utcnow)
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: Any = None
    error: str | None = None
    error_code: str | None = None


@dataclass(frozen=True)
class JobCallbacks:
    """Optional hooks fired by the queue; exactly one terminal hook runs per job."""

    on_progress: Callable[[float], None] | None = None
    on_complete: Callable[[Any], None] | None = None
    on_error: Callable[[str], None] | None = None


@dataclass(frozen=True)
class QueueStats:
    pending: int
    processing: int
    completed: int
    failed: int
    cancelled: int
    total: int
