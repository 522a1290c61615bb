"""
Resolution Work Queue

An external trigger enqueues a market id; a pool of worker threads
pulls jobs and runs them through OracleService.resolve_market.

Job lifecycle:
    queued -> running -> completed | failed | manual_review | skipped
                      -> queued (retryable failure, attempts left)

Submitting a market that already has a queued or running job returns
the existing job.
"""

from __future__ import annotations

import logging
import queue
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, TYPE_CHECKING

from core.schemas import (
    ErrorCodes,
    MarketAlreadyResolvedException,
    MarketNotEndedException,
    OracleError,
    OracleException,
    ResolutionResult,
)

from .engine import MANUAL_REVIEW_CODES

if TYPE_CHECKING:
    from .service import OracleService

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
_POLL_INTERVAL_S = 0.2


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    MANUAL_REVIEW = "manual_review"
    SKIPPED = "skipped"

    @property
    def is_active(self) -> bool:
        return self in (JobStatus.QUEUED, JobStatus.RUNNING)


@dataclass
class ResolutionJob:
    """One request to resolve a market, possibly over several attempts."""

    id: str
    market_id: int
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    errors: list[OracleError] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    result: Optional[ResolutionResult] = None

    @property
    def last_error(self) -> Optional[OracleError]:
        return self.errors[-1] if self.errors else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "market_id": self.market_id,
            "status": self.status.value,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "errors": [e.model_dump() for e in self.errors],
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result.model_dump(mode="json") if self.result else None,
        }


class ResolutionQueue:
    """
    Job queue plus worker pool.

    Usage:
        jobs = ResolutionQueue(service)
        jobs.start(workers=4)
        job = jobs.submit(3)
        jobs.join()
        jobs.stop()

    `process_next()` runs one job on the calling thread, which keeps
    tests free of worker threads.
    """

    def __init__(
        self,
        service: "OracleService",
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.service = service
        self.max_attempts = max_attempts
        self._now = now or service.ctx.now
        self._queue: queue.Queue[ResolutionJob] = queue.Queue()
        self._jobs: dict[str, ResolutionJob] = {}
        self._lock = threading.Lock()
        self._workers: list[threading.Thread] = []
        self._stopping = threading.Event()

    # ------------------------------------------------------------------
    # Submission and lookup
    # ------------------------------------------------------------------

    def submit(self, market_id: int) -> ResolutionJob:
        """Enqueue `market_id`, or return its active job."""
        with self._lock:
            for job in self._jobs.values():
                if job.market_id == market_id and job.status.is_active:
                    return job
            job = ResolutionJob(
                id=uuid.uuid4().hex,
                market_id=market_id,
                max_attempts=self.max_attempts,
                created_at=self._now(),
            )
            self._jobs[job.id] = job
        self._queue.put(job)
        logger.info("Queued job %s for market %s", job.id, market_id)
        return job

    def get(self, job_id: str) -> Optional[ResolutionJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def list_jobs(self) -> list[ResolutionJob]:
        with self._lock:
            return sorted(self._jobs.values(), key=lambda j: j.created_at)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def start(self, workers: int = 1) -> None:
        if self._workers:
            raise RuntimeError("Workers already started")
        self._stopping.clear()
        for index in range(max(1, workers)):
            thread = threading.Thread(
                target=self._worker_loop,
                name=f"resolution-worker-{index}",
                daemon=True,
            )
            thread.start()
            self._workers.append(thread)
        logger.info("Started %d resolution workers", len(self._workers))

    def stop(self, wait: bool = True) -> None:
        self._stopping.set()
        if wait:
            for thread in self._workers:
                thread.join()
        self._workers = []

    def join(self) -> None:
        """Block until every queued job, including re-queued ones, is done."""
        self._queue.join()

    def _worker_loop(self) -> None:
        while not self._stopping.is_set():
            self.process_next(timeout=_POLL_INTERVAL_S)

    def process_next(self, timeout: Optional[float] = None) -> Optional[ResolutionJob]:
        """
        Run the next queued job on this thread.

        Returns the job, or None if nothing was queued within `timeout`
        (None = do not wait).
        """
        try:
            if timeout is None:
                job = self._queue.get_nowait()
            else:
                job = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

        try:
            self._run(job)
        finally:
            self._queue.task_done()
        return job

    def _run(self, job: ResolutionJob) -> None:
        with self._lock:
            job.status = JobStatus.RUNNING
            job.attempts += 1
            job.started_at = job.started_at or self._now()

        try:
            result = self.service.resolve_market(job.market_id)
        except (MarketNotEndedException, MarketAlreadyResolvedException) as e:
            self._finish(job, JobStatus.SKIPPED, error=e)
            logger.info("Job %s skipped: %s", job.id, e.message)
            return
        except OracleException as e:
            if e.retryable and job.attempts < job.max_attempts:
                with self._lock:
                    job.errors.append(e.to_error_model())
                    job.status = JobStatus.QUEUED
                self._queue.put(job)
                logger.warning(
                    "Job %s attempt %d/%d failed with %s; re-queued",
                    job.id,
                    job.attempts,
                    job.max_attempts,
                    e.code,
                )
                return
            status = JobStatus.MANUAL_REVIEW if e.code in MANUAL_REVIEW_CODES else JobStatus.FAILED
            self._finish(job, status, error=e)
            logger.error("Job %s ended as %s: %s %s", job.id, status.value, e.code, e.message)
            return
        except Exception as e:
            logger.exception("Job %s crashed", job.id)
            self._finish(
                job,
                JobStatus.FAILED,
                error=OracleException(str(e), code=ErrorCodes.UNKNOWN_ERROR),
            )
            return

        with self._lock:
            job.result = result
        self._finish(job, JobStatus.COMPLETED)

    def _finish(
        self,
        job: ResolutionJob,
        status: JobStatus,
        error: Optional[OracleException] = None,
    ) -> None:
        with self._lock:
            if error is not None:
                job.errors.append(error.to_error_model())
            job.status = status
            job.completed_at = self._now()
