"""
Maintenance scheduler for periodic background jobs.

Design Principles:
- Single scheduler loop thread waiting on a stop event
- Bounded worker pool for job execution
- Fixed-rate intervals: the next run advances from the scheduled time,
  skipping missed slots instead of piling them up
- A failing job is logged, counted and rescheduled

The hub registers two jobs through ``register_maintenance_jobs``: the
quarantine sweep and the rate limiter cleanup.
"""

from __future__ import annotations

import heapq
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from app.utils.time import from_timestamp

if TYPE_CHECKING:
    from app.config import AppConfig
    from app.services.container import ServiceContainer

logger = logging.getLogger(__name__)

QUARANTINE_SWEEP_JOB = "maintenance.quarantine_sweep"
RATE_LIMIT_CLEANUP_JOB = "maintenance.rate_limit_cleanup"


class JobStatus(str, Enum):
    """Status of a scheduled job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


@dataclass
class ScheduledJob:
    """An interval job and its execution counters."""

    job_id: str
    func: Callable[[], Any]
    interval_seconds: float
    enabled: bool = True

    next_run: float | None = None  # time.time() seconds
    last_run: float | None = None
    status: JobStatus = JobStatus.PENDING
    run_count: int = 0
    success_count: int = 0
    failure_count: int = 0
    last_result: Any = None
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "interval_seconds": self.interval_seconds,
            "enabled": self.enabled,
            "status": self.status.value,
            "next_run": from_timestamp(self.next_run).isoformat() if self.next_run else None,
            "last_run": from_timestamp(self.last_run).isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }


class MaintenanceScheduler:
    """Runs interval jobs on a background thread."""

    def __init__(self, check_interval_seconds: float = 1.0, max_workers: int = 2):
        """
        Args:
            check_interval_seconds: Longest wait between checks for due jobs
            max_workers: Maximum number of concurrent job executions
        """
        self._check_interval = float(check_interval_seconds)
        self._max_workers = int(max_workers)

        self._jobs: dict[str, ScheduledJob] = {}
        # Entries: (run_at_ts, seq, job_id)
        self._job_heap: list[tuple[float, int, str]] = []
        self._heap_seq = 0
        self._job_lock = threading.RLock()

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None

    # ==================== Job Scheduling ====================

    def schedule_interval(
        self,
        job_id: str,
        func: Callable[[], Any],
        interval_seconds: float,
        *,
        start_immediately: bool = False,
    ) -> ScheduledJob:
        """Schedule *func* every *interval_seconds*. Re-using a job id replaces the job."""
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        now = time.time()
        job = ScheduledJob(
            job_id=job_id,
            func=func,
            interval_seconds=float(interval_seconds),
            next_run=now if start_immediately else now + interval_seconds,
        )
        with self._job_lock:
            self._jobs[job_id] = job
            self._push_heap(job)
        logger.info("Scheduled interval job: %s (every %ss)", job_id, interval_seconds)
        return job

    def remove_job(self, job_id: str) -> bool:
        with self._job_lock:
            return self._jobs.pop(job_id, None) is not None

    def get_job(self, job_id: str) -> ScheduledJob | None:
        with self._job_lock:
            return self._jobs.get(job_id)

    def get_jobs(self) -> list[ScheduledJob]:
        with self._job_lock:
            return list(self._jobs.values())

    def run_now(self, job_id: str) -> bool:
        """
        Run a job immediately on the calling thread.

        Returns:
            True if the job ran and succeeded
        """
        job = self.get_job(job_id)
        if job is None:
            logger.error("Job not found: %s", job_id)
            return False
        return self._execute_job(job)

    # ==================== Scheduler Control ====================

    def start(self) -> None:
        """Start the scheduler background thread."""
        if self.is_running():
            logger.warning("Scheduler already running")
            return

        self._stop_event.clear()
        self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="MaintenanceJob")
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="MaintenanceScheduler")
        self._thread.start()
        logger.info("MaintenanceScheduler started with %d job(s)", len(self._jobs))

    def stop(self, wait: bool = True, timeout: float = 5.0) -> None:
        """Stop the loop and drain running jobs."""
        if not self.is_running():
            return

        self._stop_event.set()
        if wait and self._thread:
            self._thread.join(timeout=timeout)
        self._thread = None

        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None

        logger.info("MaintenanceScheduler stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ==================== Core Scheduling Logic ====================

    def _push_heap(self, job: ScheduledJob) -> None:
        """Stale heap entries are skipped when popped, never removed eagerly."""
        if not job.enabled or job.next_run is None:
            return
        self._heap_seq += 1
        heapq.heappush(self._job_heap, (job.next_run, self._heap_seq, job.job_id))

    def _run_loop(self) -> None:
        logger.debug("Scheduler loop started")
        while not self._stop_event.is_set():
            try:
                self._process_due_jobs()
            except Exception as e:
                logger.error("Error in scheduler loop: %s", e, exc_info=True)
            self._stop_event.wait(self._seconds_until_next())
        logger.debug("Scheduler loop ended")

    def _seconds_until_next(self) -> float:
        with self._job_lock:
            if not self._job_heap:
                return self._check_interval
            delay = self._job_heap[0][0] - time.time()
        return min(self._check_interval, max(0.0, delay))

    def _process_due_jobs(self) -> None:
        now = time.time()
        due: list[ScheduledJob] = []

        with self._job_lock:
            while self._job_heap and self._job_heap[0][0] <= now:
                run_at, _seq, job_id = heapq.heappop(self._job_heap)
                job = self._jobs.get(job_id)
                if job is None or not job.enabled or job.next_run != run_at:
                    continue  # removed, disabled or rescheduled since this entry was pushed
                self._schedule_next_run(job, scheduled_for=run_at, now=now)
                self._push_heap(job)
                due.append(job)

        for job in due:
            if self._executor is None:
                logger.warning("Executor unavailable; skipping job %s", job.job_id)
                continue
            self._executor.submit(self._execute_job, job)

    def _schedule_next_run(self, job: ScheduledJob, *, scheduled_for: float, now: float) -> None:
        next_run = scheduled_for + job.interval_seconds
        if next_run <= now:
            skips = int((now - next_run) // job.interval_seconds) + 1
            next_run += skips * job.interval_seconds
        job.next_run = next_run

    def _execute_job(self, job: ScheduledJob) -> bool:
        with self._job_lock:
            job.status = JobStatus.RUNNING
        started_at = time.time()
        try:
            result = job.func()
        except Exception as e:
            with self._job_lock:
                job.last_run = started_at
                job.run_count += 1
                job.failure_count += 1
                job.last_error = str(e)
                job.status = JobStatus.FAILED
            logger.error("Job %s failed: %s", job.job_id, e, exc_info=True)
            return False

        with self._job_lock:
            job.last_run = started_at
            job.run_count += 1
            job.success_count += 1
            job.last_result = result
            job.last_error = None
            job.status = JobStatus.COMPLETED
        logger.debug("Job %s completed in %.3fs", job.job_id, time.time() - started_at)
        return True


def register_maintenance_jobs(
    scheduler: MaintenanceScheduler, container: "ServiceContainer", config: "AppConfig"
) -> list[ScheduledJob]:
    """Install the quarantine sweep and rate limiter cleanup jobs for *container*."""
    return [
        scheduler.schedule_interval(
            QUARANTINE_SWEEP_JOB,
            container.quarantine.sweep,
            config.quarantine_sweep_interval_seconds,
        ),
        scheduler.schedule_interval(
            RATE_LIMIT_CLEANUP_JOB,
            container.rate_limiter.cleanup,
            config.rate_limit_cleanup_interval_seconds,
        ),
    ]
