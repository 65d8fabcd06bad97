"""
In-process periodic trigger for OctoSwitch background jobs.

Two jobs run through it: the per-minute schedule tick and the daily log
prune. A single loop thread pops due jobs from a heap and hands them to a
bounded worker pool; wall-clock times are computed in one civil timezone.

Job kinds:
- INTERVAL: every N seconds, optionally aligned to multiples of N
- DAILY: once a day at HH:MM
"""

from __future__ import annotations

import heapq
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from octoswitch.utils.time import civil_now, time_to_minutes

logger = logging.getLogger(__name__)


class ScheduleType(Enum):
    INTERVAL = "interval"
    DAILY = "daily"


@dataclass
class JobResult:
    """Outcome of one job run."""

    job_id: str
    success: bool
    started_at: datetime
    completed_at: datetime
    result: Any = None
    error: str | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.completed_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "success": self.success,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
        }


@dataclass
class ScheduledJob:
    """A registered task plus its timing and run counters."""

    job_id: str
    task_name: str
    namespace: str  # "schedule" or "maintenance"
    schedule_type: ScheduleType
    enabled: bool = True

    interval_seconds: int | None = None
    align: bool = False  # fire on multiples of interval_seconds since the epoch
    time_of_day: str | None = None  # "HH:MM" for DAILY

    next_run: datetime | None = None
    last_run: datetime | None = None
    run_count: int = 0
    failure_count: int = 0
    last_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "task_name": self.task_name,
            "namespace": self.namespace,
            "schedule_type": self.schedule_type.value,
            "enabled": self.enabled,
            "interval_seconds": self.interval_seconds,
            "align": self.align,
            "time_of_day": self.time_of_day,
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "run_count": self.run_count,
            "failure_count": self.failure_count,
            "last_error": self.last_error,
        }


class UnifiedScheduler:
    """
    Heap-driven scheduler with one loop thread and a bounded worker pool.

    Heap entries are ``(run_at_ts, seq, job_id)``; ``seq`` keeps ordering
    stable when two jobs are due at the same instant. A job is re-pushed
    with its next run time before it is submitted, so a slow run never
    delays the following one. Runs missed while the process was busy or
    asleep are skipped, not replayed.
    """

    def __init__(
        self,
        check_interval_seconds: float = 1.0,
        max_history: int = 1000,
        max_workers: int = 4,
        timezone: str | None = None,
    ):
        """
        Args:
            check_interval_seconds: Loop wake-up period
            max_history: Number of JobResults kept for status reporting
            max_workers: Jobs that may run at the same time
            timezone: IANA timezone for daily times (host local time if None)
        """
        self._check_interval = float(check_interval_seconds)
        self._max_history = int(max_history)
        self._max_workers = int(max_workers)
        self._timezone = timezone

        self._jobs: dict[str, ScheduledJob] = {}
        self._tasks: dict[str, Callable[[], Any]] = {}
        self._job_heap: list[tuple[float, int, str]] = []
        self._heap_seq = 0
        self._history: list[JobResult] = []

        self._running = False
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._job_lock = threading.RLock()
        self._executor: ThreadPoolExecutor | None = None

        logger.info("UnifiedScheduler initialized (timezone=%s)", timezone or "local")

    def _now(self) -> datetime:
        return civil_now(self._timezone)

    # ==================== Registration ====================

    def register_task(self, name: str, func: Callable[[], Any]) -> None:
        self._tasks[name] = func
        logger.debug("Registered task: %s", name)

    def clear_jobs(self) -> None:
        """Drop every job and pending heap entry; registered tasks stay."""
        with self._job_lock:
            self._jobs.clear()
            self._job_heap.clear()
            self._heap_seq = 0

    def schedule_interval(
        self,
        task_name: str,
        interval_seconds: int,
        *,
        job_id: str | None = None,
        enabled: bool = True,
        align: bool = False,
    ) -> ScheduledJob:
        """
        Run ``task_name`` every ``interval_seconds``.

        With ``align=True`` runs land on multiples of the interval, e.g.
        second 0 of every minute for 60s.

        Raises:
            ValueError: If the interval is below one second
        """
        interval_seconds = int(interval_seconds)
        if interval_seconds < 1:
            raise ValueError(f"interval_seconds must be positive: {interval_seconds}")

        now = self._now()
        if align:
            next_run = self._calculate_next_aligned(now, interval_seconds)
        else:
            next_run = now + timedelta(seconds=interval_seconds)

        job = ScheduledJob(
            job_id=job_id or f"{task_name}_every_{interval_seconds}s",
            task_name=task_name,
            namespace=self._namespace_of(task_name),
            schedule_type=ScheduleType.INTERVAL,
            enabled=enabled,
            interval_seconds=interval_seconds,
            align=align,
            next_run=next_run,
        )
        self._add_job(job)
        logger.info("Scheduled interval job: %s (every %ss%s)", job.job_id, interval_seconds, ", aligned" if align else "")
        return job

    def schedule_daily(
        self,
        task_name: str,
        time_of_day: str,
        *,
        job_id: str | None = None,
        enabled: bool = True,
    ) -> ScheduledJob:
        """
        Run ``task_name`` once a day at ``time_of_day`` (civil HH:MM).

        Raises:
            ValueError: If ``time_of_day`` is not HH:MM
        """
        time_to_minutes(time_of_day)

        job = ScheduledJob(
            job_id=job_id or f"{task_name}_daily_{time_of_day.replace(':', '')}",
            task_name=task_name,
            namespace=self._namespace_of(task_name),
            schedule_type=ScheduleType.DAILY,
            enabled=enabled,
            time_of_day=time_of_day,
            next_run=self._calculate_next_daily(time_of_day),
        )
        self._add_job(job)
        logger.info("Scheduled daily job: %s (at %s)", job.job_id, time_of_day)
        return job

    @staticmethod
    def _namespace_of(task_name: str) -> str:
        return task_name.split(".")[0] if "." in task_name else "default"

    def _add_job(self, job: ScheduledJob) -> None:
        with self._job_lock:
            self._jobs[job.job_id] = job
            self._push_heap(job)

    def _push_heap(self, job: ScheduledJob) -> None:
        if not job.enabled or job.next_run is None:
            return
        self._heap_seq += 1
        heapq.heappush(self._job_heap, (job.next_run.timestamp(), self._heap_seq, job.job_id))

    def get_jobs(self) -> list[ScheduledJob]:
        with self._job_lock:
            return list(self._jobs.values())

    # ==================== Lifecycle ====================

    def start(self) -> None:
        """Start the loop thread (no-op when already running)."""
        if self._running:
            logger.warning("Scheduler already running")
            return

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="UnifiedSchedulerJob")

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, daemon=True, name="UnifiedScheduler")
        self._thread.start()
        logger.info("UnifiedScheduler started")

    def stop(self, wait: bool = True, timeout: float = 5.0) -> None:
        """Stop the loop thread and the worker pool."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()
        if wait and self._thread:
            self._thread.join(timeout=timeout)

        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None
        logger.info("UnifiedScheduler stopped")

    def shutdown(self, wait: bool = True, timeout: float = 5.0) -> None:
        self.stop(wait=wait, timeout=timeout)

    def is_running(self) -> bool:
        return self._running

    def _run_loop(self) -> None:
        while self._running:
            try:
                self._process_due_jobs()
            except Exception as e:
                logger.error("Error in scheduler loop: %s", e, exc_info=True)
            self._stop_event.wait(self._check_interval)

    # ==================== Execution ====================

    def _process_due_jobs(self) -> None:
        """Submit every job whose run time has passed."""
        now_ts = self._now().timestamp()

        with self._job_lock:
            while self._job_heap and self._job_heap[0][0] <= now_ts:
                _run_at, _seq, job_id = heapq.heappop(self._job_heap)
                job = self._jobs.get(job_id)
                if job is None or job.next_run is None:
                    continue

                scheduled_for = job.next_run
                self._schedule_next_run(job, scheduled_for)
                self._push_heap(job)

                if self._executor is None:
                    logger.warning("Executor unavailable; skipping job %s", job_id)
                    continue
                self._executor.submit(self._execute_job, job_id, scheduled_for)

    def _execute_job(self, job_id: str, scheduled_for: datetime) -> None:
        with self._job_lock:
            job = self._jobs.get(job_id)
        if job is None:
            return

        started_at = self._now()
        try:
            func = self._tasks.get(job.task_name)
            if func is None:
                raise ValueError(f"Task function not found: {job.task_name}")
            result = func()
        except Exception as e:
            with self._job_lock:
                job.last_run = started_at
                job.run_count += 1
                job.failure_count += 1
                job.last_error = str(e)
            self._record_history(
                JobResult(job.job_id, success=False, started_at=started_at, completed_at=self._now(), error=str(e))
            )
            logger.error("Job %s failed: %s", job.job_id, e, exc_info=True)
            return

        with self._job_lock:
            job.last_run = started_at
            job.run_count += 1
            job.last_error = None
        job_result = JobResult(job.job_id, success=True, started_at=started_at, completed_at=self._now(), result=result)
        self._record_history(job_result)
        logger.debug(
            "Job %s completed in %.2fs (scheduled for %s)",
            job.job_id,
            job_result.duration_seconds,
            scheduled_for.isoformat(),
        )

    def _schedule_next_run(self, job: ScheduledJob, scheduled_for: datetime) -> None:
        """Advance ``job.next_run`` past now, keeping interval alignment."""
        if job.schedule_type == ScheduleType.DAILY:
            job.next_run = self._calculate_next_daily(job.time_of_day or "00:00")
            return

        interval = int(job.interval_seconds or 60)
        now = self._now()
        if job.align:
            job.next_run = self._calculate_next_aligned(max(scheduled_for, now), interval)
            return

        next_run = scheduled_for + timedelta(seconds=interval)
        if next_run <= now:
            missed = int((now - next_run).total_seconds() // interval) + 1
            next_run += timedelta(seconds=missed * interval)
        job.next_run = next_run

    @staticmethod
    def _calculate_next_aligned(after: datetime, interval_seconds: int) -> datetime:
        """First multiple of ``interval_seconds`` (since the epoch) strictly after ``after``."""
        next_ts = (int(after.timestamp() // interval_seconds) + 1) * interval_seconds
        return datetime.fromtimestamp(next_ts, tz=after.tzinfo)

    def _calculate_next_daily(self, time_of_day: str) -> datetime:
        now = self._now()
        hour, minute = map(int, time_of_day.split(":"))
        next_run = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if next_run <= now:
            next_run = (next_run + timedelta(days=1)).replace(hour=hour, minute=minute)
        return next_run

    def _record_history(self, result: JobResult) -> None:
        with self._job_lock:
            self._history.append(result)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history :]

    # ==================== Status ====================

    def get_status(self) -> dict[str, Any]:
        """Summary of jobs and recent failures."""
        with self._job_lock:
            jobs = list(self._jobs.values())
            recent = self._history[-20:]
            return {
                "running": self._running,
                "timezone": self._timezone,
                "total_jobs": len(jobs),
                "enabled_jobs": sum(1 for j in jobs if j.enabled),
                "namespaces": sorted({j.namespace for j in jobs}),
                "history_size": len(self._history),
                "recent_failures": [r.to_dict() for r in recent if not r.success],
                "jobs": [j.to_dict() for j in jobs],
            }
