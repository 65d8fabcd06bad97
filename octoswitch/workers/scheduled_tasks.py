"""
Scheduled Tasks: background task definitions for the UnifiedScheduler.

Tasks are organized by namespace:
- schedule.*: Per-minute evaluation of user schedules
- maintenance.*: Schedule log retention

Usage:
    from octoswitch.workers.scheduled_tasks import configure_scheduler
    from octoswitch.workers.unified_scheduler import UnifiedScheduler

    scheduler = UnifiedScheduler(timezone=config.timezone)
    configure_scheduler(scheduler, container)
"""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import wraps
from typing import TYPE_CHECKING, Any

from octoswitch.domain.schedules import ScheduleLogPruner
from octoswitch.utils.time import civil_now

if TYPE_CHECKING:
    from octoswitch.config import AppConfig
    from octoswitch.services.container import ServiceContainer
    from octoswitch.workers.unified_scheduler import UnifiedScheduler

logger = logging.getLogger(__name__)

TASK_SOFT_ERRORS = (
    RuntimeError,
    ValueError,
    TypeError,
    AttributeError,
    OSError,
)

SCHEDULE_EVALUATE_TASK = "schedule.evaluate"
PRUNE_SCHEDULE_LOGS_TASK = "maintenance.prune_schedule_logs"


# ==================== Schedule Namespace Tasks ====================


def schedule_evaluate_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Run one schedule tick.

    Runs every minute, aligned to second 0, to actuate devices whose
    effective slots start or end at the current minute.

    Task name: schedule.evaluate
    """
    report = container.schedule_executor.run()
    if report is None:
        return {"skipped": True}

    if report.results:
        logger.info(
            "Schedule tick %02d:%02d: %s succeeded, %s failed, %s one-time schedule(s) disabled",
            report.minute // 60,
            report.minute % 60,
            report.succeeded,
            report.failed,
            len(report.disabled_schedule_ids),
        )
    return report.to_dict()


# ==================== Maintenance Namespace Tasks ====================


def maintenance_prune_schedule_logs_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Delete schedule execution logs older than the retention period.

    Runs daily (03:00 by default). Stores without ``delete_logs_before``
    are skipped.

    Task name: maintenance.prune_schedule_logs
    """
    retention_days = int(getattr(container.config, "log_retention_days", 30))
    results: dict[str, Any] = {
        "deleted_rows": 0,
        "retention_days": max(1, retention_days),
        "errors": [],
    }

    store = container.schedule_store
    if not isinstance(store, ScheduleLogPruner):
        logger.debug("Schedule store does not support log pruning - skipping")
        return results

    # Log entries carry the naive civil time of the tick that wrote them
    now = civil_now(getattr(container.config, "timezone", None)).replace(tzinfo=None)
    cutoff = now - timedelta(days=results["retention_days"])
    try:
        results["deleted_rows"] = store.delete_logs_before(cutoff) or 0
        logger.info(
            "Pruned %s schedule log rows older than %s days",
            results["deleted_rows"],
            results["retention_days"],
        )
    except TASK_SOFT_ERRORS as e:
        logger.error("Schedule log prune failed: %s", e, exc_info=True)
        results["errors"].append(str(e))

    return results


# ==================== Registration ====================


def register_all_tasks(
    scheduler: "UnifiedScheduler",
    container: "ServiceContainer",
) -> None:
    """
    Register all tasks with the unified scheduler.

    Args:
        scheduler: UnifiedScheduler instance
        container: ServiceContainer with all services
    """
    logger.info("Registering scheduled tasks...")

    def bind_noargs(task_fn):
        @wraps(task_fn)
        def bound_task():
            try:
                return task_fn(container)
            except Exception as e:
                logger.exception("Scheduled task %s raised: %s", task_fn.__name__, e)
                # The scheduler records the failure in its history
                raise

        return bound_task

    scheduler.register_task(SCHEDULE_EVALUATE_TASK, bind_noargs(schedule_evaluate_task))
    scheduler.register_task(PRUNE_SCHEDULE_LOGS_TASK, bind_noargs(maintenance_prune_schedule_logs_task))

    logger.info("Registered %s tasks", len(scheduler._tasks))


def schedule_default_jobs(scheduler: "UnifiedScheduler", config: "AppConfig | None" = None) -> None:
    """
    Schedule default jobs with standard timing.

    Call this after register_all_tasks().

    Args:
        scheduler: UnifiedScheduler instance
        config: Supplies the log cleanup time (03:00 when omitted)
    """
    logger.info("Scheduling default jobs...")

    # Schedule namespace - every minute on the minute
    scheduler.schedule_interval(
        SCHEDULE_EVALUATE_TASK,
        interval_seconds=60,
        job_id="schedule_evaluate_minutely",
        align=True,
    )

    # Maintenance namespace
    scheduler.schedule_daily(
        PRUNE_SCHEDULE_LOGS_TASK,
        time_of_day=getattr(config, "log_cleanup_time", "03:00"),
        job_id="maintenance_prune_schedule_logs_daily",
    )

    jobs = scheduler.get_jobs()
    logger.info("Scheduled %s default jobs", len(jobs))

    for job in jobs:
        logger.debug("  - %s: %s (%s)", job.job_id, job.schedule_type.value, job.namespace)


def configure_scheduler(
    scheduler: "UnifiedScheduler",
    container: "ServiceContainer",
    *,
    reset_jobs: bool = True,
    start: bool = True,
) -> None:
    """Register tasks, apply default schedules, and optionally start the scheduler."""
    if reset_jobs:
        scheduler.clear_jobs()

    register_all_tasks(scheduler, container)
    schedule_default_jobs(scheduler, container.config)

    if start:
        scheduler.start()
