"""Scheduler de jobs (APScheduler)."""

from .scheduler import (
    JOB_RUNNERS,
    create_scheduler,
    start_scheduler,
    stop_scheduler,
    get_scheduler_status,
    run_job_now,
)

__all__ = [
    "JOB_RUNNERS",
    "create_scheduler",
    "start_scheduler",
    "stop_scheduler",
    "get_scheduler_status",
    "run_job_now",
]
