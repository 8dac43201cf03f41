"""
Workers module for background maintenance.

- maintenance_scheduler: interval scheduler plus the quarantine sweep and
  rate limiter cleanup job registration
"""

from app.workers.maintenance_scheduler import (
    QUARANTINE_SWEEP_JOB,
    RATE_LIMIT_CLEANUP_JOB,
    JobStatus,
    MaintenanceScheduler,
    ScheduledJob,
    register_maintenance_jobs,
)

__all__ = [
    "QUARANTINE_SWEEP_JOB",
    "RATE_LIMIT_CLEANUP_JOB",
    "JobStatus",
    "MaintenanceScheduler",
    "ScheduledJob",
    "register_maintenance_jobs",
]
