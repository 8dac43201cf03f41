"""
Tests for MaintenanceScheduler and the maintenance job registration.
"""

from __future__ import annotations

import threading

import pytest

from app.workers.maintenance_scheduler import (
    QUARANTINE_SWEEP_JOB,
    RATE_LIMIT_CLEANUP_JOB,
    JobStatus,
    MaintenanceScheduler,
    register_maintenance_jobs,
)


class TestJobManagement:
    def test_run_now_records_success(self):
        scheduler = MaintenanceScheduler()
        scheduler.schedule_interval("job", lambda: 7, 60)

        assert scheduler.run_now("job") is True
        job = scheduler.get_job("job")
        assert (job.run_count, job.success_count, job.failure_count) == (1, 1, 0)
        assert job.last_result == 7
        assert job.status is JobStatus.COMPLETED

    def test_run_now_records_failure(self):
        def broken():
            raise RuntimeError("boom")

        scheduler = MaintenanceScheduler()
        scheduler.schedule_interval("job", broken, 60)

        assert scheduler.run_now("job") is False
        job = scheduler.get_job("job")
        assert job.failure_count == 1
        assert job.last_error == "boom"
        assert job.status is JobStatus.FAILED
        assert job.to_dict()["status"] == "failed"

    def test_run_now_unknown_job(self):
        assert MaintenanceScheduler().run_now("missing") is False

    def test_remove_job(self):
        scheduler = MaintenanceScheduler()
        scheduler.schedule_interval("job", lambda: None, 60)
        assert scheduler.remove_job("job")
        assert not scheduler.remove_job("job")
        assert scheduler.get_jobs() == []

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            MaintenanceScheduler().schedule_interval("job", lambda: None, 0)


class TestSchedulerLoop:
    def test_due_job_runs_in_background(self):
        ran = threading.Event()
        scheduler = MaintenanceScheduler(check_interval_seconds=0.05)
        scheduler.schedule_interval("job", ran.set, 60, start_immediately=True)
        scheduler.start()
        try:
            assert scheduler.is_running()
            assert ran.wait(5)
        finally:
            scheduler.stop()
        assert not scheduler.is_running()
        assert scheduler.get_job("job").next_run > scheduler.get_job("job").last_run

    def test_stop_without_start_is_noop(self):
        MaintenanceScheduler().stop()


class TestRegisterMaintenanceJobs:
    def test_jobs_target_container_services(self, container, config, clock):
        scheduler = MaintenanceScheduler()
        jobs = register_maintenance_jobs(scheduler, container, config)
        assert {j.job_id for j in jobs} == {QUARANTINE_SWEEP_JOB, RATE_LIMIT_CLEANUP_JOB}

        container.quarantine.quarantine("d1", "test")
        container.rate_limiter.admit("d1")
        clock.advance(config.quarantine_duration_seconds + 1)

        assert scheduler.run_now(QUARANTINE_SWEEP_JOB)
        assert scheduler.run_now(RATE_LIMIT_CLEANUP_JOB)
        assert scheduler.get_job(QUARANTINE_SWEEP_JOB).last_result == 1
        assert scheduler.get_job(RATE_LIMIT_CLEANUP_JOB).last_result == 1
        assert container.quarantine.list_quarantined() == []
