import logging

from apscheduler.schedulers.background import BackgroundScheduler

from yappli_sync.scheduler import JOB_ID, SchedulerManager


def test_interval_job_is_registered_with_next_run():
    manager = SchedulerManager(BackgroundScheduler())

    manager.add_interval_job(lambda: None, minutes=30)

    snapshot = manager.snapshot()
    assert snapshot.total_jobs == 1
    assert snapshot.running is False
    assert snapshot.next_runs[JOB_ID] is not None
    assert manager.scheduler.get_job(JOB_ID).trigger.interval.total_seconds() == 1800


def test_failing_run_is_logged_not_raised(caplog):
    manager = SchedulerManager(BackgroundScheduler())

    def explode():
        raise RuntimeError("feed offline")

    manager.add_interval_job(explode, minutes=5)
    job = manager.scheduler.get_job(JOB_ID)

    with caplog.at_level(logging.ERROR, logger="yappli_sync.scheduler"):
        job.func()

    assert "Job yappli_sync failed" in caplog.text


def test_shutdown_is_safe_when_not_started():
    manager = SchedulerManager(BackgroundScheduler())

    manager.shutdown()

    assert manager.snapshot().running is False


def test_start_logs_registered_jobs(caplog):
    manager = SchedulerManager(BackgroundScheduler())
    manager.add_interval_job(lambda: None, minutes=60)

    with caplog.at_level(logging.INFO, logger="yappli_sync.scheduler"):
        manager.start()
        manager.shutdown()

    assert "Scheduler starting with 1 jobs" in caplog.text
    assert JOB_ID in caplog.text
