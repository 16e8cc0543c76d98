"""Tests for the periodic sync coordinator."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import STATE_PAUSED, STATE_RUNNING

from fleetsync.client.sync import SYNC_JOB_ID, SyncCoordinator, SyncSummary
from fleetsync.core.config import SyncConfig

EMPTY = SyncSummary()
BUSY = SyncSummary(attempted=1, succeeded=1)
FAILING = SyncSummary(attempted=1, failed=1)


@pytest.fixture
def engine() -> MagicMock:
    """Create a mock engine whose drains find nothing to do."""
    mock = MagicMock()
    mock.process_queue.return_value = EMPTY
    mock.is_syncing = False
    mock.pending_count = 2
    mock.failed_count = 1
    return mock


@pytest.fixture
def scheduler() -> Iterator[BackgroundScheduler]:
    """Create a scheduler and make sure it is stopped afterwards."""
    sched = BackgroundScheduler()
    yield sched
    if sched.running:
        sched.shutdown(wait=False)


def job_interval(scheduler: BackgroundScheduler) -> timedelta:
    job = scheduler.get_job(SYNC_JOB_ID)
    assert job is not None
    return job.trigger.interval


class TestAdaptiveInterval:
    """Tests for the active/idle interval policy."""

    def test_starts_active(self, engine: MagicMock) -> None:
        """The initial interval should be the active one."""
        coordinator = SyncCoordinator(engine)
        assert coordinator.current_interval == 60.0

    def test_idle_after_three_empty_drains(self, engine: MagicMock) -> None:
        """Three consecutive empty drains should switch to idle."""
        coordinator = SyncCoordinator(engine)

        coordinator.perform_sync()
        coordinator.perform_sync()
        assert coordinator.current_interval == 60.0

        coordinator.perform_sync()
        assert coordinator.current_interval == 300.0
        assert coordinator.consecutive_empty_syncs == 3

    def test_activity_returns_to_active(self, engine: MagicMock) -> None:
        """Any success should reset the counter and the interval."""
        coordinator = SyncCoordinator(engine)
        for _ in range(3):
            coordinator.perform_sync()

        engine.process_queue.return_value = BUSY
        coordinator.perform_sync()

        assert coordinator.current_interval == 60.0
        assert coordinator.consecutive_empty_syncs == 0

    def test_failures_count_as_activity(self, engine: MagicMock) -> None:
        """A drain with only failures is not empty."""
        engine.process_queue.side_effect = [EMPTY, EMPTY, FAILING, EMPTY]
        coordinator = SyncCoordinator(engine)

        for _ in range(4):
            coordinator.perform_sync()

        assert coordinator.consecutive_empty_syncs == 1
        assert coordinator.current_interval == 60.0

    def test_custom_config(self, engine: MagicMock) -> None:
        """Thresholds and intervals should follow SyncConfig."""
        config = SyncConfig(active_interval=5, idle_interval=50, max_empty_syncs_before_idle=1)
        coordinator = SyncCoordinator(engine, config=config)

        coordinator.perform_sync()

        assert coordinator.current_interval == 50

    def test_charter_push_after_drain(self, engine: MagicMock) -> None:
        """Charters should be pushed after each drain and count as activity."""
        charters = MagicMock()
        charters.push_pending_charters.return_value = BUSY
        coordinator = SyncCoordinator(engine, charters)

        summary = coordinator.perform_sync()

        charters.push_pending_charters.assert_called_once()
        assert summary.succeeded == 1
        assert coordinator.consecutive_empty_syncs == 0


class TestLifecycle:
    """Tests for start, suspend, resume and shutdown."""

    def test_start_schedules_job(
        self, engine: MagicMock, scheduler: BackgroundScheduler
    ) -> None:
        """Start should add the drain job at the active interval."""
        coordinator = SyncCoordinator(engine, scheduler=scheduler)

        coordinator.start()

        assert coordinator.is_running
        assert job_interval(scheduler) == timedelta(seconds=60)

    def test_interval_change_reschedules_job(
        self, engine: MagicMock, scheduler: BackgroundScheduler
    ) -> None:
        """Switching to idle should reschedule the running job."""
        coordinator = SyncCoordinator(engine, scheduler=scheduler)
        coordinator.start()

        for _ in range(3):
            coordinator.perform_sync()

        assert job_interval(scheduler) == timedelta(seconds=300)

    def test_suspend_and_resume(
        self, engine: MagicMock, scheduler: BackgroundScheduler
    ) -> None:
        """Suspend should pause the timer; resume should drain immediately."""
        coordinator = SyncCoordinator(engine, scheduler=scheduler)
        coordinator.start()

        coordinator.suspend()
        assert coordinator.is_suspended
        assert scheduler.state == STATE_PAUSED

        thread = coordinator.resume()
        assert thread is not None
        thread.join(timeout=5)

        assert scheduler.state == STATE_RUNNING
        assert not coordinator.is_suspended
        engine.process_queue.assert_called()

    def test_resume_without_suspend(
        self, engine: MagicMock, scheduler: BackgroundScheduler
    ) -> None:
        """Resume should do nothing when the timer is not suspended."""
        coordinator = SyncCoordinator(engine, scheduler=scheduler)
        coordinator.start()

        assert coordinator.resume() is None
        engine.process_queue.assert_not_called()

    def test_shutdown(self, engine: MagicMock, scheduler: BackgroundScheduler) -> None:
        """Shutdown should stop the scheduler."""
        coordinator = SyncCoordinator(engine, scheduler=scheduler)
        coordinator.start()

        coordinator.shutdown()

        assert not coordinator.is_running
        assert not scheduler.running

    def test_shutdown_before_start(self, engine: MagicMock) -> None:
        """Shutdown should be safe when never started."""
        coordinator = SyncCoordinator(engine)
        coordinator.shutdown()
        assert not coordinator.is_running


class TestImmediateSync:
    """Tests for trigger_immediate_sync()."""

    def test_runs_drain(self, engine: MagicMock) -> None:
        """An immediate sync should drain once."""
        coordinator = SyncCoordinator(engine)

        coordinator.trigger_immediate_sync().join(timeout=5)

        engine.process_queue.assert_called_once()

    def test_errors_are_logged(
        self, engine: MagicMock, caplog: pytest.LogCaptureFixture
    ) -> None:
        """An exception in the drain should be logged, not raised."""
        engine.process_queue.side_effect = RuntimeError("boom")
        coordinator = SyncCoordinator(engine)

        coordinator.trigger_immediate_sync().join(timeout=5)

        assert "Error during scheduled sync" in caplog.text

    def test_exposes_engine_state(self, engine: MagicMock) -> None:
        """Counts and syncing state should come from the engine."""
        coordinator = SyncCoordinator(engine)

        assert coordinator.pending_count == 2
        assert coordinator.failed_count == 1
        assert coordinator.is_syncing is False

        engine.is_syncing = True
        assert coordinator.is_syncing is True
