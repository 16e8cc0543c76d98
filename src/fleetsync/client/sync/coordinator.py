"""Periodic sync scheduling with adaptive intervals.

This module provides:
- SyncCoordinator: Drains the sync queue on a timer

Interval policy:
    | Last drains                    | Interval          |
    |--------------------------------|-------------------|
    | any success or failure         | active (60s)      |
    | 3 consecutive with no work     | idle (300s)       |

Every timer tick drains the content queue, then pushes pending charters.
The timer is an APScheduler BackgroundScheduler job, rescheduled in place
when the interval changes.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from fleetsync.client.sync.types import SyncSummary
from fleetsync.core.config import SyncConfig

if TYPE_CHECKING:
    from apscheduler.schedulers.base import BaseScheduler

    from fleetsync.client.sync.charters import CharterSyncService
    from fleetsync.client.sync.engine import SyncQueueEngine

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "content_sync"


class SyncCoordinator:
    """Runs the sync queue drain periodically.

    Usage:
        coordinator = SyncCoordinator(engine, charter_sync)
        coordinator.start()
        coordinator.suspend()   # app goes to background
        coordinator.resume()    # app returns, drains immediately
        coordinator.shutdown()
    """

    def __init__(
        self,
        engine: SyncQueueEngine,
        charters: CharterSyncService | None = None,
        config: SyncConfig | None = None,
        scheduler: BaseScheduler | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            engine: Sync queue engine to drain.
            charters: Optional charter sync, pushed after each drain.
            config: Interval settings (defaults to SyncConfig()).
            scheduler: Scheduler to run the timer job on (a new
                BackgroundScheduler if None).
        """
        self._engine = engine
        self._charters = charters
        self._config = config or SyncConfig()
        self._scheduler = scheduler

        self._lock = threading.Lock()
        self._interval = self._config.active_interval
        self._consecutive_empty_syncs = 0
        self._suspended = False

    # === Observable state ===

    @property
    def current_interval(self) -> float:
        return self._interval

    @property
    def consecutive_empty_syncs(self) -> int:
        return self._consecutive_empty_syncs

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def is_suspended(self) -> bool:
        return self._suspended

    @property
    def is_syncing(self) -> bool:
        charters_syncing = self._charters is not None and self._charters.is_syncing
        return self._engine.is_syncing or charters_syncing

    @property
    def pending_count(self) -> int:
        return self._engine.pending_count

    @property
    def failed_count(self) -> int:
        return self._engine.failed_count

    # === Lifecycle ===

    def start(self) -> None:
        """Start the periodic timer."""
        if self.is_running:
            return

        if self._scheduler is None:
            self._scheduler = BackgroundScheduler()

        self._scheduler.add_job(
            self._sync_job,
            trigger=IntervalTrigger(seconds=self._interval),
            id=SYNC_JOB_ID,
            name="Sync queue drain",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        self._suspended = False
        logger.info("Sync coordinator started (interval: %.0fs)", self._interval)

    def suspend(self) -> None:
        """Pause the timer, e.g. while the app is in the background."""
        if self._scheduler is None or not self._scheduler.running or self._suspended:
            return
        self._scheduler.pause()
        self._suspended = True
        logger.info("Sync coordinator suspended")

    def resume(self) -> threading.Thread | None:
        """Restart the timer and drain immediately.

        Returns:
            The thread running the immediate drain, or None if the
            coordinator was not suspended.
        """
        if self._scheduler is None or not self._suspended:
            return None
        self._scheduler.resume()
        self._suspended = False
        logger.info("Sync coordinator resumed")
        return self.trigger_immediate_sync()

    def shutdown(self) -> None:
        """Stop the timer and release the scheduler."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Sync coordinator stopped")
        self._scheduler = None
        self._suspended = False

    # === Sync ===

    def trigger_immediate_sync(self) -> threading.Thread:
        """Run one drain outside the timer, in a background thread."""
        logger.debug("Immediate sync triggered")
        thread = threading.Thread(
            target=self._sync_job,
            name="SyncCoordinatorImmediate",
            daemon=True,
        )
        thread.start()
        return thread

    def _sync_job(self) -> None:
        """Job function for the scheduled drain."""
        try:
            self.perform_sync()
        except Exception:
            logger.exception("Error during scheduled sync")

    def perform_sync(self) -> SyncSummary:
        """Drain the content queue, push charters and adapt the interval.

        Returns:
            Combined summary of the content drain and the charter push.
        """
        summary = self._engine.process_queue()
        if self._charters is not None:
            summary = summary + self._charters.push_pending_charters()

        self._adapt_interval(summary)
        if not summary.is_empty:
            logger.info(
                "Sync cycle: %d succeeded, %d failed", summary.succeeded, summary.failed
            )
        return summary

    def _adapt_interval(self, summary: SyncSummary) -> None:
        with self._lock:
            if summary.is_empty:
                self._consecutive_empty_syncs += 1
                if (
                    self._consecutive_empty_syncs >= self._config.max_empty_syncs_before_idle
                    and self._interval != self._config.idle_interval
                ):
                    logger.info(
                        "No sync activity for %d cycles, switching to idle interval",
                        self._consecutive_empty_syncs,
                    )
                    self._set_interval(self._config.idle_interval)
            else:
                self._consecutive_empty_syncs = 0
                if self._interval != self._config.active_interval:
                    logger.info("Sync activity detected, switching to active interval")
                    self._set_interval(self._config.active_interval)

    def _set_interval(self, seconds: float) -> None:
        self._interval = seconds
        if self._scheduler is None or self._scheduler.get_job(SYNC_JOB_ID) is None:
            return
        self._scheduler.reschedule_job(SYNC_JOB_ID, trigger=IntervalTrigger(seconds=seconds))
        logger.debug("Sync interval set to %.0fs", seconds)
