"""Sync queue engine reconciling local content with the remote backend.

This module provides:
- SyncQueueEngine: Enqueues operations and drains the persisted queue

Drain algorithm:
    1. Skip if a drain is already running or the network is unreachable
    2. Fetch pending operations, oldest first
    3. For each operation, sequentially:
       - set the content status to SYNCING
       - run the handler for the operation kind
       - success: mark completed, status SYNCED, cancel same-kind duplicates
         and any older pending operation of the same content
       - retryable failure with attempts left: count the attempt, status PENDING
       - otherwise: mark failed, status FAILED, and for a publish cancel the
         pending unpublish operations of the same content
    4. Refresh pending/failed counts and return the summary

Failures of individual operations and of the local store never escape
process_queue(); they end up in the summary, the content status and the log.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from fleetsync.client.database import StoreError
from fleetsync.client.payloads import ContentPublishPayload, UnpublishPayload
from fleetsync.client.sync.handlers import OperationHandlers
from fleetsync.client.sync.retry import describe_error, is_retryable
from fleetsync.client.sync.types import (
    QueueCounts,
    QueueStatus,
    StatusCallback,
    SyncOperation,
    SyncSummary,
)
from fleetsync.core.config import SyncConfig
from fleetsync.core.types import (
    ContentSyncStatus,
    ContentVisibility,
    SyncOperationKind,
)

if TYPE_CHECKING:
    from fleetsync.client.repository import LibraryRepository
    from fleetsync.client.store import OperationStore
    from fleetsync.client.sync.handlers import ContentAPI

logger = logging.getLogger(__name__)


class SyncQueueEngine:
    """Owns the sync queue: enqueue, drain, retry and cancellation.

    Usage:
        engine = SyncQueueEngine(store, library, api)
        engine.enqueue_publish(item.id, ContentVisibility.PUBLIC, payload)
        # a drain starts in the background; later drains come from
        # SyncCoordinator or process_queue()
    """

    def __init__(
        self,
        store: OperationStore,
        library: LibraryRepository,
        api: ContentAPI,
        config: SyncConfig | None = None,
        network_check: Callable[[], bool] | None = None,
        auto_drain: bool = True,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Persisted operation log.
            library: Library content repository.
            api: Remote content API.
            config: Retry settings (defaults to SyncConfig()).
            network_check: Reachability check; assumes reachable if None.
            auto_drain: Start a background drain after each enqueue.
        """
        self._store = store
        self._library = library
        self._config = config or SyncConfig()
        self._network_check = network_check
        self._auto_drain = auto_drain
        self._handlers = OperationHandlers(api, store, library)

        self._drain_lock = threading.Lock()
        self._is_syncing = False
        self._counts = QueueCounts()
        self._drain_thread: threading.Thread | None = None
        self._observers: list[StatusCallback] = []

        logger.info("Sync queue engine initialized (max_retries=%d)", self.max_retries)

    # === Observable state ===

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    @property
    def pending_count(self) -> int:
        return self._counts.pending

    @property
    def failed_count(self) -> int:
        return self._counts.failed

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def status(self) -> QueueStatus:
        """Get a snapshot of the queue state."""
        return QueueStatus(
            pending_count=self._counts.pending,
            failed_count=self._counts.failed,
            is_syncing=self._is_syncing,
        )

    def add_observer(self, callback: StatusCallback) -> None:
        """Register a callback invoked whenever the queue state changes."""
        self._observers.append(callback)

    def _notify(self) -> None:
        status = self.status
        for callback in list(self._observers):
            try:
                callback(status)
            except Exception:
                logger.exception("Queue status observer failed")

    # === Enqueue ===

    def enqueue_publish(
        self,
        content_id: str,
        visibility: ContentVisibility,
        payload: ContentPublishPayload,
    ) -> int:
        """Queue a publish of content.

        Returns:
            The operation id.

        Raises:
            StoreError: If the operation could not be persisted.
        """
        logger.info("Enqueuing publish operation for content: %s", content_id)
        return self._enqueue(
            content_id, SyncOperationKind.PUBLISH, visibility, payload.to_json()
        )

    def enqueue_unpublish(self, content_id: str, public_id: str) -> int:
        """Queue removal of published content.

        The payload only carries the public id, captured before the local
        item forgets it.
        """
        logger.info("Enqueuing unpublish operation for content: %s", content_id)
        payload = UnpublishPayload(public_id=public_id)
        return self._enqueue(
            content_id,
            SyncOperationKind.UNPUBLISH,
            ContentVisibility.PRIVATE,
            payload.to_json(),
        )

    def enqueue_publish_update(
        self,
        content_id: str,
        payload: ContentPublishPayload,
    ) -> int:
        """Queue an update of already published content."""
        logger.info("Enqueuing publish_update operation for content: %s", content_id)
        return self._enqueue(
            content_id,
            SyncOperationKind.PUBLISH_UPDATE,
            ContentVisibility.PUBLIC,
            payload.to_json(),
        )

    def latest_failed(self, content_id: str) -> SyncOperation | None:
        """Get the latest operation of a content item if it failed."""
        latest = self._store.latest_for_content(content_id)
        if latest is None or not self._is_failed(latest):
            return None
        return latest

    def requeue_failed(
        self,
        content_id: str,
        replacement: ContentPublishPayload | None = None,
    ) -> int | None:
        """Queue the failed operation of a content item again.

        The new operation replays the stored snapshot, or ``replacement``
        when given, with a fresh retry budget. The failed operation is
        cancelled so it no longer counts as failed.

        Returns:
            The new operation id, or None if the latest operation for the
            content did not fail.
        """
        failed = self.latest_failed(content_id)
        if failed is None:
            logger.debug("Nothing to retry for %s", content_id)
            return None

        payload = replacement.to_json() if replacement is not None else failed.payload
        logger.info("Retrying %r", failed)
        self._store.cancel_operation(failed.id)
        return self._enqueue(content_id, failed.kind, failed.visibility, payload)

    def _is_failed(self, operation: SyncOperation) -> bool:
        if operation.synced_at is not None or operation.cancelled_at is not None:
            return False
        return operation.failed_at is not None or operation.retry_count >= self.max_retries

    def _enqueue(
        self,
        content_id: str,
        kind: SyncOperationKind,
        visibility: ContentVisibility,
        payload: str | None,
    ) -> int:
        operation_id = self._store.enqueue(content_id, kind, visibility, payload)
        self._set_content_status(content_id, ContentSyncStatus.QUEUED)
        self.refresh_counts()
        self.trigger_drain()
        return operation_id

    def trigger_drain(self) -> threading.Thread | None:
        """Start a drain in a background thread.

        Returns:
            The drain thread, or None when auto drain is disabled.
        """
        if not self._auto_drain:
            return None
        thread = threading.Thread(
            target=self.process_queue,
            name="SyncQueueDrain",
            daemon=True,
        )
        self._drain_thread = thread
        thread.start()
        return thread

    def wait_for_drain(self, timeout: float | None = None) -> None:
        """Wait for the last background drain to finish."""
        thread = self._drain_thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)

    # === Drain ===

    def process_queue(self) -> SyncSummary:
        """Drain the queue once.

        A concurrent call returns an empty summary immediately.

        Returns:
            Counts of attempted, succeeded and failed operations.
        """
        if not self._drain_lock.acquire(blocking=False):
            logger.debug("Sync already in progress, skipping")
            return SyncSummary()

        try:
            self._set_syncing(True)
            return self._drain()
        finally:
            self._set_syncing(False)
            self._drain_lock.release()

    def _drain(self) -> SyncSummary:
        summary = SyncSummary()

        if not self._is_network_reachable():
            logger.warning("Network unreachable, skipping sync")
            self.refresh_counts()
            return summary

        try:
            operations = self._store.fetch_pending(self.max_retries)
        except StoreError:
            logger.exception("Failed to fetch pending sync operations")
            self.refresh_counts()
            return summary

        logger.debug("Fetched %d pending sync operations", len(operations))
        if not operations:
            self.refresh_counts()
            return summary

        logger.info("Processing %d sync operations", len(operations))
        cancelled: set[int] = set()
        for operation in operations:
            if operation.id in cancelled:
                logger.debug("Skipping cancelled %r", operation)
                continue
            self._process_operation(operation, summary, cancelled)

        self.refresh_counts()
        logger.info(
            "Sync complete: %d succeeded, %d failed", summary.succeeded, summary.failed
        )
        return summary

    def _process_operation(
        self,
        operation: SyncOperation,
        summary: SyncSummary,
        cancelled: set[int],
    ) -> None:
        summary.attempted += 1
        self._set_content_status(operation.content_id, ContentSyncStatus.SYNCING)

        try:
            self._handlers.execute(operation)
        except Exception as e:
            summary.failed += 1
            self._handle_failure(operation, e, cancelled)
            return

        summary.succeeded += 1
        try:
            self._store.mark_completed(operation.id)
        except StoreError:
            logger.exception("Failed to mark %r completed", operation)
        self._set_content_status(operation.content_id, ContentSyncStatus.SYNCED)

        try:
            cancelled.update(
                self._store.cancel_duplicates(operation.content_id, excluding=operation.id)
            )
            cancelled.update(
                self._store.cancel_superseded(operation.content_id, completed=operation.id)
            )
        except StoreError:
            logger.exception("Failed to cancel duplicates of %r", operation)

        logger.info("Sync succeeded for content: %s", operation.content_id)

    def _handle_failure(
        self,
        operation: SyncOperation,
        error: Exception,
        cancelled: set[int],
    ) -> None:
        error_text = describe_error(error)
        logger.error("Sync failed for content: %s, error: %s", operation.content_id, error_text)

        if is_retryable(error, operation.kind) and operation.retry_count < self.max_retries:
            try:
                retry_count = self._store.increment_retry(operation.id, error_text)
            except StoreError:
                logger.exception("Failed to record attempt of %r", operation)
                self._set_content_status(operation.content_id, ContentSyncStatus.PENDING)
                return

            if retry_count < self.max_retries:
                self._set_content_status(operation.content_id, ContentSyncStatus.PENDING)
                return
            logger.warning(
                "Giving up on %r after %d attempts", operation, retry_count
            )

        try:
            self._store.mark_failed(operation.id, error_text)
        except StoreError:
            logger.exception("Failed to mark %r failed", operation)
        self._set_content_status(operation.content_id, ContentSyncStatus.FAILED)

        # Nothing to unpublish if the publish never went through
        if operation.kind == SyncOperationKind.PUBLISH:
            cancelled.update(self._cancel_pending_unpublish(operation.content_id))

    def _cancel_pending_unpublish(self, content_id: str) -> list[int]:
        try:
            ids = self._store.cancel_pending(content_id, SyncOperationKind.UNPUBLISH)
        except StoreError:
            logger.exception("Failed to cancel pending unpublish operations for %s", content_id)
            return []
        if ids:
            logger.info("Cancelled pending unpublish operations for content: %s", content_id)
        return ids

    # === Helpers ===

    def _is_network_reachable(self) -> bool:
        if self._network_check is None:
            return True
        try:
            return bool(self._network_check())
        except Exception:
            logger.exception("Network check failed")
            return False

    def _set_syncing(self, value: bool) -> None:
        self._is_syncing = value
        self._notify()

    def _set_content_status(self, content_id: str, status: ContentSyncStatus) -> None:
        try:
            found = self._library.update_sync_status(content_id, status)
        except StoreError:
            logger.exception("Failed to set sync status of %s", content_id)
            return
        if found:
            logger.debug("Updated sync state for content %s to %s", content_id, status.value)
        else:
            logger.debug("No library item %s to mark %s", content_id, status.value)

    def refresh_counts(self) -> QueueCounts:
        """Recompute pending and failed totals from the store.

        The last known totals are kept when the store cannot be read.
        """
        try:
            self._counts = self._store.counts_by_status(self.max_retries)
        except StoreError:
            logger.exception("Failed to get sync queue counts, keeping last known")
        self._notify()
        return self._counts
