"""Persisted operation log for the sync queue.

This module provides:
- OperationStore: SQLite-backed table of pending and completed operations

Operations are never deleted. Their lifecycle is recorded in timestamp
columns instead:
- synced_at: the remote call succeeded
- failed_at: retries exhausted or a terminal error
- cancelled_at: logically cancelled, excluded from fetch_pending()

Each method is a single statement (or a single transaction), so a crash
leaves every row in a consistent state.
"""

from __future__ import annotations

import logging
import time

from fleetsync.client.database import LocalDatabase, StoreError
from fleetsync.client.sync.types import QueueCounts, SyncOperation
from fleetsync.core.types import ContentVisibility, SyncOperationKind

logger = logging.getLogger(__name__)

_PENDING = "synced_at IS NULL AND failed_at IS NULL AND cancelled_at IS NULL"

__all__ = ["OperationStore", "StoreError"]


class OperationStore:
    """Sync queue table operations used by the sync engine."""

    def __init__(self, db: LocalDatabase) -> None:
        """Initialize the store.

        Args:
            db: Shared local database.
        """
        self._db = db

    def enqueue(
        self,
        content_id: str,
        kind: SyncOperationKind,
        visibility: ContentVisibility,
        payload: str | None,
    ) -> int:
        """Append an operation to the queue.

        The store only appends. Superseding older operations for the same
        content is the engine's job.

        Returns:
            The new operation id.
        """
        cursor = self._db.execute(
            """
            INSERT INTO sync_queue
            (content_id, operation, visibility_state, payload, created_at, retry_count)
            VALUES (?, ?, ?, ?, ?, 0)
            """,
            (content_id, kind.value, visibility.value, payload, time.time()),
        )
        operation_id = int(cursor.lastrowid or 0)
        logger.debug("Enqueued %s #%d for %s", kind.value, operation_id, content_id)
        return operation_id

    def get(self, operation_id: int) -> SyncOperation | None:
        """Get an operation by id."""
        row = self._db.fetchone("SELECT * FROM sync_queue WHERE id = ?", (operation_id,))
        return SyncOperation.from_row(row) if row else None

    def fetch_pending(self, max_retries: int) -> list[SyncOperation]:
        """Get operations still waiting for execution, oldest first.

        Args:
            max_retries: Operations with this many attempts are excluded.

        Returns:
            Pending operations in FIFO order.
        """
        rows = self._db.fetchall(
            f"""
            SELECT * FROM sync_queue
            WHERE {_PENDING} AND retry_count < ?
            ORDER BY created_at ASC, id ASC
            """,
            (max_retries,),
        )
        return [SyncOperation.from_row(row) for row in rows]

    def mark_completed(self, operation_id: int) -> None:
        """Mark an operation as successfully synced."""
        self._db.execute(
            "UPDATE sync_queue SET synced_at = ? WHERE id = ?",
            (time.time(), operation_id),
        )

    def mark_failed(self, operation_id: int, error: str) -> None:
        """Mark an operation as terminally failed."""
        self._db.execute(
            "UPDATE sync_queue SET failed_at = ?, last_error = ? WHERE id = ?",
            (time.time(), error, operation_id),
        )

    def increment_retry(self, operation_id: int, error: str) -> int:
        """Record a failed attempt.

        Returns:
            The new retry count.
        """
        with self._db.transaction():
            self._db.execute(
                """
                UPDATE sync_queue
                SET retry_count = retry_count + 1, last_error = ?
                WHERE id = ?
                """,
                (error, operation_id),
            )
            row = self._db.fetchone(
                "SELECT retry_count FROM sync_queue WHERE id = ?", (operation_id,)
            )
        return int(row["retry_count"]) if row else 0

    def cancel_pending(self, content_id: str, kind: SyncOperationKind) -> list[int]:
        """Cancel pending operations of one kind for a content item.

        Returns:
            Ids of the cancelled operations.
        """
        with self._db.transaction():
            rows = self._db.fetchall(
                f"SELECT id FROM sync_queue WHERE {_PENDING} AND content_id = ? AND operation = ?",
                (content_id, kind.value),
            )
            ids = [row["id"] for row in rows]
            self._cancel(ids)
        if ids:
            logger.debug("Cancelled %d pending %s for %s", len(ids), kind.value, content_id)
        return ids

    def cancel_duplicates(self, content_id: str, excluding: int) -> list[int]:
        """Cancel pending operations made redundant by a completed one.

        Only operations of the same kind as ``excluding`` are cancelled,
        so a later unpublish survives a completed publish.

        Returns:
            Ids of the cancelled operations.
        """
        with self._db.transaction():
            rows = self._db.fetchall(
                f"""
                SELECT id FROM sync_queue
                WHERE {_PENDING} AND content_id = ? AND id != ?
                AND operation = (SELECT operation FROM sync_queue WHERE id = ?)
                """,
                (content_id, excluding, excluding),
            )
            ids = [row["id"] for row in rows]
            self._cancel(ids)
        if ids:
            logger.debug("Cancelled %d duplicate operations for %s", len(ids), content_id)
        return ids

    def cancel_superseded(self, content_id: str, completed: int) -> list[int]:
        """Cancel pending operations of any kind enqueued before a completed one.

        The completed operation reflects a newer user action, so older
        operations for the same content must not run after it.

        Returns:
            Ids of the cancelled operations.
        """
        with self._db.transaction():
            rows = self._db.fetchall(
                """
                SELECT q.id FROM sync_queue AS q, sync_queue AS done
                WHERE done.id = ? AND q.content_id = ? AND q.id != done.id
                AND q.synced_at IS NULL AND q.failed_at IS NULL AND q.cancelled_at IS NULL
                AND (q.created_at < done.created_at
                     OR (q.created_at = done.created_at AND q.id < done.id))
                """,
                (completed, content_id),
            )
            ids = [row["id"] for row in rows]
            self._cancel(ids)
        if ids:
            logger.debug("Cancelled %d superseded operations for %s", len(ids), content_id)
        return ids

    def cancel_operation(self, operation_id: int) -> None:
        """Cancel a single operation, e.g. a failed one replaced by a retry."""
        self._cancel([operation_id])

    def _cancel(self, ids: list[int]) -> None:
        if not ids:
            return
        placeholders = ", ".join("?" for _ in ids)
        self._db.execute(
            f"UPDATE sync_queue SET cancelled_at = ? WHERE id IN ({placeholders})",
            (time.time(), *ids),
        )

    def counts_by_status(self, max_retries: int) -> QueueCounts:
        """Get pending and failed totals for status badges."""
        row = self._db.fetchone(
            f"""
            SELECT
                SUM(CASE WHEN {_PENDING} AND retry_count < ? THEN 1 ELSE 0 END) AS pending,
                SUM(CASE WHEN synced_at IS NULL AND cancelled_at IS NULL
                    AND (failed_at IS NOT NULL OR retry_count >= ?) THEN 1 ELSE 0 END) AS failed
            FROM sync_queue
            """,
            (max_retries, max_retries),
        )
        if row is None:
            return QueueCounts()
        return QueueCounts(pending=row["pending"] or 0, failed=row["failed"] or 0)

    def has_successful_operation(self, content_id: str, kind: SyncOperationKind) -> bool:
        """Check if an operation of this kind ever completed for the content."""
        row = self._db.fetchone(
            """
            SELECT 1 FROM sync_queue
            WHERE content_id = ? AND operation = ? AND synced_at IS NOT NULL
            LIMIT 1
            """,
            (content_id, kind.value),
        )
        return row is not None

    def latest_for_content(self, content_id: str) -> SyncOperation | None:
        """Get the most recently enqueued operation for a content item."""
        row = self._db.fetchone(
            "SELECT * FROM sync_queue WHERE content_id = ? ORDER BY created_at DESC, id DESC LIMIT 1",
            (content_id,),
        )
        return SyncOperation.from_row(row) if row else None

    def list_operations(self, content_id: str | None = None) -> list[SyncOperation]:
        """List operations in enqueue order, optionally for one content item."""
        if content_id is None:
            rows = self._db.fetchall("SELECT * FROM sync_queue ORDER BY created_at, id")
        else:
            rows = self._db.fetchall(
                "SELECT * FROM sync_queue WHERE content_id = ? ORDER BY created_at, id",
                (content_id,),
            )
        return [SyncOperation.from_row(row) for row in rows]
