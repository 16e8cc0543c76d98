"""Shared types and dataclasses for the sync queue.

This module provides:
- SyncError, InvalidPayloadError: Exception classes
- SyncOperation: One persisted unit of work
- QueueCounts: Pending/failed totals for status badges
- SyncSummary: Result of one queue drain
- QueueStatus: Snapshot of the observable queue state
- Type aliases for callbacks
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from dataclasses import dataclass

from fleetsync.core.types import ContentVisibility, SyncOperationKind


class SyncError(Exception):
    """Base exception for sync errors."""


class InvalidPayloadError(SyncError):
    """A queued operation carries no payload or one that cannot be decoded."""


@dataclass
class SyncOperation:
    """A queued sync operation.

    Attributes:
        id: Locally assigned monotonic identifier.
        content_id: Library item the operation belongs to.
        kind: publish, unpublish or publish_update.
        visibility: Visibility associated with the operation.
        payload: JSON snapshot captured at enqueue time.
        created_at: Enqueue timestamp (FIFO order).
        retry_count: Failed attempts so far.
        last_error: Description of the most recent failure.
        synced_at: Completion timestamp, None while pending.
        failed_at: Terminal failure timestamp.
        cancelled_at: Logical cancellation timestamp.
    """

    id: int
    content_id: str
    kind: SyncOperationKind
    visibility: ContentVisibility
    payload: str | None
    created_at: float
    retry_count: int = 0
    last_error: str | None = None
    synced_at: float | None = None
    failed_at: float | None = None
    cancelled_at: float | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> SyncOperation:
        """Create SyncOperation from database row."""
        return cls(
            id=row["id"],
            content_id=row["content_id"],
            kind=SyncOperationKind(row["operation"]),
            visibility=ContentVisibility(row["visibility_state"]),
            payload=row["payload"],
            created_at=row["created_at"],
            retry_count=row["retry_count"],
            last_error=row["last_error"],
            synced_at=row["synced_at"],
            failed_at=row["failed_at"],
            cancelled_at=row["cancelled_at"],
        )

    @property
    def is_pending(self) -> bool:
        """Check if the operation still waits for execution."""
        return (
            self.synced_at is None
            and self.failed_at is None
            and self.cancelled_at is None
        )

    def __repr__(self) -> str:
        """Human-readable representation."""
        return (
            f"SyncOperation(#{self.id}, {self.kind.value}, "
            f"content={self.content_id!r}, retries={self.retry_count})"
        )


@dataclass(frozen=True)
class QueueCounts:
    """Pending and failed operation totals."""

    pending: int = 0
    failed: int = 0


@dataclass
class SyncSummary:
    """Result of one drain cycle. Not persisted."""

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0

    @property
    def is_empty(self) -> bool:
        """Check if the drain did no work."""
        return self.succeeded == 0 and self.failed == 0

    def __add__(self, other: SyncSummary) -> SyncSummary:
        return SyncSummary(
            attempted=self.attempted + other.attempted,
            succeeded=self.succeeded + other.succeeded,
            failed=self.failed + other.failed,
        )


@dataclass(frozen=True)
class QueueStatus:
    """Observable queue state for UI collaborators."""

    pending_count: int
    failed_count: int
    is_syncing: bool


# Type alias for queue status observers
StatusCallback = Callable[[QueueStatus], None]
