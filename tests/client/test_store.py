"""Tests for the persisted operation store."""

from __future__ import annotations

from pathlib import Path

import pytest

from fleetsync.client.database import LocalDatabase, StoreError
from fleetsync.client.store import OperationStore
from fleetsync.core.types import ContentVisibility, SyncOperationKind

PUBLISH = SyncOperationKind.PUBLISH
UNPUBLISH = SyncOperationKind.UNPUBLISH
PUBLIC = ContentVisibility.PUBLIC
PRIVATE = ContentVisibility.PRIVATE


class TestLocalDatabase:
    """Tests for the shared SQLite database."""

    def test_creates_schema(self, tmp_path: Path) -> None:
        """Opening should create the database file and tables."""
        db_path = tmp_path / "nested" / "library.db"
        with LocalDatabase(db_path) as db:
            rows = db.fetchall("SELECT name FROM sqlite_master WHERE type = 'table'")
        names = {row["name"] for row in rows}
        assert db_path.exists()
        assert {"sync_queue", "library_items", "charters"} <= names

    def test_in_memory(self) -> None:
        """Should accept an in-memory database."""
        with LocalDatabase(":memory:") as db:
            assert db.fetchone("SELECT COUNT(*) AS n FROM sync_queue")["n"] == 0

    def test_sqlite_error_wrapped(self, db: LocalDatabase) -> None:
        """SQLite failures should surface as StoreError."""
        with pytest.raises(StoreError):
            db.execute("SELECT * FROM missing_table")

    def test_transaction_rolls_back(self, db: LocalDatabase, store: OperationStore) -> None:
        """A failing transaction should leave no partial writes."""
        with pytest.raises(StoreError), db.transaction():
            store.enqueue("c1", PUBLISH, PUBLIC, "{}")
            db.execute("INSERT INTO missing_table VALUES (1)")

        assert store.list_operations() == []


class TestEnqueueAndFetch:
    """Tests for enqueue and fetch_pending."""

    def test_enqueue_returns_increasing_ids(self, store: OperationStore) -> None:
        """Ids should be assigned monotonically."""
        first = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        second = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        assert second > first

    def test_enqueue_defaults(self, store: OperationStore) -> None:
        """A new operation should be pending with no attempts."""
        op_id = store.enqueue("c1", PUBLISH, PUBLIC, '{"a": 1}')

        op = store.get(op_id)
        assert op is not None
        assert op.content_id == "c1"
        assert op.payload == '{"a": 1}'
        assert op.retry_count == 0
        assert op.is_pending

    def test_fetch_pending_fifo(self, store: OperationStore) -> None:
        """Pending operations should come back oldest first."""
        ids = [store.enqueue(f"c{n}", PUBLISH, PUBLIC, "{}") for n in range(3)]

        assert [op.id for op in store.fetch_pending(3)] == ids

    def test_fetch_pending_excludes_finished(self, store: OperationStore) -> None:
        """Synced, failed and cancelled operations should be excluded."""
        synced = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        failed = store.enqueue("c2", PUBLISH, PUBLIC, "{}")
        cancelled = store.enqueue("c3", UNPUBLISH, PRIVATE, "{}")
        pending = store.enqueue("c4", PUBLISH, PUBLIC, "{}")

        store.mark_completed(synced)
        store.mark_failed(failed, "ConflictError (409)")
        store.cancel_pending("c3", UNPUBLISH)

        assert [op.id for op in store.fetch_pending(3)] == [pending]
        assert store.get(cancelled).cancelled_at is not None  # type: ignore[union-attr]

    def test_fetch_pending_respects_retry_bound(self, store: OperationStore) -> None:
        """Operations at the retry bound should be excluded."""
        op_id = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        for _ in range(3):
            store.increment_retry(op_id, "NetworkError: offline")

        assert store.fetch_pending(3) == []
        assert len(store.fetch_pending(4)) == 1


class TestRetryAndFailure:
    """Tests for increment_retry and mark_failed."""

    def test_increment_retry_returns_count(self, store: OperationStore) -> None:
        """Each failed attempt should increment the counter."""
        op_id = store.enqueue("c1", PUBLISH, PUBLIC, "{}")

        assert store.increment_retry(op_id, "first") == 1
        assert store.increment_retry(op_id, "second") == 2
        op = store.get(op_id)
        assert op is not None and op.last_error == "second"

    def test_mark_failed_records_error(self, store: OperationStore) -> None:
        """A terminal failure should keep its error text."""
        op_id = store.enqueue("c1", PUBLISH, PUBLIC, "{}")

        store.mark_failed(op_id, "AuthenticationError (401)")

        op = store.get(op_id)
        assert op is not None
        assert op.failed_at is not None
        assert op.last_error == "AuthenticationError (401)"


class TestCancellation:
    """Tests for the cancel methods."""

    def test_cancel_pending_by_kind(self, store: OperationStore) -> None:
        """Only pending operations of the given kind should be cancelled."""
        publish = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        unpublish = store.enqueue("c1", UNPUBLISH, PRIVATE, "{}")
        other = store.enqueue("c2", UNPUBLISH, PRIVATE, "{}")

        assert store.cancel_pending("c1", UNPUBLISH) == [unpublish]
        assert [op.id for op in store.fetch_pending(3)] == [publish, other]

    def test_cancel_duplicates_same_kind_only(self, store: OperationStore) -> None:
        """Completed publish should cancel other publishes, not unpublish."""
        first = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        duplicate = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        unpublish = store.enqueue("c1", UNPUBLISH, PRIVATE, "{}")
        store.mark_completed(first)

        assert store.cancel_duplicates("c1", excluding=first) == [duplicate]
        assert [op.id for op in store.fetch_pending(3)] == [unpublish]

    def test_cancel_nothing(self, store: OperationStore) -> None:
        """Cancelling with no matches should return an empty list."""
        assert store.cancel_pending("c1", UNPUBLISH) == []

    def test_cancel_superseded_any_kind(self, store: OperationStore) -> None:
        """A completed unpublish should cancel an older publish, not a newer one."""
        publish = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        unpublish = store.enqueue("c1", UNPUBLISH, PRIVATE, "{}")
        republish = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        other = store.enqueue("c2", PUBLISH, PUBLIC, "{}")
        store.mark_completed(unpublish)

        assert store.cancel_superseded("c1", completed=unpublish) == [publish]
        assert [op.id for op in store.fetch_pending(3)] == [republish, other]

    def test_cancel_operation(self, store: OperationStore) -> None:
        """A cancelled failed operation should no longer count as failed."""
        op_id = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        store.mark_failed(op_id, "409")
        assert store.counts_by_status(3).failed == 1

        store.cancel_operation(op_id)

        cancelled = store.get(op_id)
        assert cancelled is not None and cancelled.cancelled_at is not None
        assert store.counts_by_status(3).failed == 0


class TestQueries:
    """Tests for counts and history queries."""

    def test_counts_by_status(self, store: OperationStore) -> None:
        """Counts should split pending from failed."""
        store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        exhausted = store.enqueue("c2", PUBLISH, PUBLIC, "{}")
        terminal = store.enqueue("c3", PUBLISH, PUBLIC, "{}")
        done = store.enqueue("c4", PUBLISH, PUBLIC, "{}")
        for _ in range(3):
            store.increment_retry(exhausted, "offline")
        store.mark_failed(terminal, "409")
        store.mark_completed(done)

        counts = store.counts_by_status(3)

        assert counts.pending == 1
        assert counts.failed == 2

    def test_counts_empty(self, store: OperationStore) -> None:
        """An empty queue should have zero counts."""
        counts = store.counts_by_status(3)
        assert (counts.pending, counts.failed) == (0, 0)

    def test_has_successful_operation(self, store: OperationStore) -> None:
        """Only completed operations of the given kind should count."""
        op_id = store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        assert store.has_successful_operation("c1", PUBLISH) is False

        store.mark_completed(op_id)

        assert store.has_successful_operation("c1", PUBLISH) is True
        assert store.has_successful_operation("c1", UNPUBLISH) is False
        assert store.has_successful_operation("c2", PUBLISH) is False

    def test_latest_for_content(self, store: OperationStore) -> None:
        """The most recent operation should be returned."""
        store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        latest = store.enqueue("c1", UNPUBLISH, PRIVATE, "{}")

        op = store.latest_for_content("c1")
        assert op is not None and op.id == latest
        assert store.latest_for_content("c2") is None

    def test_list_operations_filter(self, store: OperationStore) -> None:
        """Listing should optionally filter by content."""
        store.enqueue("c1", PUBLISH, PUBLIC, "{}")
        store.enqueue("c2", PUBLISH, PUBLIC, "{}")

        assert len(store.list_operations()) == 2
        assert [op.content_id for op in store.list_operations("c2")] == ["c2"]
