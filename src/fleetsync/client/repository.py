"""Local repositories for library content and charters.

This module provides:
- PublicMetadata: Server-assigned data attached to published content
- LibraryItem, LibraryRepository: Library content and its sync status
- Charter, CharterRepository: Charters and their push state

The sync engine only touches content through fetch_item(),
update_metadata() and update_sync_status().
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from fleetsync.client.database import LocalDatabase
from fleetsync.core.types import (
    CharterVisibility,
    ContentSyncStatus,
    ContentType,
    ContentVisibility,
)

logger = logging.getLogger(__name__)


@dataclass
class PublicMetadata:
    """Public metadata returned by the server once content is published."""

    published_at: float
    public_id: str
    can_fork: bool
    author_username: str

    @classmethod
    def from_json(cls, data: str | None) -> PublicMetadata | None:
        if not data:
            return None
        return cls(**json.loads(data))

    def to_json(self) -> str:
        return json.dumps(asdict(self))


@dataclass
class LibraryItem:
    """A checklist, practice guide or flashcard deck in the local library.

    Attributes:
        id: Local content identifier.
        title: Display title.
        description: Description (required for publishing).
        content_type: Kind of content.
        content: Structured body as stored locally.
        tags: Free-form tags.
        language: Content language code.
        visibility: private, unlisted or public.
        sync_status: Projection of the latest sync outcome.
        public_id: Public identifier while published.
        published_at: Publication timestamp while published.
        public_metadata: Server-assigned metadata while published.
        forked_from_id: Public id this item was forked from.
        created_at: Creation timestamp.
        updated_at: Last modification timestamp.
    """

    title: str
    content_type: ContentType
    description: str | None = None
    content: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)
    language: str = "en"
    visibility: ContentVisibility = ContentVisibility.PRIVATE
    sync_status: ContentSyncStatus = ContentSyncStatus.LOCAL
    public_id: str | None = None
    published_at: float | None = None
    public_metadata: PublicMetadata | None = None
    forked_from_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def is_published(self) -> bool:
        """Check if the item currently looks published locally."""
        return self.visibility == ContentVisibility.PUBLIC and self.public_id is not None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> LibraryItem:
        """Create LibraryItem from database row."""
        return cls(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            content_type=ContentType(row["content_type"]),
            content=json.loads(row["content"]),
            tags=json.loads(row["tags"]),
            language=row["language"],
            visibility=ContentVisibility(row["visibility"]),
            sync_status=ContentSyncStatus(row["sync_status"]),
            public_id=row["public_id"],
            published_at=row["published_at"],
            public_metadata=PublicMetadata.from_json(row["public_metadata"]),
            forked_from_id=row["forked_from_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class LibraryRepository:
    """Library content persistence."""

    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    def save_item(self, item: LibraryItem) -> None:
        """Insert or replace a library item."""
        self._db.execute(
            """
            INSERT OR REPLACE INTO library_items (
                id, title, description, content_type, content, tags, language,
                visibility, sync_status, public_id, published_at, public_metadata,
                forked_from_id, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                item.id,
                item.title,
                item.description,
                item.content_type.value,
                json.dumps(item.content),
                json.dumps(item.tags),
                item.language,
                item.visibility.value,
                item.sync_status.value,
                item.public_id,
                item.published_at,
                item.public_metadata.to_json() if item.public_metadata else None,
                item.forked_from_id,
                item.created_at,
                item.updated_at,
            ),
        )

    # Metadata updates replace the whole row
    update_metadata = save_item

    def fetch_item(self, item_id: str) -> LibraryItem | None:
        """Get a library item by id."""
        row = self._db.fetchone("SELECT * FROM library_items WHERE id = ?", (item_id,))
        return LibraryItem.from_row(row) if row else None

    def list_items(self) -> list[LibraryItem]:
        """List all library items, most recently updated first."""
        rows = self._db.fetchall("SELECT * FROM library_items ORDER BY updated_at DESC")
        return [LibraryItem.from_row(row) for row in rows]

    def update_sync_status(self, item_id: str, status: ContentSyncStatus) -> bool:
        """Set the sync status of a library item.

        Returns:
            False if the item does not exist.
        """
        cursor = self._db.execute(
            "UPDATE library_items SET sync_status = ? WHERE id = ?",
            (status.value, item_id),
        )
        return cursor.rowcount > 0

    def delete_item(self, item_id: str) -> None:
        """Remove a library item."""
        self._db.execute("DELETE FROM library_items WHERE id = ?", (item_id,))


@dataclass
class Charter:
    """A sailing charter.

    Attributes:
        name: Charter name.
        start_date: First day.
        end_date: Last day.
        boat_name: Vessel name.
        location: Free-text location.
        visibility: private, community or public.
        server_id: Remote identifier once pushed.
        needs_sync: True while local edits are not on the server.
    """

    name: str
    start_date: date
    end_date: date
    boat_name: str | None = None
    location: str | None = None
    visibility: CharterVisibility = CharterVisibility.PRIVATE
    server_id: str | None = None
    needs_sync: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Charter:
        """Create Charter from database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            boat_name=row["boat_name"],
            location=row["location"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=date.fromisoformat(row["end_date"]),
            visibility=CharterVisibility(row["visibility"]),
            server_id=row["server_id"],
            needs_sync=bool(row["needs_sync"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class CharterRepository:
    """Charter persistence."""

    def __init__(self, db: LocalDatabase) -> None:
        self._db = db

    def save_charter(self, charter: Charter) -> None:
        """Insert or replace a charter."""
        self._db.execute(
            """
            INSERT OR REPLACE INTO charters (
                id, name, boat_name, location, start_date, end_date,
                visibility, server_id, needs_sync, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                charter.id,
                charter.name,
                charter.boat_name,
                charter.location,
                charter.start_date.isoformat(),
                charter.end_date.isoformat(),
                charter.visibility.value,
                charter.server_id,
                int(charter.needs_sync),
                charter.created_at,
                charter.updated_at,
            ),
        )

    def fetch_charter(self, charter_id: str) -> Charter | None:
        """Get a charter by local id."""
        row = self._db.fetchone("SELECT * FROM charters WHERE id = ?", (charter_id,))
        return Charter.from_row(row) if row else None

    def fetch_by_server_id(self, server_id: str) -> Charter | None:
        """Get a charter by its remote id."""
        row = self._db.fetchone("SELECT * FROM charters WHERE server_id = ?", (server_id,))
        return Charter.from_row(row) if row else None

    def fetch_pending_sync(self) -> list[Charter]:
        """List charters with local edits not yet pushed."""
        rows = self._db.fetchall(
            "SELECT * FROM charters WHERE needs_sync = 1 ORDER BY updated_at"
        )
        return [Charter.from_row(row) for row in rows]

    def list_charters(self) -> list[Charter]:
        """List all charters by start date."""
        rows = self._db.fetchall("SELECT * FROM charters ORDER BY start_date")
        return [Charter.from_row(row) for row in rows]

    def mark_synced(self, charter_id: str, server_id: str, pushed_at: float) -> None:
        """Record a successful push.

        The server id is always stored. needs_sync is only cleared while the
        row still has the ``updated_at`` of the pushed snapshot, so an edit
        saved during the push is pushed again.

        Args:
            charter_id: Local charter id.
            server_id: Id assigned by the server.
            pushed_at: ``updated_at`` of the snapshot that was pushed.
        """
        self._db.execute(
            """
            UPDATE charters
            SET server_id = ?,
                needs_sync = CASE WHEN updated_at = ? THEN 0 ELSE needs_sync END
            WHERE id = ?
            """,
            (server_id, pushed_at, charter_id),
        )
