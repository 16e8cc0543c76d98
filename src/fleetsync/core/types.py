"""Shared types for fleetsync.

This module defines the enums shared by the local store, the sync engine
and the remote API adapter.
"""

from __future__ import annotations

from enum import Enum


class ContentType(str, Enum):
    """Kind of library content."""

    CHECKLIST = "checklist"
    PRACTICE_GUIDE = "practice_guide"
    FLASHCARD_DECK = "flashcard_deck"


class ContentVisibility(str, Enum):
    """Who can see a library item. Distinct from sync status."""

    PRIVATE = "private"
    UNLISTED = "unlisted"
    PUBLIC = "public"


class ContentSyncStatus(str, Enum):
    """Sync status projected onto each library item by the sync engine."""

    LOCAL = "local"  # Never synced
    QUEUED = "queued"
    SYNCING = "syncing"
    SYNCED = "synced"
    PENDING = "pending"  # Queued for retry
    FAILED = "failed"


class SyncOperationKind(str, Enum):
    """Kind of queued sync operation."""

    PUBLISH = "publish"
    UNPUBLISH = "unpublish"
    PUBLISH_UPDATE = "publish_update"


class CharterVisibility(str, Enum):
    """Visibility level for a charter, controlling who can discover it."""

    PRIVATE = "private"
    COMMUNITY = "community"
    PUBLIC = "public"
