"""Publishing workflow: the producer side of the sync queue.

This module provides:
- PublishError, NotAuthenticatedError, ValidationError: Errors raised
  synchronously before anything is queued
- ContentValidator: Title, description and tag constraints for publishing
- generate_public_id: URL-friendly public identifier from a title
- VisibilityService: Turns publish/unpublish actions into queued operations

Once an operation is queued its eventual failure only shows up as the
item's sync status (``failed``); retry_sync() is the retry affordance.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from typing import TYPE_CHECKING

from pydantic import ValidationError as PayloadValidationError

from fleetsync.client.payloads import ContentPublishPayload
from fleetsync.client.sync.retry import failed_on_conflict
from fleetsync.core.types import ContentSyncStatus, ContentVisibility, SyncOperationKind

if TYPE_CHECKING:
    from fleetsync.client.auth import AuthProvider
    from fleetsync.client.repository import LibraryItem, LibraryRepository
    from fleetsync.client.sync.engine import SyncQueueEngine

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
MAX_TAGS = 10
PUBLIC_ID_BASE_LENGTH = 50

_SLUG_INVALID = re.compile(r"[^a-z0-9-]")


class PublishError(Exception):
    """Base exception for publishing errors."""


class NotAuthenticatedError(PublishError):
    """Publishing requires a signed-in user."""

    def __init__(self) -> None:
        super().__init__("Sign in to publish content")


class ValidationError(PublishError):
    """Content does not meet the publishing requirements."""


class ContentValidator:
    """Validates content before it may be published."""

    def validate(self, item: LibraryItem) -> None:
        """Check title, description and tags.

        Raises:
            ValidationError: On the first violated constraint.
        """
        self._validate_title(item.title)
        self._validate_description(item.description)
        self._validate_tags(item.tags)

    def _validate_title(self, title: str) -> None:
        trimmed = title.strip()
        if not trimmed:
            raise ValidationError("Title cannot be empty")
        if len(trimmed) < TITLE_MIN_LENGTH:
            raise ValidationError(f"Title must be at least {TITLE_MIN_LENGTH} characters")
        if len(trimmed) > TITLE_MAX_LENGTH:
            raise ValidationError(f"Title must be {TITLE_MAX_LENGTH} characters or less")

    def _validate_description(self, description: str | None) -> None:
        if not description:
            raise ValidationError("Description is required for publishing")
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationError(
                f"Description must be {DESCRIPTION_MAX_LENGTH} characters or less"
            )

    def _validate_tags(self, tags: list[str]) -> None:
        if len(tags) > MAX_TAGS:
            raise ValidationError(f"Maximum {MAX_TAGS} tags allowed")


def generate_public_id(title: str) -> str:
    """Generate a URL-friendly public identifier from a title.

    The title is lowercased, spaces become hyphens and everything outside
    ``[a-z0-9-]`` is dropped. The first 50 characters (or ``content`` if
    nothing is left) get a random 8 character suffix.

    Example:
        >>> generate_public_id("Pre-Departure Checkin")  # doctest: +SKIP
        'pre-departure-checkin-ab12cd34'
    """
    slug = _SLUG_INVALID.sub("", title.strip().lower().replace(" ", "-"))
    base = slug[:PUBLIC_ID_BASE_LENGTH] if slug else "content"
    return f"{base}-{uuid.uuid4().hex[:8]}"


def encode_content_for_sync(item: LibraryItem) -> ContentPublishPayload:
    """Snapshot a library item as a publish payload.

    Raises:
        ValidationError: If the item has no public id or its body does
            not match its content type.
    """
    if item.public_id is None:
        raise ValidationError("Missing public ID")
    try:
        return ContentPublishPayload(
            title=item.title.strip(),
            description=item.description,
            content_type=item.content_type,
            content_data={**item.content, "content_type": item.content_type.value},
            tags=item.tags,
            language=item.language,
            public_id=item.public_id,
            forked_from_id=item.forked_from_id,
        )
    except PayloadValidationError as e:
        raise ValidationError(f"Invalid {item.content_type.value} content: {e}") from e


class VisibilityService:
    """Validates and records visibility changes, then queues the sync.

    Usage:
        service = VisibilityService(library, auth, engine)
        service.publish_content(item)    # raises on invalid content
        service.unpublish_content(item)
    """

    def __init__(
        self,
        library: LibraryRepository,
        auth: AuthProvider,
        engine: SyncQueueEngine,
        validator: ContentValidator | None = None,
    ) -> None:
        self._library = library
        self._auth = auth
        self._engine = engine
        self._validator = validator or ContentValidator()
        logger.debug("VisibilityService initialized")

    def can_toggle_visibility(self) -> bool:
        """Check if the user may change visibility at all."""
        return self._auth.is_authenticated

    def _ensure_authenticated(self) -> None:
        if not self._auth.is_authenticated:
            logger.warning("Visibility change attempted without authentication")
            raise NotAuthenticatedError()

    def publish_content(self, item: LibraryItem) -> int:
        """Make content public.

        The item is marked public locally with a fresh public id, then a
        publish operation carrying its snapshot is queued.

        Returns:
            The queued operation id.

        Raises:
            NotAuthenticatedError: If no user is signed in.
            ValidationError: If the content cannot be published.
            StoreError: If the local state could not be saved.
        """
        logger.info("Publishing content: %s", item.id)
        self._ensure_authenticated()
        payload = self._prepare_publish(item)
        return self._engine.enqueue_publish(item.id, ContentVisibility.PUBLIC, payload)

    def _prepare_publish(self, item: LibraryItem) -> ContentPublishPayload:
        """Validate, assign a fresh public id and save the item as public."""
        self._validator.validate(item)

        item.public_id = generate_public_id(item.title)
        payload = encode_content_for_sync(item)

        item.visibility = ContentVisibility.PUBLIC
        item.published_at = time.time()
        item.sync_status = ContentSyncStatus.PENDING
        item.updated_at = time.time()
        self._library.update_metadata(item)
        return payload

    def unpublish_content(self, item: LibraryItem) -> int | None:
        """Make published content private again.

        The public id is captured before the local item forgets it.
        Content without a public id has nothing to remove remotely, so it
        is only reverted locally.

        Returns:
            The queued operation id, or None if nothing was queued.

        Raises:
            NotAuthenticatedError: If no user is signed in.
        """
        self._ensure_authenticated()
        public_id = item.public_id

        item.visibility = ContentVisibility.PRIVATE
        item.public_id = None
        item.published_at = None
        item.public_metadata = None
        item.updated_at = time.time()

        if public_id is None:
            logger.info("Content %s was never published, nothing to unpublish", item.id)
            self._library.update_metadata(item)
            return None

        logger.info("Unpublishing content: %s", item.id)
        item.sync_status = ContentSyncStatus.PENDING
        self._library.update_metadata(item)
        return self._engine.enqueue_unpublish(item.id, public_id)

    def publish_update(self, item: LibraryItem) -> int:
        """Push local edits of published content.

        Raises:
            NotAuthenticatedError: If no user is signed in.
            ValidationError: If the item is not published or invalid.
        """
        self._ensure_authenticated()
        if not item.is_published:
            raise ValidationError("Only published content can be updated")
        self._validator.validate(item)

        payload = encode_content_for_sync(item)
        item.sync_status = ContentSyncStatus.PENDING
        item.updated_at = time.time()
        self._library.update_metadata(item)

        logger.info("Queueing update of published content: %s", item.id)
        return self._engine.enqueue_publish_update(item.id, payload)

    def make_unlisted(self, item: LibraryItem) -> None:
        """Change visibility to unlisted. Local only, nothing is queued.

        Raises:
            NotAuthenticatedError: If no user is signed in.
        """
        self._ensure_authenticated()
        item.visibility = ContentVisibility.UNLISTED
        item.updated_at = time.time()
        self._library.update_metadata(item)
        logger.info("Content %s is now unlisted", item.id)

    def retry_sync(self, content_id: str) -> int | None:
        """Queue the failed operation of an item again.

        The stored snapshot is replayed, except for a publish rejected with
        a 409: its public id is taken, so the item gets a new public id and
        a new snapshot.

        Returns:
            The new operation id, or None if the item has no failed
            operation.

        Raises:
            NotAuthenticatedError: If a new public id is needed and no user
                is signed in.
            ValidationError: If a new snapshot is needed and the content
                can no longer be published.
        """
        logger.info("Retrying sync for item: %s", content_id)
        failed = self._engine.latest_failed(content_id)
        if failed is None or not (
            failed.kind == SyncOperationKind.PUBLISH and failed_on_conflict(failed)
        ):
            return self._engine.requeue_failed(content_id)

        item = self._library.fetch_item(content_id)
        if item is None:
            logger.warning("Cannot retry publish of %s: item no longer exists", content_id)
            return None
        self._ensure_authenticated()
        payload = self._prepare_publish(item)
        logger.info("Public id of %s was taken, retrying as %s", content_id, item.public_id)
        return self._engine.requeue_failed(content_id, replacement=payload)
