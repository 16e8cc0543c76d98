"""Handlers executing queued sync operations against the remote API.

This module provides:
- ContentAPI: Protocol for the remote calls the handlers need
- OperationHandlers: One handler per operation kind

Handlers decode the payload snapshot stored with the operation, never the
live library item, so a retry replays exactly what was enqueued. A handler
returns normally on success and raises on failure; the engine decides what
a failure means. Once the remote call succeeded, a failing local write is
logged instead of raised so the call is not replayed.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

from pydantic import ValidationError

from fleetsync.client.api import NotFoundError
from fleetsync.client.database import StoreError
from fleetsync.client.payloads import ContentPublishPayload, UnpublishPayload
from fleetsync.client.repository import PublicMetadata
from fleetsync.client.sync.types import InvalidPayloadError, SyncOperation
from fleetsync.core.types import (
    ContentSyncStatus,
    ContentVisibility,
    SyncOperationKind,
)

if TYPE_CHECKING:
    from fleetsync.client.api import PublishResponse, UpdateResponse
    from fleetsync.client.repository import LibraryRepository
    from fleetsync.client.store import OperationStore

logger = logging.getLogger(__name__)


class ContentAPI(Protocol):
    """Protocol for the content endpoints of the remote API."""

    def publish_content(
        self,
        *,
        title: str,
        description: str | None,
        content_type: str,
        content_data: dict[str, Any],
        tags: list[str],
        language: str,
        public_id: str,
        can_fork: bool = True,
        forked_from_id: str | None = None,
    ) -> PublishResponse: ...

    def unpublish_content(self, public_id: str) -> None: ...

    def update_published_content(
        self,
        public_id: str,
        *,
        title: str,
        description: str | None,
        content_type: str,
        content_data: dict[str, Any],
        tags: list[str],
        language: str,
    ) -> UpdateResponse: ...


def _decode_publish_payload(operation: SyncOperation) -> ContentPublishPayload:
    if operation.payload is None:
        raise InvalidPayloadError(f"{operation!r} has no payload")
    try:
        return ContentPublishPayload.from_json(operation.payload)
    except ValidationError as e:
        logger.error("Failed to decode publish payload of %r: %s", operation, e)
        raise InvalidPayloadError(str(e)) from e


def _decode_unpublish_payload(operation: SyncOperation) -> UnpublishPayload:
    if operation.payload is None:
        raise InvalidPayloadError(f"{operation!r} has no payload")
    try:
        return UnpublishPayload.from_json(operation.payload)
    except ValidationError as e:
        logger.error("Failed to decode unpublish payload of %r: %s", operation, e)
        raise InvalidPayloadError(str(e)) from e


class OperationHandlers:
    """Executes sync operations, one method per operation kind."""

    def __init__(
        self,
        api: ContentAPI,
        store: OperationStore,
        library: LibraryRepository,
    ) -> None:
        self._api = api
        self._store = store
        self._library = library

    def execute(self, operation: SyncOperation) -> None:
        """Dispatch an operation to the handler for its kind."""
        if operation.kind == SyncOperationKind.PUBLISH:
            self.handle_publish(operation)
        elif operation.kind == SyncOperationKind.UNPUBLISH:
            self.handle_unpublish(operation)
        elif operation.kind == SyncOperationKind.PUBLISH_UPDATE:
            self.handle_publish_update(operation)
        else:
            raise InvalidPayloadError(f"Unknown operation kind: {operation.kind}")

    def handle_publish(self, operation: SyncOperation) -> None:
        """Publish content and attach the server's public metadata."""
        payload = _decode_publish_payload(operation)

        response = self._api.publish_content(
            title=payload.title,
            description=payload.description,
            content_type=payload.content_type.value,
            content_data=payload.content_dict(),
            tags=payload.tags,
            language=payload.language,
            public_id=payload.public_id,
            can_fork=payload.can_fork,
            forked_from_id=payload.forked_from_id,
        )

        try:
            self._attach_public_metadata(operation, response)
        except StoreError:
            logger.exception(
                "Published %s but failed to save its public metadata", operation.content_id
            )
        logger.info("Published %s as %s", operation.content_id, response.public_id)

    def _attach_public_metadata(
        self, operation: SyncOperation, response: PublishResponse
    ) -> None:
        item = self._library.fetch_item(operation.content_id)
        if item is None:
            logger.warning("Published %s but it no longer exists locally", operation.content_id)
            return

        published_at = response.published_at.timestamp()
        item.public_metadata = PublicMetadata(
            published_at=published_at,
            public_id=response.public_id,
            can_fork=response.can_fork,
            author_username=response.author_username or "Unknown",
        )
        item.public_id = response.public_id
        item.published_at = published_at
        item.visibility = operation.visibility
        item.sync_status = ContentSyncStatus.SYNCED
        self._library.update_metadata(item)

    def handle_unpublish(self, operation: SyncOperation) -> None:
        """Remove published content and revert the local item to private.

        Content with no successful publish on record that does not look
        published locally is skipped without a remote call.
        """
        payload = _decode_unpublish_payload(operation)

        was_published = self._store.has_successful_operation(
            operation.content_id, SyncOperationKind.PUBLISH
        )
        item = self._library.fetch_item(operation.content_id)
        appears_published = item is not None and item.is_published
        logger.debug(
            "Unpublish %s: publish on record=%s, appears published=%s",
            operation.content_id,
            was_published,
            appears_published,
        )

        if not (was_published or appears_published):
            logger.warning(
                "Skipping unpublish for %s: never published", operation.content_id
            )
        else:
            try:
                self._api.unpublish_content(payload.public_id)
            except NotFoundError:
                logger.info(
                    "Content %s not found during unpublish, treating as done",
                    payload.public_id,
                )

        if item is None:
            logger.warning("Unpublished %s but it no longer exists locally", operation.content_id)
            return

        item.visibility = ContentVisibility.PRIVATE
        item.public_id = None
        item.published_at = None
        item.public_metadata = None
        item.sync_status = ContentSyncStatus.SYNCED
        try:
            self._library.update_metadata(item)
        except StoreError:
            logger.exception("Unpublished %s but failed to save it as private", item.id)

    def handle_publish_update(self, operation: SyncOperation) -> None:
        """Push edits of published content under its existing public id."""
        payload = _decode_publish_payload(operation)

        response = self._api.update_published_content(
            payload.public_id,
            title=payload.title,
            description=payload.description,
            content_type=payload.content_type.value,
            content_data=payload.content_dict(),
            tags=payload.tags,
            language=payload.language,
        )

        try:
            item = self._library.fetch_item(operation.content_id)
            if item is not None:
                item.updated_at = (
                    response.updated_at.timestamp() if response.updated_at else time.time()
                )
                item.sync_status = ContentSyncStatus.SYNCED
                self._library.update_metadata(item)
        except StoreError:
            logger.exception("Updated %s but failed to save it locally", operation.content_id)
        logger.info("Updated published content %s", payload.public_id)
