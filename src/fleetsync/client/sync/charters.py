"""Charter synchronization with the backend.

This module provides:
- CharterAPI: Protocol for the charter endpoints
- CharterSyncService: Push local charter edits, pull the user's charters

Charters are not queued. A charter with local edits carries
``needs_sync`` until a push succeeds, so the flag itself is the retry
state. Private charters never leave the device.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Protocol

from fleetsync.client.api import CharterRequest
from fleetsync.client.database import StoreError
from fleetsync.client.repository import Charter
from fleetsync.client.sync.types import SyncSummary
from fleetsync.core.types import CharterVisibility

if TYPE_CHECKING:
    from fleetsync.client.api import RemoteCharter
    from fleetsync.client.repository import CharterRepository

logger = logging.getLogger(__name__)


class CharterAPI(Protocol):
    """Protocol for the charter endpoints of the remote API."""

    def create_charter(self, request: CharterRequest) -> RemoteCharter: ...

    def update_charter(self, charter_id: str, request: CharterRequest) -> RemoteCharter: ...

    def fetch_my_charters(self) -> list[RemoteCharter]: ...


def _to_request(charter: Charter) -> CharterRequest:
    return CharterRequest(
        name=charter.name,
        start_date=charter.start_date,
        end_date=charter.end_date,
        visibility=charter.visibility.value,
        boat_name=charter.boat_name,
        location_text=charter.location,
    )


class CharterSyncService:
    """Synchronizes local charters with the backend.

    Usage:
        service = CharterSyncService(charter_repository, http_client)
        service.push_pending_charters()
        service.pull_my_charters()
    """

    def __init__(self, repository: CharterRepository, api: CharterAPI) -> None:
        self._repository = repository
        self._api = api
        self._lock = threading.Lock()
        self._is_syncing = False
        self.last_sync_at: float | None = None
        self.last_error: Exception | None = None

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    def push_pending_charters(self) -> SyncSummary:
        """Push charters with local edits that are not private.

        A charter without a server id is created, otherwise updated. A
        failed push keeps ``needs_sync`` set and is tried again next time.

        Returns:
            Counts of attempted, succeeded and failed pushes. Empty when a
            push is already running.
        """
        summary = SyncSummary()
        if not self._lock.acquire(blocking=False):
            logger.debug("Charter sync already in progress, skipping")
            return summary

        try:
            try:
                pending = self._repository.fetch_pending_sync()
            except StoreError as e:
                logger.exception("Failed to fetch pending charters")
                self.last_error = e
                return summary

            to_sync = [c for c in pending if c.visibility != CharterVisibility.PRIVATE]
            if not to_sync:
                return summary

            logger.info("Pushing %d pending charter(s) to server", len(to_sync))
            self._is_syncing = True
            for charter in to_sync:
                summary.attempted += 1
                if self._push(charter):
                    summary.succeeded += 1
                else:
                    summary.failed += 1
            self.last_sync_at = time.time()
            return summary
        finally:
            self._is_syncing = False
            self._lock.release()

    def _push(self, charter: Charter) -> bool:
        request = _to_request(charter)
        try:
            if charter.server_id:
                remote = self._api.update_charter(charter.server_id, request)
                logger.info("Updated charter on server: %s", charter.id)
            else:
                remote = self._api.create_charter(request)
                logger.info("Created charter on server: %s -> %s", charter.id, remote.id)
            self._repository.mark_synced(charter.id, remote.id, charter.updated_at)
        except Exception as e:
            logger.error("Failed to push charter %s: %s", charter.id, e)
            self.last_error = e
            return False
        return True

    def pull_my_charters(self) -> int:
        """Merge the user's remote charters into the local store.

        Charters with unpushed local edits are left alone.

        Returns:
            Number of local charters created or updated.
        """
        logger.info("Pulling user charters from server")
        try:
            remote_charters = self._api.fetch_my_charters()
        except Exception as e:
            logger.error("Failed to pull charters from server: %s", e)
            self.last_error = e
            return 0

        merged = 0
        for remote in remote_charters:
            try:
                if self._merge(remote):
                    merged += 1
            except (StoreError, ValueError) as e:
                logger.exception("Failed to save remote charter %s", remote.id)
                self.last_error = e

        self.last_sync_at = time.time()
        logger.info("Pulled %d charter(s) from server", len(remote_charters))
        return merged

    def _merge(self, remote: RemoteCharter) -> bool:
        local = self._repository.fetch_by_server_id(remote.id)
        if local is not None and local.needs_sync:
            logger.debug("Keeping local edits of charter %s", local.id)
            return False

        charter = local or Charter(
            name=remote.name,
            start_date=remote.start_date,
            end_date=remote.end_date,
            server_id=remote.id,
        )
        charter.name = remote.name
        charter.start_date = remote.start_date
        charter.end_date = remote.end_date
        charter.boat_name = remote.boat_name
        charter.location = remote.location_text
        charter.visibility = CharterVisibility(remote.visibility)
        charter.needs_sync = False
        charter.updated_at = time.time()
        self._repository.save_charter(charter)
        return True

    def sync_all(self) -> SyncSummary:
        """Push pending charters, then pull the latest ones."""
        summary = self.push_pending_charters()
        self.pull_my_charters()
        return summary
