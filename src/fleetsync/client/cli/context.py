"""Object graph shared by the CLI commands.

This module provides:
- SyncContext: Database, repositories, HTTP client and sync services
- open_context: Build a SyncContext from the CLI configuration
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import click

from fleetsync.client.api import HTTPClient
from fleetsync.client.auth import StaticAuth
from fleetsync.client.cli import config
from fleetsync.client.database import LocalDatabase
from fleetsync.client.repository import CharterRepository, LibraryRepository
from fleetsync.client.store import OperationStore
from fleetsync.client.sync import (
    CharterSyncService,
    SyncCoordinator,
    SyncQueueEngine,
    VisibilityService,
)

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything a command needs to read the library and sync it."""

    db: LocalDatabase
    client: HTTPClient
    library: LibraryRepository
    charter_repository: CharterRepository
    store: OperationStore
    engine: SyncQueueEngine
    charters: CharterSyncService
    visibility: VisibilityService
    coordinator: SyncCoordinator

    def close(self) -> None:
        self.coordinator.shutdown()
        self.client.close()
        self.db.close()


@contextmanager
def open_context() -> Iterator[SyncContext]:
    """Open the local database and connect the sync services.

    Exits with an error message if the user has not logged in.
    """
    server_config = config.get_server_config()
    if server_config is None:
        click.echo("Error: Not logged in. Run 'fleetsync login' first.", err=True)
        sys.exit(1)

    settings = config.load_config()
    sync_config = config.get_sync_config()
    db_path = config.get_database_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    db = LocalDatabase(db_path)
    client = HTTPClient(server_config)
    library = LibraryRepository(db)
    charter_repository = CharterRepository(db)
    store = OperationStore(db)

    # The CLI drains explicitly so results can be printed
    engine = SyncQueueEngine(
        store,
        library,
        client,
        config=sync_config,
        network_check=client.health_check if settings.get("check_health") else None,
        auto_drain=False,
    )
    charters = CharterSyncService(charter_repository, client)
    auth = StaticAuth(token=server_config.token, user=settings.get("username"))
    context = SyncContext(
        db=db,
        client=client,
        library=library,
        charter_repository=charter_repository,
        store=store,
        engine=engine,
        charters=charters,
        visibility=VisibilityService(library, auth, engine),
        coordinator=SyncCoordinator(engine, charters, config=sync_config),
    )
    logger.debug("Opened local database %s for %s", db_path, server_config.api_url)
    try:
        yield context
    finally:
        context.close()
