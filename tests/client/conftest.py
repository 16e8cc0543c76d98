"""Shared fixtures for client tests."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from pathlib import Path

import pytest

from fleetsync.client.database import LocalDatabase
from fleetsync.client.repository import CharterRepository, LibraryItem, LibraryRepository
from fleetsync.client.store import OperationStore
from fleetsync.core.types import ContentType
from tests.client.fakes import CHECKLIST_BODY, FakeContentAPI


@pytest.fixture
def db(tmp_path: Path) -> Iterator[LocalDatabase]:
    """Create a temporary local database."""
    database = LocalDatabase(tmp_path / "library.db")
    yield database
    database.close()


@pytest.fixture
def store(db: LocalDatabase) -> OperationStore:
    """Create an operation store."""
    return OperationStore(db)


@pytest.fixture
def library(db: LocalDatabase) -> LibraryRepository:
    """Create a library repository."""
    return LibraryRepository(db)


@pytest.fixture
def charter_repository(db: LocalDatabase) -> CharterRepository:
    """Create a charter repository."""
    return CharterRepository(db)


@pytest.fixture
def api() -> FakeContentAPI:
    """Create a fake content API."""
    return FakeContentAPI()


@pytest.fixture
def checklist(library: LibraryRepository) -> LibraryItem:
    """Create and save the "Checklist A" library item."""
    item = LibraryItem(
        title="Pre-Departure Checkin",
        content_type=ContentType.CHECKLIST,
        description="Everything to check before casting off",
        content=copy.deepcopy(CHECKLIST_BODY),
        tags=["safety"],
    )
    library.save_item(item)
    return item
