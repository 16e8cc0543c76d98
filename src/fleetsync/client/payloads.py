"""Typed payload snapshots for queued sync operations.

This module provides:
- ChecklistContent, PracticeGuideContent, FlashcardDeckContent: structured
  content bodies, discriminated on ``content_type``
- ContentPublishPayload: snapshot captured when a publish or publish_update
  operation is enqueued
- UnpublishPayload: snapshot for an unpublish operation (public id only)

Payloads are stored as JSON text in the sync queue and decoded only by the
handler that executes the operation, so a retry always replays the snapshot
taken at enqueue time.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, model_validator

from fleetsync.core.types import ContentType

# === Content bodies ===


class ChecklistItem(BaseModel):
    """A single checkable line of a checklist."""

    title: str
    detail: str | None = None
    is_optional: bool = False


class ChecklistSection(BaseModel):
    """A titled group of checklist items."""

    title: str
    items: list[ChecklistItem] = Field(default_factory=list)


class ChecklistContent(BaseModel):
    """Structured body of a checklist."""

    content_type: Literal["checklist"] = "checklist"
    sections: list[ChecklistSection] = Field(default_factory=list)


class PracticeGuideContent(BaseModel):
    """Structured body of a practice guide (markdown text)."""

    content_type: Literal["practice_guide"] = "practice_guide"
    markdown: str = ""


class Flashcard(BaseModel):
    """One card of a flashcard deck."""

    front: str
    back: str


class FlashcardDeckContent(BaseModel):
    """Structured body of a flashcard deck."""

    content_type: Literal["flashcard_deck"] = "flashcard_deck"
    cards: list[Flashcard] = Field(default_factory=list)


ContentData = Annotated[
    Union[ChecklistContent, PracticeGuideContent, FlashcardDeckContent],
    Field(discriminator="content_type"),
]


# === Operation payloads ===


class ContentPublishPayload(BaseModel):
    """Snapshot of a library item needed to publish or update it remotely."""

    title: str
    description: str | None = None
    content_type: ContentType
    content_data: ContentData
    tags: list[str] = Field(default_factory=list)
    language: str = "en"
    public_id: str
    can_fork: bool = True
    forked_from_id: str | None = None

    @model_validator(mode="after")
    def _check_content_type(self) -> ContentPublishPayload:
        if self.content_data.content_type != self.content_type.value:
            raise ValueError(
                f"content_data is {self.content_data.content_type}, "
                f"expected {self.content_type.value}"
            )
        return self

    def content_dict(self) -> dict[str, Any]:
        """Get the structured body as a JSON-ready dictionary."""
        return self.content_data.model_dump(mode="json")

    def to_json(self) -> str:
        """Serialize for storage in the sync queue."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> ContentPublishPayload:
        """Decode a stored snapshot."""
        return cls.model_validate_json(data)


class UnpublishPayload(BaseModel):
    """Snapshot for an unpublish operation."""

    public_id: str

    def to_json(self) -> str:
        """Serialize for storage in the sync queue."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> UnpublishPayload:
        """Decode a stored snapshot."""
        return cls.model_validate_json(data)
