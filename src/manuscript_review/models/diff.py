"""Pydantic models for diff spans, changes and results."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SpanKind(str, Enum):
    UNCHANGED = "unchanged"
    INSERTION = "insertion"
    DELETION = "deletion"


class ChangeType(str, Enum):
    INSERTION = "insertion"
    DELETION = "deletion"


class DiffSpan(BaseModel):
    """A contiguous run of text with the same diff classification."""

    kind: SpanKind
    text: str
    sources: list[str] = []  # suggestion texts this span is attributed to


class DiffChange(BaseModel):
    """One attributable change that the user can accept or reject."""

    id: str
    type: ChangeType
    content: str
    suggestion_source: list[str] = []
    accepted: bool | None = None  # None = pending


class DiffResult(BaseModel):
    """Before/after comparison for a revision of one subject."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    subject_id: str
    original_content: str
    revised_content: str
    applied_suggestions: list[str] = []
    generated_at: datetime = Field(default_factory=datetime.now)
    changes: list[DiffChange] = []
    insertions: list[DiffSpan] = []
    deletions: list[DiffSpan] = []

    def get_change(self, change_id: str) -> DiffChange | None:
        for change in self.changes:
            if change.id == change_id:
                return change
        return None

    def accept_change(self, change_id: str) -> bool:
        change = self.get_change(change_id)
        if change is None:
            return False
        change.accepted = True
        return True

    def reject_change(self, change_id: str) -> bool:
        change = self.get_change(change_id)
        if change is None:
            return False
        change.accepted = False
        return True

    def accept_all(self) -> None:
        for change in self.changes:
            change.accepted = True

    def reject_all(self) -> None:
        for change in self.changes:
            change.accepted = False

    @property
    def pending_count(self) -> int:
        return sum(1 for c in self.changes if c.accepted is None)
