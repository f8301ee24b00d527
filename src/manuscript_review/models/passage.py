"""Pydantic models for locked passages and improvement history."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LockedPassage(BaseModel):
    """A character range [start, end) the user has protected from revision."""

    start: int = Field(ge=0)
    end: int = Field(ge=0)
    reason: str = ""

    def text_in(self, content: str) -> str:
        return content[self.start:self.end]


class ImprovementHistoryEntry(BaseModel):
    """Score after one auto-improve iteration. Iteration 0 is the baseline."""

    iteration: int
    score: float
    timestamp: datetime = Field(default_factory=datetime.now)
