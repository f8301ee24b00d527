"""Pydantic models for critique results and prioritized suggestions."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from manuscript_review.models.dimension import DimensionScore


class Harshness(str, Enum):
    """Feedback tone. Changes the wording of feedback, never the scores."""

    GENTLE_MENTOR = "gentle-mentor"
    BALANCED = "balanced"
    BRUTAL_HONESTY = "brutal-honesty"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PrioritizedSuggestion(BaseModel):
    """A ranked improvement suggestion tied to one quality dimension."""

    id: str
    dimension_id: str
    dimension_name: str
    suggestion: str
    impact: Impact
    impact_score: float
    reason: str
    status: SuggestionStatus = SuggestionStatus.PENDING
    target_passage: str | None = None


class CritiqueResult(BaseModel):
    """Aggregate output of one critique pass over a subject."""

    subject_id: str
    overall_score: float
    dimensions: list[DimensionScore]
    summary: str = ""
    strengths: list[str] = []
    areas_for_improvement: list[str] = []
    prioritized_suggestions: list[PrioritizedSuggestion] = []
    generated_at: datetime = Field(default_factory=datetime.now)
    harshness: Harshness = Harshness.BALANCED
    market_comparison: str = ""

    def score_for(self, dimension_id: str) -> DimensionScore | None:
        for score in self.dimensions:
            if score.dimension_id == dimension_id:
                return score
        return None

    @property
    def pending_suggestions(self) -> list[PrioritizedSuggestion]:
        return [
            s for s in self.prioritized_suggestions
            if s.status == SuggestionStatus.PENDING
        ]
