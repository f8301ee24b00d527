"""Data models for the review engine."""

from manuscript_review.models.critique import (
    CritiqueResult,
    Harshness,
    Impact,
    PrioritizedSuggestion,
    SuggestionStatus,
)
from manuscript_review.models.diff import (
    ChangeType,
    DiffChange,
    DiffResult,
    DiffSpan,
    SpanKind,
)
from manuscript_review.models.dimension import DimensionScore, QualityDimension
from manuscript_review.models.passage import ImprovementHistoryEntry, LockedPassage

__all__ = [
    "ChangeType",
    "CritiqueResult",
    "DiffChange",
    "DiffResult",
    "DiffSpan",
    "DimensionScore",
    "Harshness",
    "Impact",
    "ImprovementHistoryEntry",
    "LockedPassage",
    "PrioritizedSuggestion",
    "QualityDimension",
    "SpanKind",
    "SuggestionStatus",
]
