"""Tests for pydantic data models."""

from datetime import datetime

import pytest
from pydantic import ValidationError

from manuscript_review.models import (
    ChangeType,
    CritiqueResult,
    DiffChange,
    DiffResult,
    DimensionScore,
    Impact,
    ImprovementHistoryEntry,
    LockedPassage,
    PrioritizedSuggestion,
    QualityDimension,
    SuggestionStatus,
)


def _suggestion(sid: str, status: SuggestionStatus = SuggestionStatus.PENDING) -> PrioritizedSuggestion:
    return PrioritizedSuggestion(
        id=sid,
        dimension_id="pacing",
        dimension_name="Pacing",
        suggestion="Trim the middle",
        impact=Impact.MEDIUM,
        impact_score=0.3,
        reason="Pacing matters",
        status=status,
    )


class TestDimensionModels:
    def test_dimension_is_frozen(self):
        dim = QualityDimension(id="pacing", name="Pacing", weight=10)
        with pytest.raises(ValidationError):
            dim.weight = 20

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            DimensionScore(dimension_id="pacing", score=0.5)
        with pytest.raises(ValidationError):
            DimensionScore(dimension_id="pacing", score=10.5)

    def test_score_defaults(self):
        score = DimensionScore(dimension_id="pacing", score=7.5)
        assert score.feedback == ""
        assert score.suggestions == []


class TestCritiqueResult:
    def test_pending_suggestions(self):
        critique = CritiqueResult(
            subject_id="ch-1",
            overall_score=7.0,
            dimensions=[DimensionScore(dimension_id="pacing", score=7.0)],
            prioritized_suggestions=[
                _suggestion("s1"),
                _suggestion("s2", SuggestionStatus.APPROVED),
                _suggestion("s3", SuggestionStatus.REJECTED),
            ],
        )
        assert [s.id for s in critique.pending_suggestions] == ["s1"]

    def test_score_for(self):
        critique = CritiqueResult(
            subject_id="ch-1",
            overall_score=7.0,
            dimensions=[DimensionScore(dimension_id="pacing", score=6.5)],
        )
        assert critique.score_for("pacing").score == 6.5
        assert critique.score_for("originality") is None

    def test_generated_at_auto(self):
        before = datetime.now()
        critique = CritiqueResult(subject_id="ch-1", overall_score=7.0, dimensions=[])
        assert before <= critique.generated_at <= datetime.now()


class TestDiffResult:
    @pytest.fixture
    def diff(self) -> DiffResult:
        return DiffResult(
            subject_id="ch-1",
            original_content="a",
            revised_content="a b c",
            changes=[
                DiffChange(id="change-1", type=ChangeType.INSERTION, content="b"),
                DiffChange(id="change-2", type=ChangeType.INSERTION, content="c"),
            ],
        )

    def test_changes_start_pending(self, diff: DiffResult):
        assert diff.pending_count == 2
        assert all(c.accepted is None for c in diff.changes)

    def test_accept_and_reject_single(self, diff: DiffResult):
        assert diff.accept_change("change-1") is True
        assert diff.reject_change("change-2") is True
        assert diff.get_change("change-1").accepted is True
        assert diff.get_change("change-2").accepted is False
        assert diff.pending_count == 0

    def test_unknown_change_is_noop(self, diff: DiffResult):
        assert diff.accept_change("change-99") is False
        assert diff.pending_count == 2

    def test_bulk_actions(self, diff: DiffResult):
        diff.accept_all()
        assert all(c.accepted is True for c in diff.changes)
        diff.reject_all()
        assert all(c.accepted is False for c in diff.changes)


class TestPassageModels:
    def test_text_in(self):
        passage = LockedPassage(start=4, end=9, reason="keep")
        assert passage.text_in("The quick fox") == "quick"

    def test_negative_offsets_rejected(self):
        with pytest.raises(ValidationError):
            LockedPassage(start=-1, end=3)

    def test_history_entry(self):
        entry = ImprovementHistoryEntry(iteration=0, score=6.0)
        assert entry.iteration == 0
        assert isinstance(entry.timestamp, datetime)
