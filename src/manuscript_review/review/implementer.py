"""Apply approved suggestions to a chapter and diff the result."""

from __future__ import annotations

import logging

from manuscript_review.clients.generation import GenerationRequest, GenerationService
from manuscript_review.models.critique import PrioritizedSuggestion
from manuscript_review.models.diff import DiffResult
from manuscript_review.models.passage import LockedPassage
from manuscript_review.review.diff_engine import DiffStrategy, build_diff, locate_ranges
from manuscript_review.review.segmenter import revise_segments

logger = logging.getLogger(__name__)


def locked_texts(content: str, passages: list[LockedPassage]) -> list[str]:
    return [p.text_in(content) for p in passages if p.text_in(content)]


def relocate_passages(
    original: str,
    revised: str,
    passages: list[LockedPassage],
) -> list[LockedPassage | None]:
    """Each passage moved to its own text in ``revised``; None where that text changed.

    Passages are followed through the token alignment of the two texts, so
    a locked phrase that also occurs elsewhere keeps its own occurrence.
    """
    ranges = [(min(p.start, len(original)), min(p.end, len(original))) for p in passages]
    found = locate_ranges(original, revised, [r for r in ranges if r[0] < r[1]])
    moved: list[LockedPassage | None] = []
    positions = iter(found)
    for passage, (start, end) in zip(passages, ranges):
        if start == end:
            position: int | None = min(start, len(revised))
        else:
            position = next(positions)
        moved.append(
            None
            if position is None
            else LockedPassage(start=position, end=position + end - start, reason=passage.reason)
        )
    return moved


def preserves_locked(original: str, revised: str, passages: list[LockedPassage]) -> bool:
    """True when every locked passage of ``original`` survives in place in ``revised``."""
    return all(p is not None for p in relocate_passages(original, revised, passages))


class SuggestionImplementer:
    """Revises chapter text with approved suggestions, honouring locked passages."""

    def __init__(
        self,
        service: GenerationService | None = None,
        strategy: DiffStrategy = DiffStrategy.HEURISTIC,
    ):
        self.service = service
        self.strategy = strategy

    def implement(
        self,
        subject_id: str,
        content: str,
        approved: list[PrioritizedSuggestion],
        passages: list[LockedPassage],
    ) -> DiffResult:
        """Rule-based revision of the unlocked segments."""
        revision = revise_segments(content, passages, approved)
        return build_diff(subject_id, content, revision.content, revision.applied, self.strategy)

    async def implement_with_service(
        self,
        subject_id: str,
        content: str,
        approved: list[PrioritizedSuggestion],
        passages: list[LockedPassage],
    ) -> DiffResult:
        """Ask the generation service for a rewrite.

        A rewrite that changes any locked passage is discarded in favour of
        the rule-based revision. Generation failures propagate.
        """
        if self.service is None:
            return self.implement(subject_id, content, approved, passages)

        request = GenerationRequest(
            agent_target="review",
            action="implement-suggestions",
            context={
                "chapter_content": content,
                "approved_suggestions": [
                    {
                        "dimension": s.dimension_name,
                        "suggestion": s.suggestion,
                        "target_passage": s.target_passage,
                    }
                    for s in approved
                ],
                "locked_passages": locked_texts(content, passages),
            },
        )
        revised = (await self.service.generate(request)).strip()
        if not revised or not preserves_locked(content, revised, passages):
            logger.warning(
                "Rewrite for %s altered a locked passage or was empty; using rule-based revision",
                subject_id,
            )
            return self.implement(subject_id, content, approved, passages)

        return build_diff(
            subject_id, content, revised, [s.suggestion for s in approved], self.strategy
        )
