"""Approval state of prioritized suggestions."""

from __future__ import annotations

import logging

from manuscript_review.models.critique import PrioritizedSuggestion, SuggestionStatus

logger = logging.getLogger(__name__)


class SuggestionBoard:
    """Tracks pending/approved/rejected state for one critique's suggestions.

    Suggestions are mutated in place. Only ``pending`` suggestions can be
    approved or rejected; text edits are allowed in any state. Unknown ids
    are ignored and reported as ``False``.
    """

    def __init__(self, suggestions: list[PrioritizedSuggestion] | None = None):
        self._suggestions: list[PrioritizedSuggestion] = list(suggestions or [])

    def __iter__(self):
        return iter(self._suggestions)

    def __len__(self) -> int:
        return len(self._suggestions)

    def get(self, suggestion_id: str) -> PrioritizedSuggestion | None:
        for suggestion in self._suggestions:
            if suggestion.id == suggestion_id:
                return suggestion
        return None

    def replace_all(self, suggestions: list[PrioritizedSuggestion]) -> None:
        """Swap in a fresh list after a re-critique."""
        self._suggestions = list(suggestions)

    def add(self, suggestion: PrioritizedSuggestion) -> None:
        self._suggestions.append(suggestion)

    def approve(self, suggestion_id: str) -> bool:
        return self._transition(suggestion_id, SuggestionStatus.APPROVED)

    def reject(self, suggestion_id: str) -> bool:
        return self._transition(suggestion_id, SuggestionStatus.REJECTED)

    def edit(self, suggestion_id: str, text: str) -> bool:
        suggestion = self.get(suggestion_id)
        if suggestion is None:
            return False
        suggestion.suggestion = text
        return True

    def _transition(self, suggestion_id: str, target: SuggestionStatus) -> bool:
        suggestion = self.get(suggestion_id)
        if suggestion is None:
            logger.debug("Ignoring %s for unknown suggestion %s", target.value, suggestion_id)
            return False
        if suggestion.status != SuggestionStatus.PENDING:
            logger.debug(
                "Suggestion %s is already %s", suggestion_id, suggestion.status.value
            )
            return False
        suggestion.status = target
        return True

    def with_status(self, status: SuggestionStatus) -> list[PrioritizedSuggestion]:
        return [s for s in self._suggestions if s.status == status]

    @property
    def approved(self) -> list[PrioritizedSuggestion]:
        return self.with_status(SuggestionStatus.APPROVED)

    @property
    def pending(self) -> list[PrioritizedSuggestion]:
        return self.with_status(SuggestionStatus.PENDING)

    @property
    def can_implement(self) -> bool:
        """The "implement approved" action needs at least one approval."""
        return bool(self.approved)

    def status_map(self) -> dict[str, str]:
        return {s.id: s.status.value for s in self._suggestions}
