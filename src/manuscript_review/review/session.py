"""Per-subject review session owning all mutable review state."""

from __future__ import annotations

import logging
from typing import Callable

from manuscript_review.clients.generation import GenerationService
from manuscript_review.config import ReviewConfig
from manuscript_review.errors import LoopAlreadyRunningError
from manuscript_review.models.critique import CritiqueResult, Harshness
from manuscript_review.models.diff import DiffResult
from manuscript_review.models.dimension import DimensionScore
from manuscript_review.models.passage import ImprovementHistoryEntry, LockedPassage
from manuscript_review.review.auto_improve import AutoImproveLoop, LoopOutcome, LoopState
from manuscript_review.review.critic import Critic
from manuscript_review.review.diff_engine import apply_decisions
from manuscript_review.review.implementer import SuggestionImplementer, relocate_passages
from manuscript_review.review.lifecycle import SuggestionBoard
from manuscript_review.review.locks import LockedPassageManager
from manuscript_review.storage.score_store import QualityScoreRecord, QualityScoreStore

logger = logging.getLogger(__name__)


class ReviewSession:
    """Critique, suggestions, locks, diff and auto-improve state for one subject.

    Not safe for concurrent writers; callers serialize mutations. Actions
    that reference an unknown suggestion, passage or change return False.
    """

    def __init__(
        self,
        subject_id: str,
        content: str,
        *,
        service: GenerationService | None = None,
        critic: Critic | None = None,
        implementer: SuggestionImplementer | None = None,
        config: ReviewConfig | None = None,
        store: QualityScoreStore | None = None,
        revision: int = 1,
    ):
        self.subject_id = subject_id
        self.content = content
        self.service = service
        self.critic = critic or Critic(service)
        self.implementer = implementer or SuggestionImplementer(service)
        self.config = config or ReviewConfig()
        self.store = store
        self.revision = revision

        self.critique: CritiqueResult | None = None
        self.suggestions = SuggestionBoard()
        self.locks = LockedPassageManager()
        self.diff: DiffResult | None = None
        self.loop: AutoImproveLoop | None = None

    # --- critique -------------------------------------------------------

    async def run_critique(self, harshness: Harshness | None = None) -> CritiqueResult:
        critique = await self.critic.critique(
            self.subject_id, self.content, harshness=harshness or self.config.harshness
        )
        self.set_critique(critique)
        return critique

    def score(self, scores: list[DimensionScore], harshness: Harshness | None = None) -> CritiqueResult:
        """Offline critique from supplied dimension scores."""
        critique = self.critic.from_scores(
            self.subject_id, scores, harshness=harshness or self.config.harshness
        )
        self.set_critique(critique)
        return critique

    def set_critique(self, critique: CritiqueResult) -> None:
        """Supersede the active critique and its suggestion list."""
        self.critique = critique
        self.suggestions.replace_all(critique.prioritized_suggestions)
        if self.store is not None:
            self.store.save_score(QualityScoreRecord.from_critique(critique, self.revision))

    async def more_suggestions(self, dimension_id: str) -> int:
        if self.critique is None:
            return 0
        extra = await self.critic.suggest_more(self.critique, dimension_id, self.content)
        for suggestion in extra:
            self.critique.prioritized_suggestions.append(suggestion)
            self.suggestions.add(suggestion)
        return len(extra)

    # --- suggestion lifecycle ---------------------------------------------

    def approve(self, suggestion_id: str) -> bool:
        return self.suggestions.approve(suggestion_id)

    def reject(self, suggestion_id: str) -> bool:
        return self.suggestions.reject(suggestion_id)

    def edit_suggestion(self, suggestion_id: str, text: str) -> bool:
        return self.suggestions.edit(suggestion_id, text)

    # --- locked passages --------------------------------------------------

    def lock(self, start: int, end: int, reason: str = "") -> LockedPassage:
        return self.locks.lock(start, end, reason)

    def unlock(self, index: int) -> bool:
        return self.locks.unlock(index)

    def _relocate_locks(self, old: str, new: str) -> None:
        """Follow passages into ``new``; drop those whose text changed."""
        passages = self.locks.passages
        kept: list[LockedPassage] = []
        for passage, moved in zip(passages, relocate_passages(old, new, passages)):
            if moved is None:
                logger.warning("Locked passage %d-%d no longer found; unlocking", passage.start, passage.end)
                continue
            kept.append(moved)
        self.locks = LockedPassageManager(kept)

    # --- revision and diff ------------------------------------------------

    async def implement_approved(self, *, use_service: bool = True) -> DiffResult | None:
        """Revise with the approved suggestions; None when nothing is approved."""
        if not self.suggestions.can_implement:
            return None
        approved = self.suggestions.approved
        passages = self.locks.passages
        if use_service and self.service is not None:
            diff = await self.implementer.implement_with_service(
                self.subject_id, self.content, approved, passages
            )
        else:
            diff = self.implementer.implement(self.subject_id, self.content, approved, passages)
        self.diff = diff
        logger.info("Diff for %s has %d change(s)", self.subject_id, len(diff.changes))
        return diff

    def accept_change(self, change_id: str) -> bool:
        return self.diff.accept_change(change_id) if self.diff else False

    def reject_change(self, change_id: str) -> bool:
        return self.diff.reject_change(change_id) if self.diff else False

    def accept_all(self) -> bool:
        if self.diff is None:
            return False
        self.diff.accept_all()
        return True

    def reject_all(self) -> bool:
        if self.diff is None:
            return False
        self.diff.reject_all()
        return True

    def apply_diff(self) -> str:
        """Commit the diff's accepted text as the new content."""
        if self.diff is None:
            return self.content
        self._adopt(apply_decisions(self.diff))
        self.diff = None
        return self.content

    def discard_diff(self) -> None:
        self.diff = None

    def _adopt(self, content: str) -> None:
        if content == self.content:
            return
        self._relocate_locks(self.content, content)
        self.content = content
        self.revision += 1

    # --- auto-improve -----------------------------------------------------

    @property
    def history(self) -> list[ImprovementHistoryEntry]:
        return list(self.loop.history) if self.loop else []

    async def start_auto_improve(
        self,
        *,
        threshold: float | None = None,
        max_iterations: int | None = None,
        on_progress: Callable[[str, str], None] | None = None,
    ) -> LoopOutcome:
        if self.loop is not None and self.loop.state == LoopState.RUNNING:
            raise LoopAlreadyRunningError(f"Auto-improve already running for {self.subject_id}")
        if self.service is None:
            raise RuntimeError("Auto-improve needs a generation service")
        if self.critique is None:
            await self.run_critique()

        self.loop = AutoImproveLoop(
            self.service,
            self.critic,
            threshold=self.config.quality_threshold if threshold is None else threshold,
            max_iterations=self.config.max_iterations if max_iterations is None else max_iterations,
            extension=self.config.iteration_extension,
            harshness=self.config.harshness,
            on_progress=on_progress,
        )
        outcome = await self.loop.start(
            self.subject_id, self.content, self.critique, self.locks.passages
        )
        self._sync_from_loop()
        return outcome

    async def continue_auto_improve(self) -> LoopOutcome | None:
        if self.loop is None:
            return None
        outcome = await self.loop.continue_run()
        self._sync_from_loop()
        return outcome

    def skip_to_final(self) -> LoopOutcome | None:
        if self.loop is None:
            return None
        outcome = self.loop.skip_to_final()
        self._sync_from_loop()
        return outcome

    def _sync_from_loop(self) -> None:
        if self.loop is None or self.loop.state == LoopState.RUNNING:
            return
        if self.loop.critique is not None and self.loop.critique is not self.critique:
            self._adopt(self.loop.content)
            self.set_critique(self.loop.critique)

    # --- persistence ------------------------------------------------------

    def save_state(self) -> None:
        if self.store is not None:
            self.store.save_state(self.subject_id, self.locks.passages, self.suggestions.status_map())

    def restore_state(self) -> None:
        """Reload stored passages and suggestion statuses; unknown ids are skipped."""
        if self.store is None:
            return
        passages, statuses = self.store.load_state(self.subject_id)
        self.locks = LockedPassageManager(passages)
        for suggestion_id, status in statuses.items():
            if status == "approved":
                self.suggestions.approve(suggestion_id)
            elif status == "rejected":
                self.suggestions.reject(suggestion_id)
