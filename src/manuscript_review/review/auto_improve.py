"""Auto-improve loop: revise and re-critique until a score threshold is met."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from manuscript_review.clients.generation import (
    GenerationCall,
    GenerationRequest,
    GenerationService,
)
from manuscript_review.config import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_THRESHOLD,
    clamp_iterations,
    clamp_threshold,
)
from manuscript_review.errors import (
    GenerationCancelledError,
    GenerationError,
    InvalidLoopTransitionError,
    LoopAlreadyRunningError,
)
from manuscript_review.models.critique import CritiqueResult, Harshness
from manuscript_review.models.passage import ImprovementHistoryEntry, LockedPassage
from manuscript_review.review.critic import Critic
from manuscript_review.review.dimensions import DEFAULT_REGISTRY
from manuscript_review.review.implementer import locked_texts, relocate_passages
from manuscript_review.review.scoring import MAX_SCORE

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = 5


class LoopState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    ACCEPTED_FINAL = "accepted-final"
    STOPPED = "stopped"  # no pending suggestions left
    FAILED = "failed"  # generation failure


@dataclass
class LoopOutcome:
    """Snapshot of the loop when it stops running."""

    state: LoopState
    content: str
    score: float
    baseline: float
    iterations: int
    max_iterations: int
    history: list[ImprovementHistoryEntry] = field(default_factory=list)
    message: str = ""
    error: str | None = None

    @property
    def delta(self) -> float:
        return round(self.score - self.baseline, 1)


class AutoImproveLoop:
    """Drives repeated auto-improve passes for one subject.

    Each pass asks the generation service to improve the weakest dimension,
    then re-critiques the candidate. A candidate is adopted only when it
    keeps every locked passage and does not lower the score, so the score
    never decreases. History gets one entry per completed pass, plus the
    baseline as iteration 0.
    """

    def __init__(
        self,
        service: GenerationService,
        critic: Critic,
        *,
        threshold: float = DEFAULT_THRESHOLD,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        extension: int = DEFAULT_EXTENSION,
        harshness: Harshness = Harshness.BALANCED,
        on_progress: Callable[[str, str], None] | None = None,
    ):
        self.service = service
        self.critic = critic
        self.threshold = clamp_threshold(threshold)
        self.max_iterations = clamp_iterations(max_iterations)
        self.extension = max(1, int(extension))
        self.harshness = harshness
        self.on_progress = on_progress

        self.state = LoopState.IDLE
        self.history: list[ImprovementHistoryEntry] = []
        self.iteration = 0
        self.baseline = 0.0
        self.subject_id = ""
        self.content = ""
        self.critique: CritiqueResult | None = None
        self.passages: list[LockedPassage] = []
        self.message = ""
        self.error: str | None = None
        self._call: GenerationCall | None = None
        self._iteration_task: asyncio.Future | None = None
        self._skip_requested = False

    @property
    def score(self) -> float:
        return self.critique.overall_score if self.critique else 0.0

    def _notify(self, phase: str, detail: str = "") -> None:
        if self.on_progress:
            self.on_progress(phase, detail)

    async def start(
        self,
        subject_id: str,
        content: str,
        critique: CritiqueResult,
        passages: list[LockedPassage] | None = None,
    ) -> LoopOutcome:
        if self.state == LoopState.RUNNING:
            raise LoopAlreadyRunningError(f"Auto-improve already running for {self.subject_id}")

        self.subject_id = subject_id
        self.content = content
        self.critique = critique
        self.passages = list(passages or [])
        self.iteration = 0
        self.baseline = critique.overall_score
        self.history = [ImprovementHistoryEntry(iteration=0, score=self.baseline)]
        self.message = ""
        self.error = None
        self._skip_requested = False
        self.state = LoopState.RUNNING
        logger.info(
            "Auto-improve %s: baseline %.1f, threshold %.1f, budget %d",
            subject_id, self.baseline, self.threshold, self.max_iterations,
        )
        self._notify("start", f"baseline {self.baseline:.1f}")
        return await self._run()

    async def continue_run(self) -> LoopOutcome:
        """Extend the budget after exhaustion and resume."""
        if self.state != LoopState.EXHAUSTED:
            raise InvalidLoopTransitionError(f"Cannot continue from {self.state.value}")
        self.max_iterations += self.extension
        self.message = ""
        self.state = LoopState.RUNNING
        logger.info("Auto-improve %s: budget extended to %d", self.subject_id, self.max_iterations)
        self._notify("continue", f"budget {self.max_iterations}")
        return await self._run()

    def skip_to_final(self) -> LoopOutcome:
        """Cancel any in-flight pass and accept the current score as final."""
        if self.state not in (LoopState.RUNNING, LoopState.EXHAUSTED):
            raise InvalidLoopTransitionError(f"Cannot skip to final from {self.state.value}")
        self._skip_requested = True
        if self._call is not None:
            self._call.cancel()
        if self._iteration_task is not None and not self._iteration_task.done():
            self._iteration_task.cancel()
        self.state = LoopState.ACCEPTED_FINAL
        self.message = f"Accepted score {self.score:.1f} as final."
        logger.info("Auto-improve %s: %s", self.subject_id, self.message)
        self._notify("final", self.message)
        return self.outcome()

    async def _run(self) -> LoopOutcome:
        while self.state == LoopState.RUNNING:
            if self.score >= self.threshold:
                self.state = LoopState.CONVERGED
                self.message = f"Reached score {self.score:.1f} (threshold {self.threshold:.1f})."
                break
            if self.iteration >= self.max_iterations:
                self.state = LoopState.EXHAUSTED
                self.message = (
                    f"Reached {self.iteration} iterations with score {self.score:.1f} "
                    f"(+{self.score - self.baseline:.1f} from baseline {self.baseline:.1f}). "
                    "Further passes are showing diminishing returns."
                )
                break
            if not self.critique.pending_suggestions:
                self.state = LoopState.STOPPED
                self.message = "No pending suggestions left to act on."
                break

            self._iteration_task = asyncio.ensure_future(self._iterate())
            try:
                await self._iteration_task
            except asyncio.CancelledError:
                if self._skip_requested:
                    break
                self._fail("cancelled")
                raise
            except GenerationCancelledError as exc:
                if not self._skip_requested:
                    self._fail(str(exc))
                break
            except GenerationError as exc:
                logger.exception("Auto-improve iteration failed for %s", self.subject_id)
                self._fail(str(exc))
                break
            except Exception as exc:
                logger.error("Auto-improve crashed for %s", self.subject_id, exc_info=True)
                self._fail(str(exc))
                raise
            finally:
                self._iteration_task = None
                self._call = None

        if self.state != LoopState.ACCEPTED_FINAL:
            logger.info("Auto-improve %s: %s", self.subject_id, self.state.value)
            self._notify(self.state.value, self.message)
        return self.outcome()

    def _fail(self, error: str) -> None:
        self.state = LoopState.FAILED
        self.error = error
        self.message = f"Generation failed at iteration {self.iteration + 1}; score stays {self.score:.1f}."

    def _focus(self) -> tuple[str, str]:
        """Dimension id and feedback for the weakest scored dimension.

        Without dimension scores the top pending suggestion picks the focus.
        """
        if self.critique.dimensions:
            weakest = min(self.critique.dimensions, key=lambda d: d.score)
            return weakest.dimension_id, weakest.feedback
        return self.critique.pending_suggestions[0].dimension_id, ""

    async def _iterate(self) -> None:
        iteration = self.iteration + 1
        self._notify("iteration", f"{iteration}/{self.max_iterations}")
        dimension_id, issues = self._focus()
        dimension = DEFAULT_REGISTRY.get(dimension_id)

        request = GenerationRequest(
            agent_target="review",
            action="auto-improve",
            context={
                "chapter_content": self.content,
                "current_score": self.score,
                "dimension_scores": {d.dimension_id: d.score for d in self.critique.dimensions},
                "weakest_dimension": dimension.name if dimension else dimension_id,
                "weakest_dimension_issues": issues,
                "locked_passages": locked_texts(self.content, self.passages),
                "iteration": iteration,
                "max_iterations": self.max_iterations,
            },
        )
        self._call = self.service.start(request)
        candidate = (await self._call.result()).strip()
        self._call = None

        content, critique, passages = self.content, self.critique, self.passages
        moved = relocate_passages(self.content, candidate, self.passages)
        if candidate and all(p is not None for p in moved):
            rescored = await self.critic.critique(
                self.subject_id, candidate, harshness=self.harshness
            )
            if rescored.overall_score >= self.score:
                content, passages = candidate, moved
                critique = rescored.model_copy(
                    update={"overall_score": min(MAX_SCORE, rescored.overall_score)}
                )
            else:
                logger.info(
                    "Iteration %d scored %.1f < %.1f; keeping previous text",
                    iteration, rescored.overall_score, self.score,
                )
        else:
            logger.warning("Iteration %d output dropped a locked passage or was empty", iteration)

        # commit only after every await so a cancelled pass changes nothing
        self.content, self.critique, self.passages = content, critique, passages
        self.iteration = iteration
        self.history.append(ImprovementHistoryEntry(iteration=iteration, score=self.score))
        logger.info("Auto-improve %s: iteration %d score %.1f", self.subject_id, iteration, self.score)

    def outcome(self) -> LoopOutcome:
        return LoopOutcome(
            state=self.state,
            content=self.content,
            score=self.score,
            baseline=self.baseline,
            iterations=self.iteration,
            max_iterations=self.max_iterations,
            history=list(self.history),
            message=self.message,
            error=self.error,
        )
