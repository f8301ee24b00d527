"""Tests for the auto-improve loop state machine."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from conftest import critique_reply, llm_replies, make_scores
from manuscript_review.errors import InvalidLoopTransitionError, LoopAlreadyRunningError
from manuscript_review.models.passage import LockedPassage
from manuscript_review.review.auto_improve import AutoImproveLoop, LoopState
from manuscript_review.review.critic import Critic

CONTENT = "Keep this. The chapter drags in the middle."


@pytest.fixture
def loop_critic(generation_service) -> Critic:
    return Critic(generation_service)


@pytest.fixture
def baseline(loop_critic):
    return loop_critic.from_scores("chapter-1", make_scores(6.0))


def _loop(generation_service, loop_critic, **kwargs) -> AutoImproveLoop:
    return AutoImproveLoop(generation_service, loop_critic, **kwargs)


class TestBounds:
    def test_threshold_and_budget_are_clamped(self, generation_service, loop_critic):
        loop = _loop(generation_service, loop_critic, threshold=50, max_iterations=100)
        assert loop.threshold == 10.0
        assert loop.max_iterations == 20

    def test_starts_idle(self, generation_service, loop_critic):
        assert _loop(generation_service, loop_critic).state == LoopState.IDLE


class TestRun:
    async def test_converges_without_generation_when_baseline_meets_threshold(
        self, generation_service, loop_critic, baseline, mock_llm_client
    ):
        loop = _loop(generation_service, loop_critic, threshold=5.0, max_iterations=3)
        outcome = await loop.start("chapter-1", CONTENT, baseline)

        assert outcome.state == LoopState.CONVERGED
        assert outcome.iterations == 0
        assert [(h.iteration, h.score) for h in outcome.history] == [(0, 6.0)]
        mock_llm_client.generate.assert_not_called()

    async def test_exhausted_reports_delta(self, generation_service, loop_critic, baseline, mock_llm_client):
        llm_replies(mock_llm_client, "Keep this. A tighter middle.", critique_reply(6.5))
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=1)
        outcome = await loop.start("chapter-1", CONTENT, baseline)

        assert outcome.state == LoopState.EXHAUSTED
        assert outcome.score == 6.5
        assert outcome.delta == 0.5
        assert outcome.content == "Keep this. A tighter middle."
        assert "Reached 1 iterations with score 6.5 (+0.5 from baseline 6.0)" in outcome.message
        assert "diminishing returns" in outcome.message
        assert [h.score for h in outcome.history] == [6.0, 6.5]

    async def test_continue_extends_budget(self, generation_service, loop_critic, baseline, mock_llm_client):
        llm_replies(
            mock_llm_client,
            "Version one.", critique_reply(6.5),
            "Version two.", critique_reply(10.0),
        )
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=1, extension=5)
        await loop.start("chapter-1", CONTENT, baseline)
        outcome = await loop.continue_run()

        assert outcome.state == LoopState.CONVERGED
        assert outcome.max_iterations == 6
        assert outcome.iterations == 2
        assert outcome.content == "Version two."
        assert [h.iteration for h in outcome.history] == [0, 1, 2]

    async def test_lower_scoring_candidate_is_not_adopted(
        self, generation_service, loop_critic, baseline, mock_llm_client
    ):
        llm_replies(mock_llm_client, "Worse text.", critique_reply(5.0))
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=1)
        outcome = await loop.start("chapter-1", CONTENT, baseline)

        assert outcome.content == CONTENT
        assert [h.score for h in outcome.history] == [6.0, 6.0]

    async def test_candidate_dropping_lock_is_not_scored(
        self, generation_service, loop_critic, baseline, mock_llm_client
    ):
        llm_replies(mock_llm_client, "Changed everything.")
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=1)
        outcome = await loop.start(
            "chapter-1", CONTENT, baseline, [LockedPassage(start=0, end=10)]
        )

        assert outcome.content == CONTENT
        assert mock_llm_client.generate.call_count == 1
        prompt = mock_llm_client.generate.call_args.kwargs["prompt"]
        assert '- "Keep this."' in prompt
        assert "WEAKEST DIMENSION TO FOCUS ON" in prompt

    async def test_failure_keeps_history(self, generation_service, loop_critic, baseline, mock_llm_client):
        mock_llm_client.generate.side_effect = RuntimeError("rate limited")
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=3)
        outcome = await loop.start("chapter-1", CONTENT, baseline)

        assert outcome.state == LoopState.FAILED
        assert "rate limited" in outcome.error
        assert outcome.content == CONTENT
        assert len(outcome.history) == 1

    async def test_unexpected_error_leaves_loop_failed(
        self, generation_service, loop_critic, baseline, mock_llm_client
    ):
        llm_replies(mock_llm_client, "Keep this. A tighter middle.")
        loop_critic.critique = AsyncMock(side_effect=RuntimeError("bad critique"))
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=3)

        with pytest.raises(RuntimeError):
            await loop.start("chapter-1", CONTENT, baseline)

        assert loop.state == LoopState.FAILED
        assert loop.error == "bad critique"
        assert loop.content == CONTENT
        polished = loop_critic.from_scores("chapter-1", make_scores(10.0))
        outcome = await loop.start("chapter-1", CONTENT, polished)
        assert outcome.state == LoopState.CONVERGED

    async def test_focus_without_dimension_scores(
        self, generation_service, loop_critic, baseline, mock_llm_client
    ):
        bare = baseline.model_copy(update={"dimensions": []})
        llm_replies(mock_llm_client, "Keep this. A tighter middle.", critique_reply(6.5))
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=1)
        outcome = await loop.start("chapter-1", CONTENT, bare)

        assert outcome.state == LoopState.EXHAUSTED
        assert outcome.score == 6.5
        prompt = mock_llm_client.generate.call_args_list[0].kwargs["prompt"]
        assert f"WEAKEST DIMENSION TO FOCUS ON: {bare.pending_suggestions[0].dimension_name}" in prompt

    async def test_locks_follow_adopted_text_across_iterations(
        self, generation_service, loop_critic, baseline, mock_llm_client
    ):
        llm_replies(
            mock_llm_client,
            "Opening line. Keep this. Middle tightened.", critique_reply(6.5),
            "Opening line. Keep this. Middle tightened again.", critique_reply(7.0),
        )
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=2)
        outcome = await loop.start(
            "chapter-1", CONTENT, baseline, [LockedPassage(start=0, end=10)]
        )

        assert outcome.content == "Opening line. Keep this. Middle tightened again."
        assert [h.score for h in outcome.history] == [6.0, 6.5, 7.0]
        [passage] = loop.passages
        assert passage.text_in(outcome.content) == "Keep this."
        second_prompt = mock_llm_client.generate.call_args_list[2].kwargs["prompt"]
        assert '- "Keep this."' in second_prompt

    async def test_stops_without_pending_suggestions(self, generation_service, loop_critic, mock_llm_client):
        polished = loop_critic.from_scores("chapter-1", make_scores(9.5))
        loop = _loop(generation_service, loop_critic, threshold=10.0)
        outcome = await loop.start("chapter-1", CONTENT, polished)

        assert outcome.state == LoopState.STOPPED
        mock_llm_client.generate.assert_not_called()

    async def test_progress_callback(self, generation_service, loop_critic, baseline):
        phases = []
        loop = _loop(
            generation_service, loop_critic, threshold=5.0,
            on_progress=lambda phase, detail: phases.append(phase),
        )
        await loop.start("chapter-1", CONTENT, baseline)
        assert phases == ["start", "converged"]


class TestTransitions:
    async def test_continue_requires_exhausted(self, generation_service, loop_critic, baseline):
        loop = _loop(generation_service, loop_critic, threshold=5.0)
        await loop.start("chapter-1", CONTENT, baseline)
        with pytest.raises(InvalidLoopTransitionError):
            await loop.continue_run()

    async def test_skip_after_exhausted(self, generation_service, loop_critic, baseline, mock_llm_client):
        llm_replies(mock_llm_client, "Version one.", critique_reply(6.5))
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=1)
        await loop.start("chapter-1", CONTENT, baseline)

        outcome = loop.skip_to_final()
        assert outcome.state == LoopState.ACCEPTED_FINAL
        assert outcome.message == "Accepted score 6.5 as final."

    async def test_skip_from_idle_rejected(self, generation_service, loop_critic):
        with pytest.raises(InvalidLoopTransitionError):
            _loop(generation_service, loop_critic).skip_to_final()

    async def test_skip_cancels_in_flight_pass(self, generation_service, loop_critic, baseline, mock_llm_client):
        started = asyncio.Event()

        async def hang(**kwargs):
            started.set()
            await asyncio.sleep(3600)

        mock_llm_client.generate.side_effect = hang
        loop = _loop(generation_service, loop_critic, threshold=10.0, max_iterations=3)
        task = asyncio.ensure_future(loop.start("chapter-1", CONTENT, baseline))
        await started.wait()

        with pytest.raises(LoopAlreadyRunningError):
            await loop.start("chapter-1", CONTENT, baseline)

        loop.skip_to_final()
        outcome = await task

        assert outcome.state == LoopState.ACCEPTED_FINAL
        assert outcome.content == CONTENT
        assert outcome.iterations == 0
        assert [h.score for h in outcome.history] == [6.0]
