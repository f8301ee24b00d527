"""Tests for GenerationService and cancellable GenerationCall."""

from __future__ import annotations

import asyncio

import pytest

from manuscript_review.clients.generation import (
    GenerationCall,
    GenerationRequest,
    GenerationService,
    GenerationStatus,
)
from manuscript_review.clients.llm_client import LLMResponse
from manuscript_review.clients.prompts import build_prompt
from manuscript_review.errors import GenerationCancelledError, GenerationError


def _request(action: str = "suggest-improvements", **context) -> GenerationRequest:
    return GenerationRequest(agent_target="review", action=action, context=context)


class TestGenerationCall:
    async def test_success_sets_status(self):
        async def work() -> str:
            return "done"

        call = GenerationCall(_request(), work())
        assert call.status == GenerationStatus.PENDING
        assert await call.result() == "done"
        assert call.status == GenerationStatus.SUCCEEDED
        assert call.progress == 100
        assert call.cancelled is False

    async def test_failure_raises_generation_error(self):
        async def work() -> str:
            raise RuntimeError("API error")

        call = GenerationCall(_request(), work())
        with pytest.raises(GenerationError, match="API error"):
            await call.result()
        assert call.status == GenerationStatus.FAILED
        assert call.error == "API error"
        assert call.cancelled is False

    async def test_cancel_in_flight(self):
        started = asyncio.Event()

        async def work() -> str:
            started.set()
            await asyncio.sleep(10)
            return "never"

        call = GenerationCall(_request(), work())
        await started.wait()
        assert call.cancel() is True

        with pytest.raises(GenerationCancelledError):
            await call.result()
        assert call.status == GenerationStatus.FAILED
        assert call.cancelled is True

    async def test_cancel_after_finish_is_noop(self):
        async def work() -> str:
            return "done"

        call = GenerationCall(_request(), work())
        await call.result()
        assert call.cancel() is False
        assert call.status == GenerationStatus.SUCCEEDED


class TestGenerationService:
    async def test_generate_builds_prompt_and_returns_text(self, mock_llm_client):
        mock_llm_client.generate.return_value = LLMResponse(text="revised", input_tokens=1, output_tokens=1)
        service = GenerationService(mock_llm_client)

        result = await service.generate(
            _request("implement-suggestions", chapter_content="UNIQUE_CHAPTER", locked_passages=["KEEP ME"])
        )

        assert result == "revised"
        kwargs = mock_llm_client.generate.call_args.kwargs
        assert "UNIQUE_CHAPTER" in kwargs["prompt"]
        assert '"KEEP ME"' in kwargs["prompt"]
        assert kwargs["system"]

    async def test_unknown_action_raises(self, mock_llm_client):
        service = GenerationService(mock_llm_client)
        with pytest.raises(GenerationError, match="Unknown generation action"):
            service.start(_request("write-sequel"))
        mock_llm_client.generate.assert_not_called()

    async def test_llm_failure_propagates_as_generation_error(self, mock_llm_client):
        mock_llm_client.generate.side_effect = RuntimeError("overloaded")
        service = GenerationService(mock_llm_client)
        with pytest.raises(GenerationError):
            await service.generate(_request())

    async def test_generate_list_parses_reply(self, mock_llm_client):
        mock_llm_client.generate.return_value = LLMResponse(
            text='["Cut adverbs", "Raise stakes"]', input_tokens=1, output_tokens=1
        )
        service = GenerationService(mock_llm_client)
        assert await service.generate_list(_request(), ["x"]) == ["Cut adverbs", "Raise stakes"]

    async def test_generate_list_falls_back_on_garbage(self, mock_llm_client):
        mock_llm_client.generate.return_value = LLMResponse(
            text="Sorry, I cannot help.", input_tokens=1, output_tokens=1
        )
        service = GenerationService(mock_llm_client)
        assert await service.generate_list(_request(), ["(default) x"]) == ["(default) x"]


class TestPrompts:
    def test_locked_passages_listed(self):
        _, prompt = build_prompt(
            "auto-improve",
            {"chapter_content": "text", "locked_passages": ["one", "two"], "iteration": 2, "max_iterations": 5},
        )
        assert '- "one"' in prompt
        assert "ITERATION 2/5" in prompt

    def test_no_locked_passages(self):
        _, prompt = build_prompt("implement-suggestions", {"chapter_content": "text"})
        assert "None - you may modify any passage" in prompt

    def test_critique_prompt_lists_dimensions(self):
        _, prompt = build_prompt(
            "critique-chapter",
            {
                "chapter_content": "text",
                "harshness": "brutal-honesty",
                "dimensions": [{"alias": "PACING", "weight": 10, "description": "Speed"}],
            },
        )
        assert "PACING (10% weight)" in prompt
        assert "unfiltered" in prompt

    def test_unknown_action(self):
        with pytest.raises(KeyError):
            build_prompt("nope", {})
