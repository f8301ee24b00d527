"""Shared test fixtures."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from manuscript_review.clients.generation import GenerationService
from manuscript_review.clients.llm_client import LLMClient, LLMResponse
from manuscript_review.models.critique import CritiqueResult
from manuscript_review.models.dimension import DimensionScore
from manuscript_review.review.critic import Critic
from manuscript_review.review.dimensions import QUALITY_DIMENSIONS


def make_scores(default: float = 7.0, **overrides: float) -> list[DimensionScore]:
    """Scores for the full catalog; keyword overrides use underscores for dashes."""
    values = {k.replace("_", "-"): v for k, v in overrides.items()}
    return [
        DimensionScore(dimension_id=d.id, score=values.get(d.id, default))
        for d in QUALITY_DIMENSIONS
    ]


def critique_reply(default: float = 7.0, **overrides: float) -> str:
    """A critique-chapter reply in the shape the model is asked for."""
    values = {k.replace("_", "-"): v for k, v in overrides.items()}
    dims = {
        d.id.replace("-", "_").upper(): {
            "score": values.get(d.id, default),
            "feedback": f"Notes on {d.name}",
            "suggestions": [f"Improve {d.name}"],
        }
        for d in QUALITY_DIMENSIONS
    }
    return json.dumps(
        {
            "dimensions": dims,
            "summary": "A promising chapter.",
            "overallStrengths": ["Vivid opening"],
            "criticalIssues": ["Sagging middle"],
            "marketComparison": "Comparable to upmarket thrillers.",
        }
    )


@pytest.fixture
def sample_chapter() -> str:
    return (
        "The rain had not stopped for three days. Mara felt sad as she walked "
        "to the harbor in order to meet her brother. He said loudly that the "
        "boat was very late, and for some reason nobody answered him."
    )


@pytest.fixture
def critic() -> Critic:
    return Critic()


@pytest.fixture
def sample_critique(critic: Critic) -> CritiqueResult:
    return critic.from_scores(
        "chapter-1",
        make_scores(plot_coherence=4.0, pacing=6.0, prose_style=8.0, originality=9.5),
    )


@pytest.fixture
def mock_llm_client() -> LLMClient:
    """Create a mock LLM client."""
    client = AsyncMock(spec=LLMClient)
    client.generate = AsyncMock(
        return_value=LLMResponse(text="{}", input_tokens=100, output_tokens=50)
    )
    return client


@pytest.fixture
def generation_service(mock_llm_client: LLMClient) -> GenerationService:
    return GenerationService(mock_llm_client)


def llm_replies(client, *texts: str) -> None:
    """Queue successive LLM reply texts on a mock client."""
    client.generate.side_effect = [
        LLMResponse(text=t, input_tokens=10, output_tokens=10) for t in texts
    ]
