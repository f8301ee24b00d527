"""Pydantic models for quality dimensions and per-dimension scores."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class QualityDimension(BaseModel):
    """One weighted axis of manuscript quality."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    weight: int  # integer percent; catalog total is 100
    description: str = ""


class DimensionScore(BaseModel):
    """Score for a single dimension from one critique run."""

    model_config = ConfigDict(frozen=True)

    dimension_id: str
    score: float = Field(ge=1, le=10)
    feedback: str = ""
    suggestions: list[str] = []
