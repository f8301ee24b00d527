"""Weighted aggregation of per-dimension scores into an overall score."""

from __future__ import annotations

import math

from manuscript_review.models.dimension import DimensionScore
from manuscript_review.review.dimensions import DEFAULT_REGISTRY, DimensionRegistry

MIN_SCORE = 1.0
MAX_SCORE = 10.0


def round_score(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def clamp_score(value: float) -> float:
    return min(MAX_SCORE, max(MIN_SCORE, value))


def resolve_weights(
    scores: list[DimensionScore],
    registry: DimensionRegistry = DEFAULT_REGISTRY,
) -> list[float]:
    """Weight (percent) for each score, in input order.

    Dimensions unknown to the registry get an equal share of 100.
    """
    if not scores:
        return []
    fallback = 100 / len(scores)
    weights = []
    for score in scores:
        dimension = registry.get(score.dimension_id)
        weights.append(float(dimension.weight) if dimension else fallback)
    return weights


def overall_score(
    scores: list[DimensionScore],
    registry: DimensionRegistry = DEFAULT_REGISTRY,
) -> float:
    """Weighted average of ``scores``, rounded to one decimal.

    The sum is normalised by the total weight present, so a partial list
    still yields a value between its lowest and highest score. With the
    full catalog the total is 100 and this is sum(score * weight / 100).
    """
    weights = resolve_weights(scores, registry)
    total = sum(weights)
    if total <= 0:
        return 0.0
    weighted = sum(s.score * w for s, w in zip(scores, weights))
    return round_score(weighted / total)
