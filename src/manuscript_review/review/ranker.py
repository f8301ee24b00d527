"""Derive impact-ranked suggestions from dimension scores."""

from __future__ import annotations

import logging

from manuscript_review.models.critique import Impact, PrioritizedSuggestion
from manuscript_review.models.dimension import DimensionScore
from manuscript_review.review.dimensions import DEFAULT_REGISTRY, DimensionRegistry
from manuscript_review.review.scoring import resolve_weights

logger = logging.getLogger(__name__)

HIGH_IMPACT = 0.4
MEDIUM_IMPACT = 0.2
NEAR_PERFECT = 9.0

# Ordered templates per dimension id; ``{name}`` is the lower-cased display name.
SUGGESTION_TEMPLATES: dict[str, tuple[str, ...]] = {
    "plot-coherence": (
        "Tighten cause and effect between the chapter's key events",
        "Make each scene's contribution to the main plot explicit",
    ),
    "character-consistency": (
        "Check character choices against their established motivations",
    ),
    "character-voice": (
        "Give each speaking character a more distinctive vocabulary and rhythm",
    ),
    "pacing": (
        "Trim slow passages and vary sentence length to control rhythm",
        "Balance action beats with moments of reflection",
    ),
    "dialogue-quality": (
        "Cut on-the-nose dialogue and let subtext carry meaning",
    ),
    "prose-style": (
        "Replace weak modifiers with precise verbs and concrete nouns",
    ),
    "emotional-impact": (
        "Show the viewpoint character's physical reactions at emotional peaks",
    ),
    "tension-management": (
        "Raise the stakes before releasing tension at the scene's climax",
    ),
    "world-building": (
        "Weave sensory setting details into action rather than exposition",
    ),
    "theme-expression": (
        "Let the theme emerge from character choices instead of stating it",
    ),
    "market-appeal": (
        "Strengthen the genre hooks readers of this category expect",
    ),
    "originality": (
        "Subvert one familiar trope with an unexpected turn",
    ),
}

FALLBACK_TEMPLATES: tuple[str, ...] = ("Focus on improving {name} in key scenes",)

REASON_TEMPLATE = "Improving {name} ({weight}% weight) will boost overall quality."


def impact_score(weight: float, score: float) -> float:
    """(weight / 100) * (10 - score), rounded to 4 places to keep thresholds exact."""
    return round(weight * (10 - score) / 100, 4)


def classify_impact(value: float) -> Impact:
    if value >= HIGH_IMPACT:
        return Impact.HIGH
    if value >= MEDIUM_IMPACT:
        return Impact.MEDIUM
    return Impact.LOW


def templates_for(dimension_id: str) -> tuple[str, ...]:
    return SUGGESTION_TEMPLATES.get(dimension_id, FALLBACK_TEMPLATES)


def rank_suggestions(
    scores: list[DimensionScore],
    registry: DimensionRegistry = DEFAULT_REGISTRY,
) -> list[PrioritizedSuggestion]:
    """Build pending suggestions for every dimension scoring below 9.

    Weights are the ones the overall score uses, including the equal share
    for dimensions outside the registry. The result is sorted by impact
    score, highest first; ties keep the order of ``scores``.
    """
    suggestions: list[PrioritizedSuggestion] = []
    for dim_score, weight in zip(scores, resolve_weights(scores, registry)):
        if dim_score.score >= NEAR_PERFECT:
            continue
        dimension = registry.get(dim_score.dimension_id)
        if dimension is None:
            logger.debug("Dimension %s not in registry, using equal share", dim_score.dimension_id)
        display_name = dimension.name if dimension else dim_score.dimension_id.replace("-", " ").title()

        value = impact_score(weight, dim_score.score)
        name = display_name.lower()
        for template in templates_for(dim_score.dimension_id):
            suggestions.append(
                PrioritizedSuggestion(
                    id=f"suggestion-{len(suggestions) + 1}",
                    dimension_id=dim_score.dimension_id,
                    dimension_name=display_name,
                    suggestion=template.format(name=name),
                    impact=classify_impact(value),
                    impact_score=value,
                    reason=REASON_TEMPLATE.format(name=name, weight=f"{weight:g}"),
                )
            )

    return sorted(suggestions, key=lambda s: s.impact_score, reverse=True)
