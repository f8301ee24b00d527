"""Critic: turns generation output into a scored, ranked CritiqueResult."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from manuscript_review.clients.generation import GenerationRequest, GenerationService
from manuscript_review.models.critique import (
    CritiqueResult,
    Harshness,
    Impact,
    PrioritizedSuggestion,
)
from manuscript_review.models.dimension import DimensionScore, QualityDimension
from manuscript_review.review.dimensions import DEFAULT_REGISTRY, DimensionRegistry
from manuscript_review.review.ranker import classify_impact, impact_score, rank_suggestions
from manuscript_review.review.scoring import clamp_score, overall_score, round_score
from manuscript_review.utils.json_parser import extract_json

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 7.0

STRENGTHS: dict[Harshness, list[str]] = {
    Harshness.GENTLE_MENTOR: [
        "Your narrative voice is developing beautifully - keep trusting your instincts!",
        "The pacing in your action sequences shows real promise and skill",
        "Your characters have compelling motivations that draw readers in",
    ],
    Harshness.BALANCED: [
        "Strong narrative voice throughout",
        "Good pacing in action sequences",
        "Compelling character motivations",
    ],
    Harshness.BRUTAL_HONESTY: [
        "Narrative voice is consistent",
        "Pacing is functional in action sequences",
        "Character motivations exist",
    ],
}

AREAS_FOR_IMPROVEMENT: dict[Harshness, list[str]] = {
    Harshness.GENTLE_MENTOR: [
        "The dialogue has room to grow more natural - perhaps try reading it aloud?",
        "You might explore adding richer world-building details when you feel ready",
        "Consider whether themes could be woven more subtly into the fabric of your story",
    ],
    Harshness.BALANCED: [
        "Some dialogue could feel more natural",
        "Consider deepening the world-building details",
        "Theme expression could be more subtle",
    ],
    Harshness.BRUTAL_HONESTY: [
        "Dialogue sounds artificial and stilted. Real people don't talk this way.",
        "World-building is superficial. The setting feels generic and underdeveloped.",
        "Themes are heavy-handed. Show, don't tell. Stop lecturing the reader.",
    ],
}

# (score >= 8, score >= 6, below) wording per tone
FEEDBACK: dict[Harshness, tuple[str, str, str]] = {
    Harshness.GENTLE_MENTOR: (
        "Wonderful work on the {name}! You've done an excellent job here and should be proud of this achievement.",
        "You're making good progress with the {name}. With a bit more attention, this could really shine. Keep it up!",
        "The {name} has potential to grow. Don't be discouraged - every writer faces challenges here. You've got this!",
    ),
    Harshness.BALANCED: (
        "The {name} in this chapter is excellent.",
        "The {name} is solid but could be improved.",
        "The {name} needs work.",
    ),
    Harshness.BRUTAL_HONESTY: (
        "The {name} is competent. It meets professional standards.",
        "The {name} is mediocre. This won't pass muster with discerning readers or agents.",
        "The {name} is weak and needs significant work. Readers will notice these problems immediately.",
    ),
}

DEFAULT_SUGGESTIONS = [
    "(default) Reread the chapter aloud and mark every sentence that drags",
    "(default) Compare this chapter with a published work in the same genre",
    "(default) Cut the weakest paragraph and check whether anything is lost",
]


def feedback_text(score: float, name: str, harshness: Harshness) -> str:
    excellent, solid, weak = FEEDBACK[harshness]
    template = excellent if score >= 8 else solid if score >= 6 else weak
    return template.format(name=name.lower())


def _alias(dimension_id: str) -> str:
    return dimension_id.replace("-", "_").upper()


class Critic:
    """Scores a chapter through the generation service, or from given scores."""

    def __init__(
        self,
        service: GenerationService | None = None,
        registry: DimensionRegistry = DEFAULT_REGISTRY,
    ):
        self.service = service
        self.registry = registry

    async def critique(
        self,
        subject_id: str,
        content: str,
        *,
        title: str = "",
        harshness: Harshness = Harshness.BALANCED,
    ) -> CritiqueResult:
        """Request a critique and parse it.

        Generation failures propagate as GenerationError. Output that cannot
        be parsed yields a neutral fallback critique instead.
        """
        if self.service is None:
            raise RuntimeError("Critic has no generation service; use from_scores()")

        logger.info("Critiquing %s (%d chars, tone=%s)", subject_id, len(content), harshness.value)
        request = GenerationRequest(
            agent_target="review",
            action="critique-chapter",
            context={
                "chapter_content": content,
                "chapter_title": title or subject_id,
                "harshness": harshness.value,
                "dimensions": [
                    {
                        "alias": _alias(d.id),
                        "weight": d.weight,
                        "description": d.description,
                    }
                    for d in self.registry
                ],
            },
        )
        text = await self.service.generate(request)
        return self.parse(text, subject_id, harshness)

    def parse(self, text: str, subject_id: str, harshness: Harshness) -> CritiqueResult:
        try:
            data = extract_json(text)
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.warning("Critique output for %s was not a JSON object; using fallback", subject_id)
            return self.fallback(subject_id, harshness)

        raw_dims = data.get("dimensions") or {}
        if not isinstance(raw_dims, dict):
            raw_dims = {}
        try:
            scores = [self._dimension_score(dim, raw_dims, harshness) for dim in self.registry]
            return self.from_scores(
                subject_id,
                scores,
                harshness=harshness,
                summary=_text(data.get("summary")),
                strengths=_string_list(data.get("overallStrengths")),
                areas=_string_list(data.get("criticalIssues")),
                market_comparison=_text(data.get("marketComparison")),
            )
        except ValidationError:
            logger.warning("Critique output for %s did not validate; using fallback", subject_id, exc_info=True)
            return self.fallback(subject_id, harshness)

    def _dimension_score(self, dim: QualityDimension, raw_dims: dict, harshness: Harshness) -> DimensionScore:
        entry = raw_dims.get(dim.id) or raw_dims.get(_alias(dim.id))
        raw_score = entry.get("score") if isinstance(entry, dict) else None
        if not isinstance(raw_score, (int, float)) or isinstance(raw_score, bool):
            return DimensionScore(
                dimension_id=dim.id,
                score=NEUTRAL_SCORE,
                feedback=f"Analysis pending for {dim.name}",
            )
        score = round_score(clamp_score(float(raw_score)))
        suggestions = entry.get("suggestions")
        return DimensionScore(
            dimension_id=dim.id,
            score=score,
            feedback=_text(entry.get("feedback"), feedback_text(score, dim.name, harshness)),
            suggestions=_string_list(suggestions),
        )

    def fallback(self, subject_id: str, harshness: Harshness) -> CritiqueResult:
        scores = [
            DimensionScore(
                dimension_id=d.id,
                score=NEUTRAL_SCORE,
                feedback=feedback_text(NEUTRAL_SCORE, d.name, harshness),
            )
            for d in self.registry
        ]
        return self.from_scores(subject_id, scores, harshness=harshness)

    def from_scores(
        self,
        subject_id: str,
        scores: list[DimensionScore],
        *,
        harshness: Harshness = Harshness.BALANCED,
        summary: str = "",
        strengths: list[str] | None = None,
        areas: list[str] | None = None,
        market_comparison: str = "",
    ) -> CritiqueResult:
        """Build a CritiqueResult from already-known dimension scores."""
        return CritiqueResult(
            subject_id=subject_id,
            overall_score=overall_score(scores, self.registry),
            dimensions=scores,
            summary=summary
            or f'"{subject_id}" has been analyzed across {len(scores)} quality dimensions.',
            strengths=strengths or list(STRENGTHS[harshness]),
            areas_for_improvement=areas or list(AREAS_FOR_IMPROVEMENT[harshness]),
            prioritized_suggestions=rank_suggestions(scores, self.registry),
            harshness=harshness,
            market_comparison=market_comparison,
        )

    async def suggest_more(
        self,
        critique: CritiqueResult,
        dimension_id: str,
        content: str,
        *,
        count: int = 3,
    ) -> list[PrioritizedSuggestion]:
        """Ask for extra suggestions on one dimension.

        Unparseable output falls back to ``DEFAULT_SUGGESTIONS``. Returns an
        empty list for dimensions that are unknown or missing from ``critique``.
        """
        dimension = self.registry.get(dimension_id)
        dim_score = critique.score_for(dimension_id)
        if dimension is None or dim_score is None or self.service is None:
            return []

        texts = await self.service.generate_list(
            GenerationRequest(
                agent_target="review",
                action="suggest-improvements",
                context={
                    "chapter_content": content,
                    "dimension_name": dimension.name,
                    "count": count,
                },
            ),
            DEFAULT_SUGGESTIONS,
        )
        value = impact_score(dimension.weight, dim_score.score)
        impact: Impact = classify_impact(value)
        start = len(critique.prioritized_suggestions)
        return [
            PrioritizedSuggestion(
                id=f"suggestion-{start + n}",
                dimension_id=dimension.id,
                dimension_name=dimension.name,
                suggestion=text,
                impact=impact,
                impact_score=value,
                reason=f"Additional idea for {dimension.name.lower()} ({dimension.weight}% weight).",
            )
            for n, text in enumerate(texts[:count], start=1)
        ]


def _string_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if str(v).strip()]


def _text(value, default: str = "") -> str:
    return value if isinstance(value, str) and value.strip() else default
