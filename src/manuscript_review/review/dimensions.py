"""Catalog of the twelve weighted quality dimensions."""

from __future__ import annotations

from manuscript_review.models.dimension import QualityDimension

QUALITY_DIMENSIONS: tuple[QualityDimension, ...] = (
    QualityDimension(
        id="plot-coherence",
        name="Plot Coherence",
        weight=12,
        description="How well the story events connect and make logical sense",
    ),
    QualityDimension(
        id="character-consistency",
        name="Character Consistency",
        weight=10,
        description="Characters behave in ways true to their established personalities",
    ),
    QualityDimension(
        id="character-voice",
        name="Character Voice",
        weight=8,
        description="Each character has a distinct, recognizable way of speaking",
    ),
    QualityDimension(
        id="pacing",
        name="Pacing",
        weight=10,
        description="The story moves at an appropriate speed with good rhythm",
    ),
    QualityDimension(
        id="dialogue-quality",
        name="Dialogue Quality",
        weight=8,
        description="Conversations feel natural and serve the story well",
    ),
    QualityDimension(
        id="prose-style",
        name="Prose Style",
        weight=10,
        description="The writing is clear, engaging, and fits the genre",
    ),
    QualityDimension(
        id="emotional-impact",
        name="Emotional Impact",
        weight=10,
        description="The writing evokes intended emotions in readers",
    ),
    QualityDimension(
        id="tension-management",
        name="Tension Management",
        weight=8,
        description="Tension builds and releases at appropriate moments",
    ),
    QualityDimension(
        id="world-building",
        name="World-building",
        weight=6,
        description="The setting is vivid, consistent, and well-integrated",
    ),
    QualityDimension(
        id="theme-expression",
        name="Theme Expression",
        weight=6,
        description="Themes are woven naturally into the narrative",
    ),
    QualityDimension(
        id="market-appeal",
        name="Market Appeal",
        weight=6,
        description="The content aligns with genre expectations and reader preferences",
    ),
    QualityDimension(
        id="originality",
        name="Originality",
        weight=6,
        description="The story offers fresh ideas or unique perspectives",
    ),
)


class DimensionRegistry:
    """Read-only lookup over a dimension catalog."""

    def __init__(self, dimensions: tuple[QualityDimension, ...] | list[QualityDimension] = QUALITY_DIMENSIONS):
        self._dimensions = tuple(dimensions)
        self._by_id = {d.id: d for d in self._dimensions}

    def __iter__(self):
        return iter(self._dimensions)

    def __len__(self) -> int:
        return len(self._dimensions)

    def __contains__(self, dimension_id: str) -> bool:
        return dimension_id in self._by_id

    def get(self, dimension_id: str) -> QualityDimension | None:
        return self._by_id.get(dimension_id)

    def resolve(self, key: str) -> QualityDimension | None:
        """Look up by id or by the UPPER_SNAKE alias used in generation replies."""
        return self._by_id.get(key) or self._by_id.get(key.lower().replace("_", "-"))

    @property
    def total_weight(self) -> int:
        return sum(d.weight for d in self._dimensions)

    def validate(self) -> None:
        """Raise ValueError unless the catalog weights sum to exactly 100."""
        if self.total_weight != 100:
            raise ValueError(
                f"Dimension weights must sum to 100, got {self.total_weight}"
            )


DEFAULT_REGISTRY = DimensionRegistry()
DEFAULT_REGISTRY.validate()
