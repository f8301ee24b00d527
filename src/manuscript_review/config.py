"""Application configuration loaded from config.yaml."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from manuscript_review.models.critique import Harshness

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 9.8
DEFAULT_MAX_ITERATIONS = 5
MAX_ITERATION_CEILING = 20


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-sonnet-4-5-20250929"
    max_retries: int = 3
    timeout: int = 120
    temperature: float = 0.7
    max_tokens: int = 8192

    def __post_init__(self) -> None:
        if self.timeout < 1:
            raise ValueError(f"llm.timeout must be >= 1, got {self.timeout}")
        if self.max_retries < 1:
            raise ValueError(f"llm.max_retries must be >= 1, got {self.max_retries}")


@dataclass(frozen=True)
class ReviewConfig:
    quality_threshold: float = DEFAULT_THRESHOLD
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    iteration_extension: int = 5
    harshness: Harshness = Harshness.BALANCED


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "~/.manuscript-review/scores.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    review: ReviewConfig = field(default_factory=ReviewConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def clamp_threshold(value) -> float:
    """Clamp a quality threshold into [1, 10]; unusable values get the default."""
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid quality threshold %r, using %.1f", value, DEFAULT_THRESHOLD)
        return DEFAULT_THRESHOLD
    if threshold != threshold:  # NaN
        return DEFAULT_THRESHOLD
    return min(10.0, max(1.0, threshold))


def clamp_iterations(value) -> int:
    """Clamp an iteration budget into [1, 20]; unusable values get the default."""
    try:
        iterations = int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid iteration budget %r, using %d", value, DEFAULT_MAX_ITERATIONS)
        return DEFAULT_MAX_ITERATIONS
    return min(MAX_ITERATION_CEILING, max(1, iterations))


def parse_harshness(value) -> Harshness:
    try:
        return Harshness(value)
    except ValueError:
        logger.warning("Unknown harshness %r, using balanced", value)
        return Harshness.BALANCED


def _review_config(raw: dict) -> ReviewConfig:
    defaults = ReviewConfig()
    return ReviewConfig(
        quality_threshold=clamp_threshold(raw.get("quality_threshold", defaults.quality_threshold)),
        max_iterations=clamp_iterations(raw.get("max_iterations", defaults.max_iterations)),
        iteration_extension=clamp_iterations(
            raw.get("iteration_extension", defaults.iteration_extension)
        ),
        harshness=parse_harshness(raw.get("harshness", defaults.harshness.value)),
    )


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            Path(__file__).resolve().parent.parent.parent / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        review=_review_config(raw.get("review", {})),
        storage=StorageConfig(**raw.get("storage", {})),
    )
