"""Split text around locked passages and revise only the unlocked parts."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from manuscript_review.models.critique import PrioritizedSuggestion
from manuscript_review.models.passage import LockedPassage

logger = logging.getLogger(__name__)

# Substitution rules applied to unlocked text for each approved suggestion,
# keyed by dimension id. Dimensions without rules leave the text untouched.
REVISION_RULES: dict[str, tuple[tuple[str, str], ...]] = {
    "prose-style": (
        (r"\bvery (?=\w)", ""),
        (r"\breally (?=\w)", ""),
        (r"\bsomewhat (?=\w)", ""),
    ),
    "pacing": (
        (r"\bin order to\b", "to"),
        (r"\bat this point in time\b", "now"),
        (r"\bdue to the fact that\b", "because"),
    ),
    "dialogue-quality": (
        (r"\bsaid loudly\b", "shouted"),
        (r"\bsaid quietly\b", "whispered"),
    ),
    "emotional-impact": (
        (r"\bfelt sad\b", "ached with grief"),
        (r"\bfelt angry\b", "burned with anger"),
        (r"\bfelt scared\b", "went cold with fear"),
    ),
    "plot-coherence": (
        (r"\bfor some reason,? ", ""),
    ),
    "tension-management": (
        (r"\ba little bit\b", "a little"),
    ),
}


@dataclass
class Segment:
    """A slice ``text[start:end]`` of the original text."""

    text: str
    locked: bool
    start: int
    end: int


@dataclass
class RevisionResult:
    """Output of a segmented revision pass."""

    content: str
    segments: list[Segment]
    applied: list[str] = field(default_factory=list)
    preserved_passages: int = 0
    # (start, end) of each locked segment within ``content``
    locked_spans: list[tuple[int, int]] = field(default_factory=list)


def split_segments(text: str, passages: list[LockedPassage]) -> list[Segment]:
    """Alternate unlocked/locked segments in text order.

    Overlapping passages are merged while walking so no character is
    emitted twice. Passages are clipped to the text bounds.
    """
    if not passages:
        return [Segment(text=text, locked=False, start=0, end=len(text))] if text else []

    segments: list[Segment] = []
    cursor = 0
    for passage in sorted(passages, key=lambda p: (p.start, p.end)):
        start = min(max(passage.start, cursor), len(text))
        end = min(passage.end, len(text))
        if start > cursor:
            segments.append(Segment(text=text[cursor:start], locked=False, start=cursor, end=start))
        if end > start:
            if segments and segments[-1].locked and segments[-1].end == start:
                last = segments[-1]
                last.text += text[start:end]
                last.end = end
            else:
                segments.append(Segment(text=text[start:end], locked=True, start=start, end=end))
        cursor = max(cursor, end)
    if cursor < len(text):
        segments.append(Segment(text=text[cursor:], locked=False, start=cursor, end=len(text)))
    return segments


def apply_rules(text: str, suggestions: list[PrioritizedSuggestion]) -> str:
    for suggestion in suggestions:
        for pattern, replacement in REVISION_RULES.get(suggestion.dimension_id, ()):
            text = re.sub(pattern, replacement, text)
    return text


def revision_summary(applied: int, preserved: int) -> str:
    summary = f"[Revision applied {applied} suggestion{'s' if applied != 1 else ''}"
    if preserved:
        summary += f"; {preserved} locked passage{'s' if preserved != 1 else ''} preserved"
    return summary + "]"


def revise_segments(
    text: str,
    passages: list[LockedPassage],
    approved: list[PrioritizedSuggestion],
    *,
    with_summary: bool = True,
) -> RevisionResult:
    """Apply ``approved`` to unlocked segments and reassemble.

    Locked segments pass through character for character.
    """
    segments = split_segments(text, passages)
    parts: list[str] = []
    locked_spans: list[tuple[int, int]] = []
    offset = 0
    for segment in segments:
        piece = segment.text if segment.locked else apply_rules(segment.text, approved)
        if segment.locked:
            locked_spans.append((offset, offset + len(piece)))
        parts.append(piece)
        offset += len(piece)

    content = "".join(parts)
    if with_summary:
        content += "\n\n" + revision_summary(len(approved), len(passages))

    logger.info(
        "Revised %d unlocked segment(s) with %d suggestion(s), %d passage(s) preserved",
        sum(1 for s in segments if not s.locked),
        len(approved),
        len(passages),
    )
    return RevisionResult(
        content=content,
        segments=segments,
        applied=[s.suggestion for s in approved],
        preserved_passages=len(passages),
        locked_spans=locked_spans,
    )
