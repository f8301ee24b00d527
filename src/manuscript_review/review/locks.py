"""Locked passages: character ranges protected from automated revision."""

from __future__ import annotations

from manuscript_review.models.passage import LockedPassage


class LockedPassageManager:
    """Holds the locked passages of one text.

    Passages are independent entries: overlapping locks are kept as-is and
    can be removed separately. Containment uses inclusive bounds on both
    ends (``start <= pos <= end``), so adjacent passages share their
    boundary position.
    """

    def __init__(self, passages: list[LockedPassage] | None = None):
        self._passages: list[LockedPassage] = list(passages or [])

    def __len__(self) -> int:
        return len(self._passages)

    def __iter__(self):
        return iter(self._passages)

    @property
    def passages(self) -> list[LockedPassage]:
        return list(self._passages)

    def lock(self, start: int, end: int, reason: str = "") -> LockedPassage:
        if end < start:
            start, end = end, start
        passage = LockedPassage(start=start, end=end, reason=reason)
        self._passages.append(passage)
        return passage

    def unlock(self, index: int) -> bool:
        """Remove the passage at ``index``; out-of-range indices are a no-op."""
        if not 0 <= index < len(self._passages):
            return False
        del self._passages[index]
        return True

    def clear(self) -> None:
        self._passages.clear()

    def is_position_locked(self, pos: int) -> bool:
        return any(p.start <= pos <= p.end for p in self._passages)

    def is_range_locked(self, start: int, end: int) -> bool:
        return any(
            (p.start <= start <= p.end)
            or (p.start <= end <= p.end)
            or (start <= p.start and end >= p.end)
            for p in self._passages
        )

    def texts(self, content: str) -> list[str]:
        """The locked text of each passage, in insertion order."""
        return [p.text_in(content) for p in self._passages]
