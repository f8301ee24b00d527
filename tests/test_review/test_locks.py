"""Tests for LockedPassageManager."""

from __future__ import annotations

import pytest

from manuscript_review.review.locks import LockedPassageManager


@pytest.fixture
def locks() -> LockedPassageManager:
    manager = LockedPassageManager()
    manager.lock(10, 20, "favourite line")
    return manager


class TestLockedPassageManager:
    def test_lock_appends(self, locks):
        assert len(locks) == 1
        assert locks.passages[0].reason == "favourite line"

    def test_reversed_bounds_are_swapped(self):
        manager = LockedPassageManager()
        passage = manager.lock(30, 5)
        assert (passage.start, passage.end) == (5, 30)

    @pytest.mark.parametrize("pos,expected", [(9, False), (10, True), (15, True), (20, True), (21, False)])
    def test_position_bounds_inclusive(self, locks, pos, expected):
        assert locks.is_position_locked(pos) is expected

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (0, 9, False),
            (0, 10, True),  # touches start
            (15, 30, True),  # starts inside
            (5, 25, True),  # covers it
            (12, 18, True),  # inside it
            (21, 40, False),
        ],
    )
    def test_range_overlap(self, locks, start, end, expected):
        assert locks.is_range_locked(start, end) is expected

    def test_overlapping_locks_are_independent(self, locks):
        locks.lock(15, 25)
        assert len(locks) == 2
        assert locks.unlock(0) is True
        assert locks.is_position_locked(12) is False
        assert locks.is_position_locked(22) is True

    def test_unlock_bad_index_is_noop(self, locks):
        assert locks.unlock(5) is False
        assert locks.unlock(-1) is False
        assert len(locks) == 1

    def test_texts(self, locks):
        content = "0123456789ABCDEFGHIJKLMNOP"
        assert locks.texts(content) == ["ABCDEFGHIJ"]

    def test_clear(self, locks):
        locks.clear()
        assert len(locks) == 0
        assert locks.is_position_locked(15) is False
