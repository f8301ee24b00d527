"""Exception types raised by the review engine."""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for review engine errors."""


class GenerationError(ReviewError):
    """The external generation call failed."""


class GenerationCancelledError(GenerationError):
    """The external generation call was cancelled before it finished."""


class LoopAlreadyRunningError(ReviewError):
    """An auto-improve loop is already active for this subject."""


class InvalidLoopTransitionError(ReviewError):
    """The requested loop action is not allowed in the current state."""
