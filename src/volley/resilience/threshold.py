"""Threshold guards capping the total wall-clock time of one logical call."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ThresholdGuard(ABC):
    """Abstract base for elapsed-time threshold checks."""

    @abstractmethod
    def is_exceeded(self, threshold: float, elapsed: float) -> bool:
        """Return True if ``elapsed`` seconds exceed the ``threshold`` budget."""
        ...


class AllowAllGuard(ThresholdGuard):
    """Never reports the threshold as exceeded."""

    def is_exceeded(self, threshold: float, elapsed: float) -> bool:
        return False


class StopOnExceedGuard(ThresholdGuard):
    """Reports the threshold as exceeded once elapsed time passes it.

    A non-positive threshold counts as already exceeded, so the call
    aborts before the first attempt.
    """

    def is_exceeded(self, threshold: float, elapsed: float) -> bool:
        return threshold <= 0 or elapsed > threshold
