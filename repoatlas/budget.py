"""Cooperative time budget shared by long-running analysis steps."""

from __future__ import annotations

import time
from typing import Callable, Optional


class AnalysisBudget:
    """Deadline checked between files; never interrupts work on its own."""

    def __init__(
        self,
        seconds: Optional[float] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._deadline = clock() + seconds if seconds is not None else None

    @classmethod
    def unlimited(cls) -> "AnalysisBudget":
        return cls(None)

    @property
    def limited(self) -> bool:
        return self._deadline is not None

    def exhausted(self) -> bool:
        """Return True once the deadline has passed."""
        if self._deadline is None:
            return False
        return self._clock() >= self._deadline

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())


__all__ = ["AnalysisBudget"]
