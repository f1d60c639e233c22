"""Cooperative deadline shared by long-running graph loops."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import monotonic

from graphinsight.services.errors import AnalysisTimeoutError


@dataclass
class Deadline:
    """
    Monotonic time budget with an explicit cancellation flag.

    ``check`` is called from inner loops; it raises once the budget is spent or
    another task cancelled the run. A deadline without ``timeout_seconds``
    never expires on its own.
    """

    timeout_seconds: float | None = None
    clock: Callable[[], float] = monotonic
    started_at: float = field(init=False)
    _cancelled: threading.Event = field(init=False, default_factory=threading.Event)

    def __post_init__(self) -> None:
        self.started_at = self.clock()

    def elapsed(self) -> float:
        """Seconds since the deadline was created."""
        return self.clock() - self.started_at

    def expired(self) -> bool:
        """Whether the run should stop."""
        if self._cancelled.is_set():
            return True
        return self.timeout_seconds is not None and self.elapsed() >= self.timeout_seconds

    def cancel(self) -> None:
        """Signal every task sharing this deadline to stop."""
        self._cancelled.set()

    def check(self, stage: str) -> None:
        """
        Raise when the deadline has passed.

        Parameters
        ----------
        stage
            Name of the computation being guarded, reported in the error.

        Raises
        ------
        AnalysisTimeoutError
            When the budget is spent or the run was cancelled.
        """
        if self.timeout_seconds is not None and self.elapsed() >= self.timeout_seconds:
            raise AnalysisTimeoutError(self.timeout_seconds, stage=stage)
        if self._cancelled.is_set():
            raise AnalysisTimeoutError(self.timeout_seconds, stage=stage, cancelled=True)
