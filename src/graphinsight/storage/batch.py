"""Best-effort batch writes with explicit per-item outcomes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteOutcome:
    """Result of writing one item."""

    key: str
    ok: bool
    error: str | None = None


@dataclass(frozen=True)
class BatchWriteReport:
    """Aggregated outcomes of a best-effort batch; never implies rollback."""

    outcomes: tuple[WriteOutcome, ...]

    @property
    def attempted(self) -> int:
        """Number of items a write was attempted for."""
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        """Number of items written."""
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> tuple[WriteOutcome, ...]:
        """Outcomes of items that could not be written."""
        return tuple(outcome for outcome in self.outcomes if not outcome.ok)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Counts plus the failed keys and their errors.
        """
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": len(self.failed),
            "errors": [{"key": o.key, "error": o.error} for o in self.failed],
        }

    @classmethod
    def skipped(cls) -> BatchWriteReport:
        """
        Report for a batch that was not attempted.

        Returns
        -------
        BatchWriteReport
            Empty report.
        """
        return cls(outcomes=())


class BestEffortBatchWriter[T]:
    """
    Write items one at a time, continuing past individual failures.

    Earlier writes are never rolled back and nothing is retried; failures are
    collected into the report and logged once as a summary.
    """

    def __init__(
        self,
        write: Callable[[T], None],
        *,
        key: Callable[[T], str],
        label: str = "record",
    ) -> None:
        self._write = write
        self._key = key
        self._label = label

    def write_all(self, items: Iterable[T]) -> BatchWriteReport:
        """
        Attempt every item once.

        Returns
        -------
        BatchWriteReport
            One outcome per item, in input order.
        """
        outcomes: list[WriteOutcome] = []
        for item in items:
            item_key = self._key(item)
            try:
                self._write(item)
            except Exception as exc:  # noqa: BLE001 - per-item failures are reported, not raised
                log.warning("Failed to store %s %s: %s", self._label, item_key, exc)
                outcomes.append(WriteOutcome(key=item_key, ok=False, error=str(exc)))
            else:
                outcomes.append(WriteOutcome(key=item_key, ok=True))
        report = BatchWriteReport(outcomes=tuple(outcomes))
        if report.failed:
            log.warning(
                "Stored %d/%d %ss; %d failed",
                report.succeeded,
                report.attempted,
                self._label,
                len(report.failed),
            )
        return report
