"""OpenTelemetry spans and metrics for graph analysis runs."""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from opentelemetry import metrics, trace
from opentelemetry.trace import Status, StatusCode


@dataclass
class AnalysisRunRecord:
    """Mutable per-run telemetry filled in while the run executes."""

    algorithms: tuple[str, ...]
    node_count: int
    edge_count: int
    betweenness_mode: str
    status: str = "running"
    duration_ms: float = 0.0
    error: str | None = None
    stage_durations_ms: dict[str, float] = field(default_factory=dict)


class AnalysisTelemetry:
    """OpenTelemetry-backed telemetry; no-op unless an SDK is installed."""

    def __init__(self) -> None:
        self.tracer = trace.get_tracer(__name__)
        meter = metrics.get_meter(__name__)
        self.duration_ms = meter.create_histogram(
            "graph_analysis_duration_ms",
            unit="ms",
            description="Duration of knowledge-graph analysis runs",
        )
        self.run_counter = meter.create_counter(
            "graph_analysis_runs_total",
            description="Count of knowledge-graph analysis runs by status",
        )

    @contextmanager
    def run(self, record: AnalysisRunRecord) -> Iterator[AnalysisRunRecord]:
        """
        Wrap one analysis run in a ``graph.analysis`` span.

        The span and metrics are finalized whether the run succeeds or raises;
        exceptions propagate unchanged.

        Yields
        ------
        AnalysisRunRecord
            The record, for stage timings to be added by the caller.
        """
        attributes = {
            "graph.algorithms": ",".join(record.algorithms),
            "graph.node_count": record.node_count,
            "graph.edge_count": record.edge_count,
            "graph.betweenness_mode": record.betweenness_mode,
        }
        start = time.perf_counter()
        with self.tracer.start_as_current_span(
            "graph.analysis",
            attributes=attributes,
            record_exception=False,
            set_status_on_exception=False,
        ) as span:
            try:
                yield record
            except Exception as exc:
                record.status = "failed"
                record.error = str(exc)
                span.record_exception(exc)
                span.set_status(Status(StatusCode.ERROR, record.error))
                raise
            else:
                record.status = "succeeded"
                span.set_status(Status(StatusCode.OK))
            finally:
                record.duration_ms = (time.perf_counter() - start) * 1000
                span.set_attribute("graph.status", record.status)
                for stage, elapsed in record.stage_durations_ms.items():
                    span.set_attribute(f"graph.stage.{stage}_ms", elapsed)
                metric_attrs = {
                    "status": record.status,
                    "betweenness_mode": record.betweenness_mode,
                }
                self.duration_ms.record(record.duration_ms, attributes=metric_attrs)
                self.run_counter.add(1, attributes=metric_attrs)

    @staticmethod
    @contextmanager
    def stage(record: AnalysisRunRecord, name: str) -> Iterator[None]:
        """
        Time a named stage into ``record.stage_durations_ms``.

        Yields
        ------
        None
            Control to the timed block.
        """
        start = time.perf_counter()
        try:
            yield
        finally:
            record.stage_durations_ms[name] = (time.perf_counter() - start) * 1000
