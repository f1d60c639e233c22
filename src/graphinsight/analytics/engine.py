"""Compose adjacency, centrality, communities, paths and ranking into one run."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from time import monotonic
from typing import Any, Literal, get_args

from graphinsight.analytics.centrality import (
    CentralityEngine,
    CentralityOptions,
    CentralityResult,
)
from graphinsight.analytics.communities import CommunityDetector, CommunityResult
from graphinsight.analytics.deadline import Deadline
from graphinsight.analytics.influence import (
    DEFAULT_TOP_K,
    InfluenceRanker,
    InfluenceRanking,
    InfluenceWeights,
)
from graphinsight.analytics.paths import (
    DEFAULT_HUB_COUNT,
    DEFAULT_MAX_PATHS,
    PathFinder,
    PathResult,
)
from graphinsight.analytics.tasks import run_tasks
from graphinsight.analytics.telemetry import AnalysisRunRecord, AnalysisTelemetry
from graphinsight.core.types import GraphSnapshot
from graphinsight.graphs.adjacency import AdjacencyIndex
from graphinsight.services.errors import NoGraphDataError

log = logging.getLogger(__name__)

Algorithm = Literal["centrality", "communities", "paths"]
ALL_ALGORITHMS: tuple[Algorithm, ...] = get_args(Algorithm)
TOP_INFLUENTIAL_NODES = 10


@dataclass(frozen=True)
class EngineOptions:
    """Options for a full analysis run."""

    centrality: CentralityOptions = field(default_factory=CentralityOptions)
    weights: InfluenceWeights = field(default_factory=InfluenceWeights)
    top_k: int = DEFAULT_TOP_K
    path_hub_count: int = DEFAULT_HUB_COUNT
    max_paths: int = DEFAULT_MAX_PATHS
    timeout_seconds: float | None = None
    max_workers: int = 1


@dataclass(frozen=True)
class AnalysisResult:
    """Outputs of one analysis run; absent algorithms are None."""

    snapshot: GraphSnapshot
    index: AdjacencyIndex
    algorithms: tuple[Algorithm, ...]
    analyzed_at: datetime
    centrality: CentralityResult | None = None
    ranking: InfluenceRanking | None = None
    communities: CommunityResult | None = None
    paths: PathResult | None = None

    def graph_stats(self) -> dict[str, Any]:
        """
        Snapshot totals and analysis timestamp.

        Returns
        -------
        dict[str, Any]
            ``total_nodes``, ``total_relationships`` and ``analyzed_at``.
        """
        return {
            "total_nodes": len(self.snapshot.nodes),
            "total_relationships": len(self.snapshot.edges),
            "analyzed_at": self.analyzed_at.isoformat(),
        }

    def to_response(self) -> dict[str, Any]:
        """
        Build the ``algorithm_results`` / ``graph_stats`` response payload.

        Returns
        -------
        dict[str, Any]
            JSON-friendly response body.
        """
        results: dict[str, Any] = {}
        if self.centrality is not None and self.ranking is not None:
            node_map = self.snapshot.node_map()
            results["centrality"] = {
                "top_influential_nodes": [
                    {
                        "node": node_map[item.node_id].to_dict(),
                        "degree": item.centrality.degree,
                        "betweenness": item.centrality.betweenness,
                        "closeness": item.centrality.closeness,
                        "eigenvector": item.centrality.eigenvector,
                        "influence_score": item.influence_score,
                    }
                    for item in self.ranking.ranked[:TOP_INFLUENTIAL_NODES]
                ],
                "avg_degree": self.centrality.avg_degree,
                "max_degree": self.centrality.max_degree,
            }
        if self.communities is not None:
            results["communities"] = {
                "total_communities": self.communities.total_communities,
                "communities": [c.to_dict() for c in self.communities.communities],
            }
        if self.paths is not None:
            results["paths"] = {
                "shortest_paths": [p.to_dict() for p in self.paths.shortest_paths],
                "avg_path_length": self.paths.avg_path_length,
            }
        return {"algorithm_results": results, "graph_stats": self.graph_stats()}


def resolve_algorithms(requested: Iterable[str] | str | None) -> tuple[Algorithm, ...]:
    """
    Normalize a requested algorithm selection.

    Returns
    -------
    tuple[Algorithm, ...]
        Selected algorithms in canonical order; all of them when nothing is requested.

    Raises
    ------
    ValueError
        When an unknown algorithm name is requested.
    """
    if requested is None:
        return ALL_ALGORITHMS
    names = {requested} if isinstance(requested, str) else set(requested)
    if not names:
        return ALL_ALGORITHMS
    unknown = names.difference(ALL_ALGORITHMS)
    if unknown:
        message = f"Unknown algorithm_type: {', '.join(sorted(unknown))}"
        raise ValueError(message)
    return tuple(name for name in ALL_ALGORITHMS if name in names)


class GraphAnalyticsEngine:
    """
    Stateless analytics over one immutable snapshot per call.

    Each call builds its own adjacency index and deadline, so concurrent calls
    share nothing mutable.
    """

    def __init__(
        self,
        options: EngineOptions | None = None,
        *,
        telemetry: AnalysisTelemetry | None = None,
        clock: Callable[[], datetime] | None = None,
        timer: Callable[[], float] = monotonic,
    ) -> None:
        self.options = options or EngineOptions()
        self.telemetry = telemetry or AnalysisTelemetry()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._timer = timer

    def with_options(self, options: EngineOptions) -> GraphAnalyticsEngine:
        """
        Return an engine with new options sharing this engine's clocks and telemetry.

        Returns
        -------
        GraphAnalyticsEngine
            Reconfigured engine.
        """
        return GraphAnalyticsEngine(
            options,
            telemetry=self.telemetry,
            clock=self._clock,
            timer=self._timer,
        )

    def _centrality_engine(self) -> CentralityEngine:
        return CentralityEngine(self.options.centrality)

    def _ranker(self) -> InfluenceRanker:
        return InfluenceRanker(weights=self.options.weights, top_k=self.options.top_k)

    def analyze(
        self,
        snapshot: GraphSnapshot,
        algorithms: Iterable[str] | str | None = None,
        *,
        identified_by: str | None = None,
    ) -> AnalysisResult:
        """
        Run the requested algorithms over a snapshot.

        Centrality (with ranking) and communities run as independent tasks
        over one shared index; paths follow over the highest-degree nodes.

        Parameters
        ----------
        snapshot
            Snapshot to analyze.
        algorithms
            Subset of ``centrality``, ``communities``, ``paths``; all when None.
        identified_by
            Actor recorded on influencer records.

        Returns
        -------
        AnalysisResult
            Results for the selected algorithms.

        Raises
        ------
        NoGraphDataError
            When the snapshot has no nodes.
        """
        selected = resolve_algorithms(algorithms)
        if snapshot.is_empty:
            raise NoGraphDataError
        opts = self.options
        deadline = Deadline(timeout_seconds=opts.timeout_seconds, clock=self._timer)
        analyzed_at = self._clock()
        index = AdjacencyIndex.from_snapshot(snapshot)
        _ = index.multigraph
        record = AnalysisRunRecord(
            algorithms=selected,
            node_count=index.node_count,
            edge_count=index.edge_count,
            betweenness_mode=opts.centrality.betweenness_mode,
        )
        with self.telemetry.run(record):
            tasks: dict[str, Callable[[], object]] = {}
            if "centrality" in selected:

                def _centrality() -> object:
                    with self.telemetry.stage(record, "centrality"):
                        result = self._centrality_engine().compute(
                            snapshot, index, deadline=deadline
                        )
                        ranking = self._ranker().rank(
                            result.records, identified_by=identified_by, now=analyzed_at
                        )
                    return result, ranking

                tasks["centrality"] = _centrality
            if "communities" in selected:

                def _communities() -> object:
                    with self.telemetry.stage(record, "communities"):
                        return CommunityDetector().detect(index, deadline=deadline)

                tasks["communities"] = _communities
            outputs = run_tasks(tasks, max_workers=opts.max_workers, deadline=deadline)

            paths: PathResult | None = None
            if "paths" in selected:
                with self.telemetry.stage(record, "paths"):
                    finder = PathFinder(hub_count=opts.path_hub_count, max_paths=opts.max_paths)
                    paths = finder.find(index, snapshot.node_map(), deadline=deadline)

        centrality: CentralityResult | None = None
        ranking: InfluenceRanking | None = None
        if "centrality" in outputs:
            centrality, ranking = outputs["centrality"]  # type: ignore[misc]
        communities = outputs.get("communities")
        log.info(
            "Analyzed graph nodes=%d edges=%d dropped=%d algorithms=%s duration_ms=%.2f",
            index.node_count,
            index.edge_count,
            index.dropped_edges,
            ",".join(selected),
            record.duration_ms,
        )
        return AnalysisResult(
            snapshot=snapshot,
            index=index,
            algorithms=selected,
            analyzed_at=analyzed_at,
            centrality=centrality,
            ranking=ranking,
            communities=communities,  # type: ignore[arg-type]
            paths=paths,
        )

    def rank_influencers(
        self,
        snapshot: GraphSnapshot,
        *,
        identified_by: str | None = None,
    ) -> InfluenceRanking:
        """
        Compute centrality and return the composite influence ranking.

        Returns
        -------
        InfluenceRanking
            Full ranking with the configured top-K slice.
        """
        result = self.analyze(snapshot, "centrality", identified_by=identified_by)
        if result.ranking is None:
            message = "Centrality ranking missing from analysis result"
            raise RuntimeError(message)
        return result.ranking
