"""Degree, betweenness, closeness and eigenvector centrality over an adjacency index."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Literal

import networkx as nx

from graphinsight.analytics.deadline import Deadline
from graphinsight.analytics.tasks import run_tasks
from graphinsight.core.types import GraphSnapshot, Node
from graphinsight.graphs.adjacency import AdjacencyIndex
from graphinsight.services.errors import NoGraphDataError

log = logging.getLogger(__name__)

BetweennessMode = Literal["approximate", "exact"]

DEFAULT_EIGENVECTOR_ITERATIONS = 20
EXACT_BETWEENNESS_CHUNK = 64


@dataclass(frozen=True)
class CentralityOptions:
    """Knobs for a centrality run."""

    betweenness_mode: BetweennessMode = "approximate"
    eigenvector_iterations: int = DEFAULT_EIGENVECTOR_ITERATIONS
    eigenvector_tolerance: float | None = None
    max_workers: int = 1


@dataclass(frozen=True)
class DegreeStats:
    """Directed degree counts per node."""

    degree: dict[str, int]
    in_degree: dict[str, int]
    out_degree: dict[str, int]
    weighted_degree: dict[str, float]


@dataclass(frozen=True)
class CentralityRecord:
    """Per-node structural metrics for one run."""

    node_id: str
    label: str
    node_type: str
    degree: int
    in_degree: int
    out_degree: int
    weighted_degree: float
    betweenness: float
    closeness: float
    eigenvector: float

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Record payload.
        """
        return {
            "node_id": self.node_id,
            "label": self.label,
            "node_type": self.node_type,
            "degree": self.degree,
            "in_degree": self.in_degree,
            "out_degree": self.out_degree,
            "weighted_degree": self.weighted_degree,
            "betweenness": self.betweenness,
            "closeness": self.closeness,
            "eigenvector": self.eigenvector,
        }


@dataclass(frozen=True)
class CentralityResult:
    """All centrality records for a snapshot, in snapshot node order."""

    records: tuple[CentralityRecord, ...]
    options: CentralityOptions

    def by_id(self) -> dict[str, CentralityRecord]:
        """
        Index records by node id.

        Returns
        -------
        dict[str, CentralityRecord]
            Mapping of node id to record.
        """
        return {record.node_id: record for record in self.records}

    @property
    def avg_degree(self) -> float:
        """Mean of ``degree`` across all nodes."""
        if not self.records:
            return 0.0
        return sum(record.degree for record in self.records) / len(self.records)

    @property
    def max_degree(self) -> int:
        """Largest ``degree`` observed."""
        return max((record.degree for record in self.records), default=0)


def degree_centrality(index: AdjacencyIndex) -> DegreeStats:
    """
    Count directed in/out degrees over kept edges.

    Returns
    -------
    DegreeStats
        Degree maps keyed by node id.
    """
    out_degree = {node_id: len(index.directed_out[node_id]) for node_id in index.node_ids}
    in_degree = {node_id: len(index.directed_in[node_id]) for node_id in index.node_ids}
    weighted = {
        node_id: sum(hop.weight for hop in index.directed_out[node_id])
        + sum(hop.weight for hop in index.directed_in[node_id])
        for node_id in index.node_ids
    }
    degree = {node_id: in_degree[node_id] + out_degree[node_id] for node_id in index.node_ids}
    return DegreeStats(
        degree=degree,
        in_degree=in_degree,
        out_degree=out_degree,
        weighted_degree=weighted,
    )


def approximate_betweenness(
    index: AdjacencyIndex,
    *,
    deadline: Deadline | None = None,
) -> dict[str, float]:
    """
    Heuristic betweenness used by the dashboard.

    For every source, each reachable target credits every neighbor of the
    target that is strictly closer to the source (excluding the source
    itself) with one unit. This is not Brandes' dependency accumulation: ties
    among shortest paths are not split and only the final hop before each
    target is credited, so scores diverge from exact betweenness on graphs
    with equal-length paths or long chains. Parallel edges credit once per
    edge. Hop distances come from NetworkX single-source BFS over the shared
    multigraph.

    Returns
    -------
    dict[str, float]
        Unnormalized score per node id.
    """
    graph = index.multigraph
    scores = dict.fromkeys(index.node_ids, 0.0)
    for source in index.node_ids:
        if deadline is not None:
            deadline.check("betweenness")
        distance = nx.single_source_shortest_path_length(graph, source)
        for target, target_distance in distance.items():
            if target == source:
                continue
            for intermediate in index.undirected[target]:
                if intermediate == source:
                    continue
                if distance[intermediate] < target_distance:
                    scores[intermediate] += 1.0
    return scores


def exact_betweenness(
    index: AdjacencyIndex,
    *,
    deadline: Deadline | None = None,
) -> dict[str, float]:
    """
    Brandes betweenness via NetworkX, counted over ordered node pairs.

    The undirected multigraph is collapsed to a simple graph. Sources are
    processed in chunks so the deadline is honored between chunks.

    Returns
    -------
    dict[str, float]
        Unnormalized score per node id, on the same ordered-pair scale as
        :func:`approximate_betweenness`.
    """
    graph = index.to_undirected_graph()
    scores = dict.fromkeys(index.node_ids, 0.0)
    targets = list(index.node_ids)
    for start in range(0, len(targets), EXACT_BETWEENNESS_CHUNK):
        if deadline is not None:
            deadline.check("betweenness")
        sources = targets[start : start + EXACT_BETWEENNESS_CHUNK]
        partial = nx.betweenness_centrality_subset(
            graph,
            sources=sources,
            targets=targets,
            normalized=False,
        )
        for node_id, value in partial.items():
            scores[node_id] += 2.0 * float(value)
    return scores


def closeness_centrality(
    index: AdjacencyIndex,
    *,
    deadline: Deadline | None = None,
) -> dict[str, float]:
    """
    Compute ``reachable / sum(distances)`` per node over the undirected view.

    Equivalent to ``nx.closeness_centrality(graph, wf_improved=False)``, but run
    one source at a time so the deadline is checked between sources.

    Returns
    -------
    dict[str, float]
        Closeness per node id; 0.0 for nodes that reach nothing.
    """
    graph = index.multigraph
    scores: dict[str, float] = {}
    for node_id in index.node_ids:
        if deadline is not None:
            deadline.check("closeness")
        distance = nx.single_source_shortest_path_length(graph, node_id)
        reachable = len(distance) - 1
        total = sum(distance.values())
        scores[node_id] = reachable / total if reachable > 0 else 0.0
    return scores


def iter_power_rounds(
    index: AdjacencyIndex,
    *,
    iterations: int = DEFAULT_EIGENVECTOR_ITERATIONS,
    deadline: Deadline | None = None,
) -> Iterator[dict[str, float]]:
    """
    Yield the L2-normalized score vector after each power-iteration round.

    Every round sums neighbor scores over the undirected adjacency, starting
    from 1.0 everywhere. A zero vector stays zero.

    Yields
    ------
    dict[str, float]
        Scores after the round.
    """
    scores = dict.fromkeys(index.node_ids, 1.0)
    for _ in range(iterations):
        if deadline is not None:
            deadline.check("eigenvector")
        accumulated = {
            node_id: sum(scores[neighbor] for neighbor in index.undirected[node_id])
            for node_id in index.node_ids
        }
        norm = math.sqrt(sum(value * value for value in accumulated.values()))
        if norm > 0:
            scores = {node_id: value / norm for node_id, value in accumulated.items()}
        else:
            scores = dict.fromkeys(index.node_ids, 0.0)
        yield scores


def eigenvector_centrality(
    index: AdjacencyIndex,
    *,
    iterations: int = DEFAULT_EIGENVECTOR_ITERATIONS,
    tolerance: float | None = None,
    deadline: Deadline | None = None,
) -> dict[str, float]:
    """
    Fixed-round power iteration, best effort.

    Without ``tolerance`` exactly ``iterations`` rounds run with no convergence
    check, so large or poorly conditioned graphs may not have converged. With a
    tolerance, iteration stops once the L1 change between rounds drops below
    ``tolerance * node_count``.

    Returns
    -------
    dict[str, float]
        Eigenvector score per node id.
    """
    scores = dict.fromkeys(index.node_ids, 1.0)
    previous = scores
    threshold = tolerance * max(index.node_count, 1) if tolerance is not None else None
    rounds = 0
    for scores in iter_power_rounds(index, iterations=iterations, deadline=deadline):
        rounds += 1
        if threshold is not None:
            delta = sum(abs(scores[node_id] - previous[node_id]) for node_id in index.node_ids)
            if delta < threshold:
                log.debug("Eigenvector converged after %d rounds (delta=%.3g)", rounds, delta)
                break
            previous = scores
    return scores


def merge_records(
    nodes: Sequence[Node],
    degrees: DegreeStats,
    betweenness: Mapping[str, float],
    closeness: Mapping[str, float],
    eigenvector: Mapping[str, float],
) -> tuple[CentralityRecord, ...]:
    """
    Join per-metric maps into records by node id.

    Returns
    -------
    tuple[CentralityRecord, ...]
        One record per node, in snapshot order.
    """
    return tuple(
        CentralityRecord(
            node_id=node.id,
            label=node.label,
            node_type=node.node_type,
            degree=degrees.degree[node.id],
            in_degree=degrees.in_degree[node.id],
            out_degree=degrees.out_degree[node.id],
            weighted_degree=degrees.weighted_degree[node.id],
            betweenness=betweenness[node.id],
            closeness=closeness[node.id],
            eigenvector=eigenvector[node.id],
        )
        for node in nodes
    )


class CentralityEngine:
    """Compute the four centrality signals for a snapshot."""

    def __init__(self, options: CentralityOptions | None = None) -> None:
        self.options = options or CentralityOptions()

    def compute(
        self,
        snapshot: GraphSnapshot,
        index: AdjacencyIndex | None = None,
        *,
        deadline: Deadline | None = None,
    ) -> CentralityResult:
        """
        Run degree, betweenness, closeness and eigenvector centrality.

        The four metrics are independent and run as separate tasks; results are
        merged by node id once all complete.

        Parameters
        ----------
        snapshot
            Graph snapshot to analyze.
        index
            Prebuilt adjacency index; built from the snapshot when omitted.
        deadline
            Optional deadline checked inside the per-node loops.

        Returns
        -------
        CentralityResult
            Records for every node.

        Raises
        ------
        NoGraphDataError
            When the snapshot has no nodes.
        """
        if snapshot.is_empty:
            raise NoGraphDataError
        idx = index or AdjacencyIndex.from_snapshot(snapshot)
        # Build the shared view before the tasks fan out to worker threads.
        _ = idx.multigraph
        opts = self.options
        betweenness_fn = (
            exact_betweenness if opts.betweenness_mode == "exact" else approximate_betweenness
        )
        results = run_tasks(
            {
                "degree": lambda: degree_centrality(idx),
                "betweenness": lambda: betweenness_fn(idx, deadline=deadline),
                "closeness": lambda: closeness_centrality(idx, deadline=deadline),
                "eigenvector": lambda: eigenvector_centrality(
                    idx,
                    iterations=opts.eigenvector_iterations,
                    tolerance=opts.eigenvector_tolerance,
                    deadline=deadline,
                ),
            },
            max_workers=opts.max_workers,
            deadline=deadline,
        )
        records = merge_records(
            snapshot.nodes,
            results["degree"],  # type: ignore[arg-type]
            results["betweenness"],  # type: ignore[arg-type]
            results["closeness"],  # type: ignore[arg-type]
            results["eigenvector"],  # type: ignore[arg-type]
        )
        log.info(
            "Computed centrality for %d nodes (%d edges, betweenness=%s)",
            idx.node_count,
            idx.edge_count,
            opts.betweenness_mode,
        )
        return CentralityResult(records=records, options=opts)
