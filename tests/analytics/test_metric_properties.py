"""Property-based checks for centrality, communities and ranking."""

from __future__ import annotations

import math
from dataclasses import replace

import networkx as nx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from graphinsight.analytics.centrality import (
    CentralityRecord,
    approximate_betweenness,
    degree_centrality,
    eigenvector_centrality,
    exact_betweenness,
)
from graphinsight.analytics.communities import connected_components
from graphinsight.analytics.engine import GraphAnalyticsEngine
from graphinsight.analytics.influence import InfluenceWeights, SignalMaxima, score_record
from graphinsight.analytics.paths import shortest_path
from graphinsight.core.types import GraphSnapshot
from graphinsight.graphs.adjacency import AdjacencyIndex
from tests._helpers.builders import snapshot


@st.composite
def graphs(draw: st.DrawFn) -> GraphSnapshot:
    """Small random multigraphs, possibly with self-loops and dangling edges."""
    size = draw(st.integers(min_value=1, max_value=8))
    ids = [f"n{i}" for i in range(size)]
    endpoint = st.sampled_from([*ids, "ghost"])
    pairs = draw(st.lists(st.tuples(endpoint, endpoint), max_size=16))
    return snapshot(ids, pairs)


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_degree_sum_matches_kept_edges(graph: GraphSnapshot) -> None:
    """Sum of degrees is twice the number of kept edges."""
    index = AdjacencyIndex.from_snapshot(graph)
    if sum(degree_centrality(index).degree.values()) != 2 * index.edge_count:
        pytest.fail("Degree sum must equal 2|E|")


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_in_and_out_degree_each_sum_to_kept_edges(graph: GraphSnapshot) -> None:
    """Every kept edge adds one out-degree and one in-degree."""
    index = AdjacencyIndex.from_snapshot(graph)
    stats = degree_centrality(index)
    if sum(stats.out_degree.values()) != index.edge_count:
        pytest.fail("Out-degree sum must equal |E|")
    if sum(stats.in_degree.values()) != index.edge_count:
        pytest.fail("In-degree sum must equal |E|")


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_eigenvector_is_unit_or_zero(graph: GraphSnapshot) -> None:
    """Eigenvector scores are L2-normalized unless every node is isolated."""
    index = AdjacencyIndex.from_snapshot(graph)
    scores = eigenvector_centrality(index)
    norm = math.sqrt(sum(v * v for v in scores.values()))
    if not (math.isclose(norm, 1.0, rel_tol=1e-9) or norm == 0.0):
        pytest.fail(f"Unexpected norm {norm}")


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_components_partition_nodes(graph: GraphSnapshot) -> None:
    """Connected components cover every node exactly once."""
    index = AdjacencyIndex.from_snapshot(graph)
    members = [n for component in connected_components(index) for n in component]
    if sorted(members) != sorted(index.node_ids):
        pytest.fail("Components must partition the node set")


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_path_matches_hop_distance(graph: GraphSnapshot) -> None:
    """Path length equals the hop distance for every reachable pair."""
    index = AdjacencyIndex.from_snapshot(graph)
    source = index.node_ids[0]
    distance = nx.single_source_shortest_path_length(index.multigraph, source)
    for target in index.node_ids:
        path = shortest_path(index.multigraph, source, target)
        if (path is None) != (target not in distance):
            pytest.fail("Reachability disagrees with hop distances")
        if path is not None and len(path) - 1 != distance[target]:
            pytest.fail("Path length must equal hop distance")


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_leaves_carry_no_betweenness(graph: GraphSnapshot) -> None:
    """Nodes with at most one distinct neighbor never lie between others."""
    index = AdjacencyIndex.from_snapshot(graph)
    approx = approximate_betweenness(index)
    exact = exact_betweenness(index)
    for node_id in index.node_ids:
        neighbors = set(index.undirected[node_id]) - {node_id}
        if len(neighbors) <= 1 and (approx[node_id] != 0.0 or abs(exact[node_id]) > 1e-9):
            pytest.fail(f"Leaf {node_id} scored {approx[node_id]}/{exact[node_id]}")


@settings(max_examples=30, deadline=None)
@given(graph=graphs())
def test_exact_betweenness_totals_interior_hops(graph: GraphSnapshot) -> None:
    """Exact scores sum to the interior node count of every ordered shortest path."""
    index = AdjacencyIndex.from_snapshot(graph)
    expected = 0
    for source in index.node_ids:
        distance = nx.single_source_shortest_path_length(index.multigraph, source)
        expected += sum(d - 1 for target, d in distance.items() if target != source)
    total = sum(exact_betweenness(index).values())
    if not math.isclose(total, expected, abs_tol=1e-6):
        pytest.fail(f"Exact total {total} != {expected}")


@settings(max_examples=20, deadline=None)
@given(graph=graphs())
def test_influence_scores_bounded(graph: GraphSnapshot) -> None:
    """Composite scores stay within [0, 100] and ranks are contiguous."""
    ranking = GraphAnalyticsEngine().rank_influencers(graph)
    scores = [r.influence_score for r in ranking.ranked]
    if any(not 0.0 <= s <= 100.0 + 1e-9 for s in scores):  # noqa: PLR2004
        pytest.fail(f"Scores out of bounds: {scores}")
    if [r.rank for r in ranking.ranked] != list(range(1, len(scores) + 1)):
        pytest.fail("Ranks must be 1..n")
    if scores != sorted(scores, reverse=True):
        pytest.fail("Ranking must be descending")


@settings(max_examples=50, deadline=None)
@given(
    degree=st.integers(min_value=0, max_value=20),
    betweenness=st.floats(min_value=0.0, max_value=50.0),
    closeness=st.floats(min_value=0.0, max_value=0.5),
    eigenvector=st.floats(min_value=0.0, max_value=0.5),
    signal=st.sampled_from(["degree", "betweenness", "closeness", "eigenvector"]),
    bump=st.integers(min_value=1, max_value=10),
)
def test_influence_score_grows_with_each_signal(  # noqa: PLR0913
    degree: int,
    betweenness: float,
    closeness: float,
    eigenvector: float,
    signal: str,
    bump: int,
) -> None:
    """Raising any single normalized signal raises the composite score."""
    record = CentralityRecord(
        node_id="n0",
        label="n0",
        node_type="company",
        degree=degree,
        in_degree=degree,
        out_degree=0,
        weighted_degree=float(degree),
        betweenness=betweenness,
        closeness=closeness,
        eigenvector=eigenvector,
    )
    maxima = SignalMaxima(degree=40.0, betweenness=100.0, closeness=1.0, eigenvector=1.0)
    step = bump if signal in {"degree", "betweenness"} else bump / 20
    raised = replace(record, **{signal: getattr(record, signal) + step})
    weights = InfluenceWeights()
    before = score_record(record, maxima, weights).influence_score
    after = score_record(raised, maxima, weights).influence_score
    if not after > before:
        pytest.fail(f"Raising {signal} by {step} moved the score {before} -> {after}")
