"""Tests for hub selection and shortest paths between hubs."""

from __future__ import annotations

import pytest

from graphinsight.analytics.paths import PathFinder, select_hubs, shortest_path
from graphinsight.core.types import GraphSnapshot
from graphinsight.graphs.adjacency import AdjacencyIndex
from tests._helpers.builders import snapshot


def test_path_length_is_shortest(triangle_index: AdjacencyIndex) -> None:
    """a reaches d through c in two hops."""
    path = shortest_path(triangle_index.multigraph, "a", "d")
    if path != ["a", "c", "d"]:
        pytest.fail(f"Unexpected path {path}")


def test_unreachable_returns_none() -> None:
    """Separate components have no path."""
    index = AdjacencyIndex.from_snapshot(snapshot("abcd", [("a", "b"), ("c", "d")]))
    if shortest_path(index.multigraph, "a", "d") is not None:
        pytest.fail("Disconnected pair should have no path")
    if shortest_path(index.multigraph, "a", "a") != ["a"]:
        pytest.fail("Trivial path should contain the source only")


def test_select_hubs_orders_by_degree_then_snapshot(triangle_index: AdjacencyIndex) -> None:
    """Ties keep snapshot order."""
    if select_hubs(triangle_index, 3) != ["c", "a", "b"]:
        pytest.fail(f"Unexpected hubs {select_hubs(triangle_index, 3)}")


def test_finder_returns_hub_pair_paths(triangle: GraphSnapshot, triangle_index: AdjacencyIndex) -> None:
    """Every connected hub pair yields a path; lengths average correctly."""
    result = PathFinder(hub_count=5, max_paths=10).find(triangle_index, triangle.node_map())
    pairs = [(p.from_node.id, p.to_node.id) for p in result.shortest_paths]
    expected = [("c", "a"), ("c", "b"), ("c", "d"), ("a", "b"), ("a", "d"), ("b", "d")]
    if pairs != expected:
        pytest.fail(f"Unexpected hub pairs {pairs}")
    if result.avg_path_length != 8 / 6:
        pytest.fail(f"Unexpected average {result.avg_path_length}")
    payload = result.shortest_paths[4].to_dict()
    if payload["path_length"] != 2 or payload["from"]["id"] != "a":  # noqa: PLR2004
        pytest.fail(f"Unexpected payload {payload}")


def test_finder_caps_paths(triangle: GraphSnapshot, triangle_index: AdjacencyIndex) -> None:
    """max_paths bounds the output."""
    result = PathFinder(hub_count=4, max_paths=2).find(triangle_index, triangle.node_map())
    if len(result.shortest_paths) != 2:  # noqa: PLR2004
        pytest.fail("Path count should be capped")


def test_disconnected_graph_has_no_paths() -> None:
    """No edges, no hubs, average length zero."""
    graph = snapshot("xyz", [])
    result = PathFinder().find(AdjacencyIndex.from_snapshot(graph), graph.node_map())
    if result.shortest_paths or result.avg_path_length != 0.0:
        pytest.fail("Expected no paths")
