"""Shortest paths between the most connected nodes."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from itertools import combinations
from typing import Any

import networkx as nx

from graphinsight.analytics.deadline import Deadline
from graphinsight.core.types import Node
from graphinsight.graphs.adjacency import AdjacencyIndex

log = logging.getLogger(__name__)

DEFAULT_HUB_COUNT = 5
DEFAULT_MAX_PATHS = 10


@dataclass(frozen=True)
class ShortestPath:
    """Unweighted shortest path between two hub nodes."""

    from_node: Node
    to_node: Node
    path: tuple[str, ...]
    nodes: tuple[Node, ...]

    @property
    def path_length(self) -> int:
        """Number of edges along the path."""
        return len(self.path) - 1

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Path payload with resolved node objects.
        """
        return {
            "from": self.from_node.to_dict(),
            "to": self.to_node.to_dict(),
            "path": list(self.path),
            "path_length": self.path_length,
            "nodes": [node.to_dict() for node in self.nodes],
        }


@dataclass(frozen=True)
class PathResult:
    """Paths found among hub pairs."""

    hubs: tuple[str, ...]
    shortest_paths: tuple[ShortestPath, ...]

    @property
    def avg_path_length(self) -> float:
        """Mean edge count over returned paths; 0.0 when none were found."""
        if not self.shortest_paths:
            return 0.0
        return sum(p.path_length for p in self.shortest_paths) / len(self.shortest_paths)


def shortest_path(graph: nx.MultiGraph, source: str, target: str) -> list[str] | None:
    """
    Find one unweighted shortest path with ``nx.shortest_path``.

    Returns
    -------
    list[str] | None
        Node ids from ``source`` to ``target`` inclusive, or None when the
        target is unreachable.
    """
    try:
        return nx.shortest_path(graph, source, target)
    except nx.NetworkXNoPath:
        return None


def select_hubs(index: AdjacencyIndex, count: int) -> list[str]:
    """
    Pick the ``count`` nodes with the highest undirected degree.

    Ties keep snapshot order; nodes without edges are never selected.

    Returns
    -------
    list[str]
        Hub node ids, most connected first.
    """
    ranked = sorted(
        (node_id for node_id in index.node_ids if index.undirected_degree(node_id) > 0),
        key=index.undirected_degree,
        reverse=True,
    )
    return ranked[:count]


class PathFinder:
    """Targeted shortest-path analysis over a handful of hub pairs."""

    def __init__(
        self,
        *,
        hub_count: int = DEFAULT_HUB_COUNT,
        max_paths: int = DEFAULT_MAX_PATHS,
    ) -> None:
        self.hub_count = hub_count
        self.max_paths = max_paths

    def find(
        self,
        index: AdjacencyIndex,
        node_map: Mapping[str, Node],
        *,
        deadline: Deadline | None = None,
    ) -> PathResult:
        """
        Search each unordered hub pair, skipping disconnected pairs.

        Returns
        -------
        PathResult
            Up to ``max_paths`` paths in hub-pair order.
        """
        hubs = select_hubs(index, self.hub_count)
        found: list[ShortestPath] = []
        for source, target in combinations(hubs, 2):
            if len(found) >= self.max_paths:
                break
            if deadline is not None:
                deadline.check("paths")
            path = shortest_path(index.multigraph, source, target)
            if path is None:
                continue
            found.append(
                ShortestPath(
                    from_node=node_map[source],
                    to_node=node_map[target],
                    path=tuple(path),
                    nodes=tuple(node_map[node_id] for node_id in path),
                )
            )
        log.info("Found %d shortest paths among %d hubs", len(found), len(hubs))
        return PathResult(hubs=tuple(hubs), shortest_paths=tuple(found))
