"""Global graph statistics: type breakdowns, hubs, isolated nodes and clusters."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Any

from graphinsight.core.types import GraphSnapshot, Node
from graphinsight.graphs.adjacency import AdjacencyIndex

HUB_LIMIT = 10
ISOLATED_EXAMPLES = 5
CLUSTER_LIMIT = 5
CLUSTER_EXAMPLES = 3
HIGHLIGHT_MIN_CONNECTIONS = 5
DEFAULT_CLUSTER_KEY = "industry"
UNKNOWN_CLUSTER = "unknown"


@dataclass(frozen=True)
class Hub:
    """Node ranked by its undirected connection count."""

    node: Node
    connections: int


@dataclass(frozen=True)
class PropertyCluster:
    """Nodes sharing one value of a grouping property."""

    value: str
    count: int
    examples: tuple[str, ...]


@dataclass(frozen=True)
class GraphSummary:
    """Whole-graph statistics for one snapshot."""

    total_nodes: int
    total_relationships: int
    node_types: dict[str, int]
    relationship_types: dict[str, int]
    avg_connections: float
    hubs: tuple[Hub, ...]
    isolated_nodes: int
    isolated_examples: tuple[str, ...]
    cluster_key: str
    clusters: tuple[PropertyCluster, ...]
    highlighted_node_ids: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Summary payload.
        """
        return {
            "total_nodes": self.total_nodes,
            "total_relationships": self.total_relationships,
            "node_types": dict(self.node_types),
            "relationship_types": dict(self.relationship_types),
            "avg_connections": self.avg_connections,
            "hubs": [
                {**hub.node.to_dict(), "connections": hub.connections} for hub in self.hubs
            ],
            "isolated_nodes": self.isolated_nodes,
            "isolated_examples": list(self.isolated_examples),
            "cluster_key": self.cluster_key,
            "clusters": [
                {"value": c.value, "count": c.count, "examples": list(c.examples)}
                for c in self.clusters
            ],
            "highlighted_node_ids": list(self.highlighted_node_ids),
        }


def _cluster_value(node: Node, key: str) -> str:
    raw = node.properties.get(key)
    if raw is None or raw == "":
        return UNKNOWN_CLUSTER
    return str(raw)


def summarize_graph(
    snapshot: GraphSnapshot,
    index: AdjacencyIndex | None = None,
    *,
    cluster_key: str = DEFAULT_CLUSTER_KEY,
) -> GraphSummary:
    """
    Compute type breakdowns, hubs, isolated nodes and property clusters.

    Relationship counts use the raw edge list, dangling edges included;
    connection counts use only edges that survived adjacency construction.

    Parameters
    ----------
    snapshot
        Snapshot to summarize.
    index
        Prebuilt adjacency index; built when omitted.
    cluster_key
        Node property used to group clusters.

    Returns
    -------
    GraphSummary
        Statistics for the snapshot.
    """
    idx = index or AdjacencyIndex.from_snapshot(snapshot)
    node_types = Counter(node.node_type for node in snapshot.nodes)
    relationship_types = Counter(edge.relationship_type for edge in snapshot.edges)
    connections = {node.id: idx.undirected_degree(node.id) for node in snapshot.nodes}

    connected = [node for node in snapshot.nodes if connections[node.id] > 0]
    connected.sort(key=lambda node: connections[node.id], reverse=True)
    hubs = tuple(Hub(node=node, connections=connections[node.id]) for node in connected[:HUB_LIMIT])

    isolated = [node for node in snapshot.nodes if connections[node.id] == 0]

    groups: dict[str, list[Node]] = {}
    for node in snapshot.nodes:
        groups.setdefault(_cluster_value(node, cluster_key), []).append(node)
    ordered_groups = sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)
    clusters = tuple(
        PropertyCluster(
            value=value,
            count=len(members),
            examples=tuple(member.label for member in members[:CLUSTER_EXAMPLES]),
        )
        for value, members in ordered_groups[:CLUSTER_LIMIT]
    )

    total_nodes = len(snapshot.nodes)
    total_relationships = len(snapshot.edges)
    avg_connections = (
        round(total_relationships * 2 / total_nodes, 2)
        if total_relationships and total_nodes
        else 0.0
    )
    return GraphSummary(
        total_nodes=total_nodes,
        total_relationships=total_relationships,
        node_types=dict(node_types),
        relationship_types=dict(relationship_types),
        avg_connections=avg_connections,
        hubs=hubs,
        isolated_nodes=len(isolated),
        isolated_examples=tuple(node.label for node in isolated[:ISOLATED_EXAMPLES]),
        cluster_key=cluster_key,
        clusters=clusters,
        highlighted_node_ids=tuple(
            node.id for node in snapshot.nodes if connections[node.id] > HIGHLIGHT_MIN_CONNECTIONS
        ),
    )
