"""Directed and undirected adjacency views over a graph snapshot."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cached_property

import networkx as nx

from graphinsight.core.types import Edge, GraphSnapshot, Node

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdjacentEdge:
    """One directed hop out of (or into) a node."""

    node_id: str
    relationship_type: str
    weight: float


@dataclass(frozen=True)
class AdjacencyIndex:
    """
    Adjacency lists built once per snapshot.

    ``undirected`` repeats a neighbor once per connecting edge, so multi-edges
    and self-loops keep their multiplicity. Every node id has an entry in every
    map, possibly empty. Edges referencing unknown node ids are dropped.
    """

    node_ids: tuple[str, ...]
    directed_out: dict[str, list[AdjacentEdge]]
    directed_in: dict[str, list[AdjacentEdge]]
    undirected: dict[str, list[str]]
    edge_count: int
    dropped_edges: int

    @classmethod
    def build(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> AdjacencyIndex:
        """
        Construct the index in O(|V| + |E|).

        Parameters
        ----------
        nodes
            Snapshot nodes; order is preserved in ``node_ids``.
        edges
            Snapshot edges; dangling edges are skipped.

        Returns
        -------
        AdjacencyIndex
            Populated index.
        """
        node_ids = tuple(node.id for node in nodes)
        directed_out: dict[str, list[AdjacentEdge]] = {node_id: [] for node_id in node_ids}
        directed_in: dict[str, list[AdjacentEdge]] = {node_id: [] for node_id in node_ids}
        undirected: dict[str, list[str]] = {node_id: [] for node_id in node_ids}
        kept = 0
        dropped = 0
        for edge in edges:
            src, dst = edge.from_node_id, edge.to_node_id
            if src not in directed_out or dst not in directed_out:
                dropped += 1
                continue
            weight = edge.weight
            directed_out[src].append(AdjacentEdge(dst, edge.relationship_type, weight))
            directed_in[dst].append(AdjacentEdge(src, edge.relationship_type, weight))
            undirected[src].append(dst)
            undirected[dst].append(src)
            kept += 1
        if dropped:
            log.debug("Dropped %d dangling edges while building adjacency", dropped)
        return cls(
            node_ids=node_ids,
            directed_out=directed_out,
            directed_in=directed_in,
            undirected=undirected,
            edge_count=kept,
            dropped_edges=dropped,
        )

    @classmethod
    def from_snapshot(cls, snapshot: GraphSnapshot) -> AdjacencyIndex:
        """
        Construct the index for a full snapshot.

        Returns
        -------
        AdjacencyIndex
            Populated index.
        """
        return cls.build(snapshot.nodes, snapshot.edges)

    @property
    def node_count(self) -> int:
        """Number of nodes in the index."""
        return len(self.node_ids)

    def undirected_degree(self, node_id: str) -> int:
        """
        Count undirected incidences of a node.

        Returns
        -------
        int
            Length of the node's undirected adjacency list.
        """
        return len(self.undirected.get(node_id, ()))

    def iter_directed_edges(self) -> Iterable[tuple[str, str]]:
        """
        Yield kept edges as ``(source, target)`` pairs.

        Yields
        ------
        tuple[str, str]
            Source and target node ids.
        """
        for src, targets in self.directed_out.items():
            for hop in targets:
                yield src, hop.node_id

    @cached_property
    def multigraph(self) -> nx.MultiGraph:
        """
        Undirected NetworkX view with one edge per kept relationship.

        Built on first use and shared by every algorithm of a run. Node order
        follows ``node_ids``; self-loops and parallel edges are kept.

        Returns
        -------
        nx.MultiGraph
            Graph mirroring ``undirected``.
        """
        graph = nx.MultiGraph()
        graph.add_nodes_from(self.node_ids)
        graph.add_edges_from(self.iter_directed_edges())
        return graph

    def to_undirected_graph(self) -> nx.Graph:
        """
        Collapse the multigraph into a simple undirected graph.

        Self-loops and parallel edges are dropped since they never lie on a
        shortest path.

        Returns
        -------
        nx.Graph
            Graph with every node id and one edge per adjacent pair.
        """
        graph = nx.Graph(self.multigraph)
        graph.remove_edges_from(list(nx.selfloop_edges(graph)))
        return graph
