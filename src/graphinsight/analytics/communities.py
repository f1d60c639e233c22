"""Connected-component communities over the undirected graph view."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import networkx as nx

from graphinsight.analytics.deadline import Deadline
from graphinsight.graphs.adjacency import AdjacencyIndex

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Community:
    """A connected component with more than one node."""

    id: str
    size: int
    nodes: tuple[str, ...]
    density: float

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Community payload.
        """
        return {
            "id": self.id,
            "size": self.size,
            "nodes": list(self.nodes),
            "density": self.density,
        }


@dataclass(frozen=True)
class CommunityResult:
    """Communities detected in one run."""

    communities: tuple[Community, ...]

    @property
    def total_communities(self) -> int:
        """Number of non-trivial communities."""
        return len(self.communities)

    def membership(self) -> dict[str, str]:
        """
        Map each clustered node to its community id.

        Returns
        -------
        dict[str, str]
            Node id to community id.
        """
        return {
            node_id: community.id for community in self.communities for node_id in community.nodes
        }


def connected_components(
    index: AdjacencyIndex,
    *,
    deadline: Deadline | None = None,
) -> list[list[str]]:
    """
    Partition every node into undirected connected components.

    Components come from ``nx.connected_components`` over the shared
    multigraph, which walks iteratively, so long chains cannot exhaust the
    interpreter's recursion limit.

    Returns
    -------
    list[list[str]]
        Components in order of their first node, members in snapshot order.
    """
    position = {node_id: pos for pos, node_id in enumerate(index.node_ids)}
    components: list[list[str]] = []
    for members in nx.connected_components(index.multigraph):
        if deadline is not None:
            deadline.check("communities")
        components.append(sorted(members, key=position.__getitem__))
    components.sort(key=lambda members: position[members[0]])
    return components


def component_density(index: AdjacencyIndex, members: list[str]) -> float:
    """
    Directed-edge density of a component: internal edges over ``size * (size - 1)``.

    Returns
    -------
    float
        Density; 0.0 for components with fewer than two members.
    """
    size = len(members)
    if size < 2:  # noqa: PLR2004
        return 0.0
    member_set = set(members)
    internal = sum(
        1
        for node_id in members
        for hop in index.directed_out[node_id]
        if hop.node_id in member_set
    )
    return internal / (size * (size - 1))


class CommunityDetector:
    """Surface non-trivial connected components as communities."""

    def detect(self, index: AdjacencyIndex, *, deadline: Deadline | None = None) -> CommunityResult:
        """
        Detect communities; singleton components are excluded.

        Returns
        -------
        CommunityResult
            Communities labeled ``community_{n}`` in discovery order.
        """
        communities: list[Community] = []
        for members in connected_components(index, deadline=deadline):
            if len(members) <= 1:
                continue
            communities.append(
                Community(
                    id=f"community_{len(communities)}",
                    size=len(members),
                    nodes=tuple(members),
                    density=component_density(index, members),
                )
            )
        log.info(
            "Detected %d communities across %d nodes", len(communities), index.node_count
        )
        return CommunityResult(communities=tuple(communities))
