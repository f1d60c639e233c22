"""Repository for knowledge-graph nodes and relationships."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from graphinsight.core.types import Edge, GraphSnapshot, Node, normalize_properties
from graphinsight.storage.repositories.base import BaseRepository, fetch_all_dicts

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GraphRepository(BaseRepository):
    """Read and load the graph entity store."""

    def list_nodes(self) -> list[Node]:
        """
        Return every stored node in insertion order.

        Returns
        -------
        list[Node]
            Nodes with decoded property maps.
        """
        rows = fetch_all_dicts(
            self.con,
            "SELECT node_id, label, node_type, properties FROM graph.nodes ORDER BY rowid",
            [],
        )
        return [
            Node(
                id=row["node_id"],
                label=row["label"],
                node_type=row["node_type"],
                properties=normalize_properties(row["properties"]),
            )
            for row in rows
        ]

    def list_edges(self) -> list[Edge]:
        """
        Return every stored relationship in insertion order.

        Returns
        -------
        list[Edge]
            Relationships with decoded property maps.
        """
        rows = fetch_all_dicts(
            self.con,
            """
            SELECT from_node_id, to_node_id, relationship_type, properties
            FROM graph.relationships
            ORDER BY rowid
            """,
            [],
        )
        return [
            Edge(
                from_node_id=row["from_node_id"],
                to_node_id=row["to_node_id"],
                relationship_type=row["relationship_type"],
                properties=normalize_properties(row["properties"]),
            )
            for row in rows
        ]

    def load_snapshot(self, snapshot: GraphSnapshot, *, replace: bool = True) -> None:
        """
        Write a snapshot into the store inside one transaction.

        Parameters
        ----------
        snapshot
            Nodes and relationships to write.
        replace
            When True, existing nodes and relationships are deleted first.
        """
        con = self.con
        con.execute("BEGIN TRANSACTION")
        try:
            if replace:
                con.execute("DELETE FROM graph.relationships")
                con.execute("DELETE FROM graph.nodes")
            if snapshot.nodes:
                con.executemany(
                    "INSERT INTO graph.nodes VALUES (?, ?, ?, ?)",
                    [
                        (node.id, node.label, node.node_type, json.dumps(dict(node.properties)))
                        for node in snapshot.nodes
                    ],
                )
            if snapshot.edges:
                con.executemany(
                    "INSERT INTO graph.relationships VALUES (?, ?, ?, ?)",
                    [
                        (
                            edge.from_node_id,
                            edge.to_node_id,
                            edge.relationship_type,
                            json.dumps(dict(edge.properties)),
                        )
                        for edge in snapshot.edges
                    ],
                )
        except Exception:
            con.execute("ROLLBACK")
            raise
        con.execute("COMMIT")
        log.info(
            "Loaded graph snapshot nodes=%d relationships=%d replace=%s",
            len(snapshot.nodes),
            len(snapshot.edges),
            replace,
        )

    def snapshot(self) -> GraphSnapshot:
        """
        Read the whole store as one snapshot.

        Returns
        -------
        GraphSnapshot
            Nodes then relationships, read sequentially.
        """
        nodes = self.list_nodes()
        edges = self.list_edges()
        return GraphSnapshot.of(nodes, edges)
