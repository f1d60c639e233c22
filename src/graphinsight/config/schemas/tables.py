"""Table schema registry for the graph store and analytics outputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ColumnType = Literal[
    "BOOLEAN",
    "INTEGER",
    "BIGINT",
    "DOUBLE",
    "VARCHAR",
    "JSON",
    "TIMESTAMP",
]


@dataclass(frozen=True)
class Column:
    """Definition of a single table column."""

    name: str
    type: ColumnType
    nullable: bool = True
    description: str | None = None


@dataclass(frozen=True)
class Index:
    """Secondary index definition."""

    name: str
    columns: tuple[str, ...]
    unique: bool = False


@dataclass(frozen=True)
class TableSchema:
    """Schema definition for a DuckDB table."""

    schema: str
    name: str
    columns: list[Column]
    primary_key: tuple[str, ...] = ()
    indexes: tuple[Index, ...] = ()
    description: str | None = None

    @property
    def fq_name(self) -> str:
        """Fully qualified table name."""
        return f"{self.schema}.{self.name}"

    def column_names(self) -> list[str]:
        """
        Ordered column names.

        Returns
        -------
        list[str]
            Column names in definition order.
        """
        return [col.name for col in self.columns]


TABLE_SCHEMAS: dict[str, TableSchema] = {
    "graph.nodes": TableSchema(
        schema="graph",
        name="nodes",
        columns=[
            Column("node_id", "VARCHAR", nullable=False, description="Unique node identifier"),
            Column("label", "VARCHAR", nullable=False),
            Column("node_type", "VARCHAR", nullable=False),
            Column("properties", "JSON", description="Open key-value property map"),
        ],
        primary_key=("node_id",),
        description="Knowledge-graph entities.",
    ),
    "graph.relationships": TableSchema(
        schema="graph",
        name="relationships",
        columns=[
            Column("from_node_id", "VARCHAR", nullable=False),
            Column("to_node_id", "VARCHAR", nullable=False),
            Column("relationship_type", "VARCHAR", nullable=False),
            Column("properties", "JSON", description="Open key-value map; 'weight' is read"),
        ],
        indexes=(
            Index("idx_relationships_from", ("from_node_id",)),
            Index("idx_relationships_to", ("to_node_id",)),
        ),
        description="Directed relationships; endpoints are not enforced.",
    ),
    "analytics.key_influencers": TableSchema(
        schema="analytics",
        name="key_influencers",
        columns=[
            Column("node_id", "VARCHAR", nullable=False),
            Column("label", "VARCHAR"),
            Column("node_type", "VARCHAR"),
            Column("degree", "INTEGER", nullable=False),
            Column("in_degree", "INTEGER", nullable=False),
            Column("out_degree", "INTEGER", nullable=False),
            Column("weighted_degree", "DOUBLE"),
            Column("betweenness", "DOUBLE", nullable=False),
            Column("closeness", "DOUBLE", nullable=False),
            Column("eigenvector", "DOUBLE", nullable=False),
            Column("degree_normalized", "DOUBLE", nullable=False),
            Column("betweenness_normalized", "DOUBLE", nullable=False),
            Column("closeness_normalized", "DOUBLE", nullable=False),
            Column("eigenvector_normalized", "DOUBLE", nullable=False),
            Column("influence_score", "DOUBLE", nullable=False),
            Column("rank", "INTEGER", nullable=False),
            Column("identified_at", "TIMESTAMP"),
            Column("identified_by", "VARCHAR"),
        ],
        indexes=(Index("idx_key_influencers_node", ("node_id",)),),
        description="Top-K influencer records, appended per ranking run.",
    ),
}
