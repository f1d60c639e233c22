"""DuckDB-backed graph and influencer repositories."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from graphinsight.analytics.engine import GraphAnalyticsEngine
from graphinsight.core.types import GraphSnapshot
from graphinsight.storage.gateway import StorageConfig, StorageGateway, open_gateway
from graphinsight.storage.repositories import GraphRepository, InfluencerRepository
from graphinsight.storage.schemas import TABLE_DDL, assert_schema_alignment
from tests._helpers.builders import edge, node

STAMP = datetime(2024, 5, 1, 9, 30, tzinfo=UTC)


def _snapshot() -> GraphSnapshot:
    return GraphSnapshot.of(
        [
            node("acme", properties={"industry": "fintech", "tags": ["b2b"], "score": 4.5}),
            node("globex", node_type="investor"),
        ],
        [edge("globex", "acme", relationship_type="INVESTS_IN", weight=2.0)],
    )


def test_schema_is_applied_and_aligned(memory_gateway: StorageGateway) -> None:
    """A fresh gateway carries every codified table."""
    if assert_schema_alignment(memory_gateway.con, strict=True):
        pytest.fail("Fresh schema should have no drift")
    if set(TABLE_DDL) != {"graph.nodes", "graph.relationships", "analytics.key_influencers"}:
        pytest.fail(f"Unexpected tables {sorted(TABLE_DDL)}")


def test_schema_drift_is_detected(memory_gateway: StorageGateway) -> None:
    """Extra columns are reported as drift."""
    memory_gateway.execute("ALTER TABLE graph.nodes ADD COLUMN extra VARCHAR")
    with pytest.raises(RuntimeError, match=r"graph\.nodes"):
        assert_schema_alignment(memory_gateway.con, strict=True)
    if not assert_schema_alignment(memory_gateway.con, strict=False):
        pytest.fail("Non-strict check should return issues")


def test_missing_table_is_reported(memory_gateway: StorageGateway) -> None:
    """Dropped tables are named in the drift report."""
    memory_gateway.execute("DROP TABLE analytics.key_influencers")
    issues = assert_schema_alignment(memory_gateway.con, strict=False)
    if issues != ["analytics.key_influencers: table missing"]:
        pytest.fail(f"Unexpected issues {issues}")


def test_graph_snapshot_round_trip(memory_gateway: StorageGateway) -> None:
    """Loaded snapshots read back with properties and order intact."""
    repo = GraphRepository(memory_gateway)
    original = _snapshot()
    repo.load_snapshot(original)
    loaded = repo.snapshot()
    if loaded != original:
        pytest.fail(f"Round trip mismatch: {loaded}")
    if loaded.edges[0].weight != 2.0:  # noqa: PLR2004
        pytest.fail("Edge weight should survive storage")


def test_load_appends_without_replace(memory_gateway: StorageGateway) -> None:
    """replace=False keeps existing rows."""
    repo = GraphRepository(memory_gateway)
    repo.load_snapshot(GraphSnapshot.of([node("a")], []))
    repo.load_snapshot(GraphSnapshot.of([node("b")], [edge("a", "b")]), replace=False)
    if [n.id for n in repo.list_nodes()] != ["a", "b"] or len(repo.list_edges()) != 1:
        pytest.fail("Append should keep the first snapshot")


def test_failed_load_rolls_back(memory_gateway: StorageGateway) -> None:
    """A constraint failure leaves the store unchanged."""
    repo = GraphRepository(memory_gateway)
    repo.load_snapshot(GraphSnapshot.of([node("a")], []))
    with pytest.raises(Exception, match="(?i)constraint|duplicate"):  # noqa: PT011
        repo.load_snapshot(GraphSnapshot.of([node("a")], []), replace=False)
    if [n.id for n in repo.list_nodes()] != ["a"]:
        pytest.fail("Rollback should keep the original node only")


def test_influencer_records_persist(memory_gateway: StorageGateway) -> None:
    """Ranked records are written with every column and read back by rank."""
    ranking = GraphAnalyticsEngine(clock=lambda: STAMP).rank_influencers(
        _snapshot(), identified_by="analyst"
    )
    repo = InfluencerRepository(memory_gateway)
    for record in ranking.top:
        repo.create(record)
    if repo.count() != len(ranking.top):
        pytest.fail("Every record should be persisted")
    rows = repo.list_latest(limit=5)
    if [row["node_id"] for row in rows] != [r.node_id for r in ranking.top]:
        pytest.fail("Rows should come back in rank order")
    first = rows[0]
    if first["rank"] != 1 or first["identified_by"] != "analyst":
        pytest.fail(f"Unexpected row {first}")
    if first["identified_at"] != STAMP.replace(tzinfo=None):
        pytest.fail("identified_at should be stored as naive UTC")


def test_readonly_gateway_requires_existing_file(tmp_path: Path) -> None:
    """Read-only mode never creates a database."""
    with pytest.raises(FileNotFoundError):
        open_gateway(StorageConfig.for_readonly(tmp_path / "missing.duckdb"))


def test_ingest_gateway_creates_database(tmp_path: Path) -> None:
    """Ingest mode creates parent directories and applies the schema."""
    db_path = tmp_path / "nested" / "graph.duckdb"
    gateway = open_gateway(StorageConfig.for_ingest(db_path))
    try:
        GraphRepository(gateway).load_snapshot(_snapshot())
    finally:
        gateway.close()
    reopened = open_gateway(StorageConfig.for_readonly(db_path))
    try:
        if len(GraphRepository(reopened).list_nodes()) != 2:  # noqa: PLR2004
            pytest.fail("Nodes should persist across connections")
    finally:
        reopened.close()


@pytest.mark.parametrize("stem", ["graph", "analytics", "main"])
def test_database_named_after_schema(tmp_path: Path, stem: str) -> None:
    """File names matching schema names do not shadow the graph tables."""
    db_path = tmp_path / f"{stem}.duckdb"
    gateway = open_gateway(StorageConfig.for_ingest(db_path))
    try:
        GraphRepository(gateway).load_snapshot(_snapshot())
        with gateway.cursor() as cur:
            row = cur.execute("SELECT COUNT(*) FROM graph.nodes").fetchone()
        if row is None or row[0] != 2:  # noqa: PLR2004
            pytest.fail(f"Cursor should see the stored nodes, got {row}")
    finally:
        gateway.close()
    reopened = open_gateway(StorageConfig.for_readonly(db_path))
    try:
        if [n.id for n in GraphRepository(reopened).list_nodes()] != ["acme", "globex"]:
            pytest.fail("Nodes should read back from a schema-named database")
    finally:
        reopened.close()
