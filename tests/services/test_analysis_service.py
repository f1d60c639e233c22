"""AnalysisService orchestration over stores and inline snapshots."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

from graphinsight.analytics.engine import EngineOptions, GraphAnalyticsEngine
from graphinsight.analytics.influence import InfluencerRecord
from graphinsight.config.models import AnalyticsConfig
from graphinsight.core.types import Edge, GraphSnapshot, Node
from graphinsight.services.analysis_service import AnalysisService
from graphinsight.services.errors import InvalidGraphError, NoGraphDataError, StorageError
from graphinsight.services.wiring import build_service_resource
from graphinsight.storage.gateway import DuckDBError, StorageGateway
from graphinsight.storage.repositories import GraphRepository, InfluencerRepository
from tests._helpers.builders import graph_payload


class _MemoryGraphStore:
    def __init__(self, graph: GraphSnapshot) -> None:
        self.graph = graph
        self.calls: list[str] = []

    def list_nodes(self) -> Sequence[Node]:
        self.calls.append("nodes")
        return self.graph.nodes

    def list_edges(self) -> Sequence[Edge]:
        self.calls.append("edges")
        return self.graph.edges


class _FlakyRecordStore:
    def __init__(self, failing: set[str]) -> None:
        self.failing = failing
        self.stored: list[str] = []

    def create(self, record: InfluencerRecord) -> None:
        if record.node_id in self.failing:
            message = f"cannot store {record.node_id}"
            raise RuntimeError(message)
        self.stored.append(record.node_id)


class _BrokenGraphStore:
    def list_nodes(self) -> Sequence[Node]:
        message = "IO Error: database locked"
        raise DuckDBError(message)

    def list_edges(self) -> Sequence[Edge]:
        return ()


def test_store_reads_nodes_then_edges(triangle: GraphSnapshot) -> None:
    """Snapshots come from the entity store, nodes first."""
    store = _MemoryGraphStore(triangle)
    service = AnalysisService(GraphAnalyticsEngine(), graph_store=store)
    response = service.analyze(algorithm_type="centrality")
    if store.calls != ["nodes", "edges"]:
        pytest.fail(f"Unexpected store calls {store.calls}")
    if set(response["algorithm_results"]) != {"centrality"}:
        pytest.fail("Only centrality was requested")


def test_inline_graph_data_bypasses_store(triangle: GraphSnapshot) -> None:
    """graph_data takes precedence over the store."""
    store = _MemoryGraphStore(GraphSnapshot.of([], []))
    service = AnalysisService(GraphAnalyticsEngine(), graph_store=store)
    response = service.analyze(graph_data=graph_payload(triangle))
    if store.calls:
        pytest.fail("Store should not be read when graph_data is given")
    if response["graph_stats"]["total_nodes"] != 4:  # noqa: PLR2004
        pytest.fail("Inline snapshot should be analyzed")


def test_unknown_algorithm_is_invalid(triangle: GraphSnapshot) -> None:
    """Bad algorithm names are client errors."""
    service = AnalysisService(GraphAnalyticsEngine())
    with pytest.raises(InvalidGraphError, match="pagerank"):
        service.analyze(algorithm_type="pagerank", graph_data=graph_payload(triangle))


def test_missing_store_and_data_is_invalid() -> None:
    """Without a store, graph_data is required."""
    with pytest.raises(InvalidGraphError):
        AnalysisService(GraphAnalyticsEngine()).analyze()


def test_empty_store_reports_no_data() -> None:
    """An empty store is a no-data error for analysis and summaries."""
    service = AnalysisService(
        GraphAnalyticsEngine(), graph_store=_MemoryGraphStore(GraphSnapshot.of([], []))
    )
    with pytest.raises(NoGraphDataError):
        service.analyze()
    with pytest.raises(NoGraphDataError):
        service.summarize()


def test_store_failure_aborts_request() -> None:
    """DuckDB errors while reading become storage problems."""
    service = AnalysisService(GraphAnalyticsEngine(), graph_store=_BrokenGraphStore())
    with pytest.raises(StorageError, match="database locked"):
        service.identify_influencers()


def test_persistence_is_best_effort(triangle: GraphSnapshot) -> None:
    """A failing record is counted while the rest are stored."""
    records = _FlakyRecordStore(failing={"a"})
    service = AnalysisService(
        GraphAnalyticsEngine(EngineOptions(top_k=3)),
        graph_store=_MemoryGraphStore(triangle),
        record_store=records,
    )
    run = service.identify_influencers(identified_by="analyst")
    response = run.to_response()
    if len(response["influencers"]) != 3:  # noqa: PLR2004
        pytest.fail("Top-K should be returned regardless of persistence")
    persistence = response["persistence"]
    if (persistence["attempted"], persistence["succeeded"], persistence["failed"]) != (3, 2, 1):
        pytest.fail(f"Unexpected persistence report {persistence}")
    if "a" in records.stored or len(records.stored) != 2:  # noqa: PLR2004
        pytest.fail(f"Unexpected stored ids {records.stored}")
    if response["summary"]["total_nodes"] != 4:  # noqa: PLR2004
        pytest.fail("Summary spans every ranked node")


def test_top_k_override_and_disabled_persistence(triangle: GraphSnapshot) -> None:
    """Request-level top_k wins; persistence can be switched off."""
    records = _FlakyRecordStore(failing=set())
    service = AnalysisService(
        GraphAnalyticsEngine(),
        graph_store=_MemoryGraphStore(triangle),
        record_store=records,
        persist_influencers=False,
    )
    run = service.identify_influencers(top_k=1)
    if len(run.ranking.top) != 1 or records.stored:
        pytest.fail("Expected one influencer and no writes")
    if run.persistence.attempted != 0:
        pytest.fail("Disabled persistence should attempt nothing")


def test_summary_from_inline_data(triangle: GraphSnapshot) -> None:
    """summarize works over inline snapshots too."""
    summary = AnalysisService(GraphAnalyticsEngine()).summarize(graph_data=graph_payload(triangle))
    if summary["hubs"][0]["id"] != "c" or summary["total_relationships"] != 4:  # noqa: PLR2004
        pytest.fail(f"Unexpected summary {summary}")


def test_wired_service_persists_to_duckdb(
    memory_gateway: StorageGateway, triangle: GraphSnapshot
) -> None:
    """The wired service reads and writes through DuckDB repositories."""
    GraphRepository(memory_gateway).load_snapshot(triangle)
    resource = build_service_resource(AnalyticsConfig(top_k=2), gateway=memory_gateway)
    try:
        run = resource.service.identify_influencers(identified_by="wiring")
    finally:
        resource.close()
    if run.persistence.succeeded != 2:  # noqa: PLR2004
        pytest.fail(f"Unexpected persistence {run.persistence.to_dict()}")
    if InfluencerRepository(memory_gateway).count() != 2:  # noqa: PLR2004
        pytest.fail("Records should land in analytics.key_influencers")
