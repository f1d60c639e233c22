"""Request-level orchestration: load a snapshot, analyze it, persist the ranking."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass, replace
from typing import Any

from graphinsight.analytics.engine import GraphAnalyticsEngine, resolve_algorithms
from graphinsight.analytics.graph_stats import DEFAULT_CLUSTER_KEY, summarize_graph
from graphinsight.analytics.influence import InfluenceRanking, InfluencerRecord
from graphinsight.core.types import GraphSnapshot
from graphinsight.graphs.adjacency import AdjacencyIndex
from graphinsight.services.errors import InvalidGraphError, NoGraphDataError, StorageError
from graphinsight.storage.batch import BatchWriteReport, BestEffortBatchWriter
from graphinsight.storage.gateway import DuckDBError
from graphinsight.storage.protocols import GraphEntityStore, InfluencerRecordStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class InfluencerRun:
    """Ranking plus the outcome of persisting its top-K."""

    ranking: InfluenceRanking
    persistence: BatchWriteReport

    def to_response(self) -> dict[str, Any]:
        """
        Build the ``influencers`` / ``summary`` response payload.

        Returns
        -------
        dict[str, Any]
            JSON-friendly response body.
        """
        return {
            "influencers": [record.to_dict() for record in self.ranking.top],
            "summary": self.ranking.summary().to_dict(),
            "persistence": self.persistence.to_dict(),
        }


def snapshot_from_graph_data(graph_data: Mapping[str, Any]) -> GraphSnapshot:
    """
    Parse an inline ``{nodes, relationships}`` payload.

    Returns
    -------
    GraphSnapshot
        Parsed snapshot.

    Raises
    ------
    InvalidGraphError
        When either list is missing or not a list.
    """
    nodes = graph_data.get("nodes")
    relationships = graph_data.get("relationships", [])
    if not isinstance(nodes, Sequence) or isinstance(nodes, str):
        message = "graph_data.nodes must be a list"
        raise InvalidGraphError(message)
    if not isinstance(relationships, Sequence) or isinstance(relationships, str):
        message = "graph_data.relationships must be a list"
        raise InvalidGraphError(message)
    return GraphSnapshot.from_payload(nodes, relationships)


class AnalysisService:
    """
    Entry points shared by the HTTP app and the CLI.

    Store reads happen sequentially (nodes, then relationships) and any
    failure aborts the request; persistence of influencers is best-effort.
    """

    def __init__(
        self,
        engine: GraphAnalyticsEngine,
        *,
        graph_store: GraphEntityStore | None = None,
        record_store: InfluencerRecordStore | None = None,
        persist_influencers: bool = True,
        cluster_key: str = DEFAULT_CLUSTER_KEY,
        store_lock: threading.Lock | None = None,
    ) -> None:
        self.engine = engine
        self.graph_store = graph_store
        self.record_store = record_store
        self.persist_influencers = persist_influencers
        self.cluster_key = cluster_key
        self._store_lock = store_lock

    def _locked(self) -> AbstractContextManager[object]:
        return self._store_lock if self._store_lock is not None else nullcontext()

    def load_snapshot(self, graph_data: Mapping[str, Any] | None = None) -> GraphSnapshot:
        """
        Resolve the snapshot for a request.

        Returns
        -------
        GraphSnapshot
            Inline snapshot when provided, otherwise the store contents.

        Raises
        ------
        InvalidGraphError
            When no inline data is given and no store is configured.
        StorageError
            When the store cannot be read.
        """
        if graph_data is not None:
            return snapshot_from_graph_data(graph_data)
        if self.graph_store is None:
            message = "graph_data is required when no graph store is configured"
            raise InvalidGraphError(message)
        try:
            with self._locked():
                nodes = self.graph_store.list_nodes()
                edges = self.graph_store.list_edges()
        except DuckDBError as exc:
            message = f"Failed to read graph store: {exc}"
            raise StorageError(message) from exc
        return GraphSnapshot.of(nodes, edges)

    def analyze(
        self,
        *,
        algorithm_type: str | Sequence[str] | None = None,
        graph_data: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Run graph algorithms and return the ``algorithm_results`` payload.

        Returns
        -------
        dict[str, Any]
            Response body with ``algorithm_results`` and ``graph_stats``.

        Raises
        ------
        InvalidGraphError
            When ``algorithm_type`` is not a known algorithm.
        """
        try:
            algorithms = resolve_algorithms(algorithm_type)
        except ValueError as exc:
            raise InvalidGraphError(str(exc)) from exc
        snapshot = self.load_snapshot(graph_data)
        return self.engine.analyze(snapshot, algorithms).to_response()

    def persist(self, records: Sequence[InfluencerRecord]) -> BatchWriteReport:
        """
        Store records one by one; failures are logged and counted, never raised.

        Returns
        -------
        BatchWriteReport
            Per-record outcomes; empty when persistence is disabled.
        """
        store = self.record_store
        if store is None or not self.persist_influencers:
            return BatchWriteReport.skipped()

        def _write(record: InfluencerRecord) -> None:
            with self._locked():
                store.create(record)

        writer: BestEffortBatchWriter[InfluencerRecord] = BestEffortBatchWriter(
            _write,
            key=lambda record: record.node_id,
            label="influencer",
        )
        return writer.write_all(records)

    def identify_influencers(
        self,
        *,
        graph_data: Mapping[str, Any] | None = None,
        top_k: int | None = None,
        identified_by: str | None = None,
    ) -> InfluencerRun:
        """
        Rank influencers and persist the top-K best-effort.

        Returns
        -------
        InfluencerRun
            Ranking and persistence report.
        """
        snapshot = self.load_snapshot(graph_data)
        engine = self.engine
        if top_k is not None and top_k != engine.options.top_k:
            engine = engine.with_options(replace(engine.options, top_k=top_k))
        ranking = engine.rank_influencers(snapshot, identified_by=identified_by)
        report = self.persist(ranking.top)
        log.info(
            "Identified %d influencers (persisted %d/%d)",
            len(ranking.top),
            report.succeeded,
            report.attempted,
        )
        return InfluencerRun(ranking=ranking, persistence=report)

    def summarize(self, *, graph_data: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        Compute whole-graph statistics.

        Returns
        -------
        dict[str, Any]
            GraphSummary payload.

        Raises
        ------
        NoGraphDataError
            When the snapshot has no nodes.
        """
        snapshot = self.load_snapshot(graph_data)
        if snapshot.is_empty:
            raise NoGraphDataError
        index = AdjacencyIndex.from_snapshot(snapshot)
        return summarize_graph(snapshot, index, cluster_key=self.cluster_key).to_dict()
