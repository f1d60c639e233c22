"""Pydantic request and response models for the HTTP surface."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class GraphData(BaseModel):
    """Inline snapshot supplied with a request instead of reading the store."""

    nodes: list[dict[str, Any]]
    relationships: list[dict[str, Any]] = Field(default_factory=list)


class AnalyzeRequest(BaseModel):
    """Body of ``POST /graph/algorithms``."""

    algorithm_type: str | list[str] | None = Field(
        default=None,
        description="centrality, communities or paths; all three when omitted.",
    )
    graph_data: GraphData | None = None


class InfluencersRequest(BaseModel):
    """Body of ``POST /graph/influencers``."""

    graph_data: GraphData | None = None
    top_k: int | None = Field(default=None, ge=0)
    identified_by: str | None = None


class GraphStats(BaseModel):
    """Totals attached to every analysis response."""

    total_nodes: int
    total_relationships: int
    analyzed_at: str


class AnalysisResponse(BaseModel):
    """Results keyed by algorithm name."""

    algorithm_results: dict[str, Any]
    graph_stats: GraphStats


class PersistenceReport(BaseModel):
    """Outcome of the best-effort influencer writes."""

    attempted: int
    succeeded: int
    failed: int
    errors: list[dict[str, Any]] = Field(default_factory=list)


class InfluencerSummary(BaseModel):
    """Aggregate view over the whole ranking."""

    total_nodes: int
    top_influencer: dict[str, Any] | None = None
    avg_influence_score: float


class InfluencersResponse(BaseModel):
    """Top-K influencers plus ranking summary and persistence report."""

    influencers: list[dict[str, Any]]
    summary: InfluencerSummary
    persistence: PersistenceReport


class ProblemDetail(BaseModel):
    """Problem Details payload for error responses."""

    type: str = Field(default="about:blank")
    title: str
    detail: str | None = None
    status: int | None = None
    instance: str | None = None
    code: str | None = None
    extras: dict[str, object] | None = None
