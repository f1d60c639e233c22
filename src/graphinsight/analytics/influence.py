"""Composite influence ranking from the four centrality signals."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from graphinsight.analytics.centrality import CentralityRecord

log = logging.getLogger(__name__)

DEFAULT_TOP_K = 20
SCORE_SCALE = 100.0


@dataclass(frozen=True)
class InfluenceWeights:
    """Blend weights for the composite score; must be non-negative and sum to 1."""

    degree: float = 0.30
    betweenness: float = 0.30
    closeness: float = 0.20
    eigenvector: float = 0.20

    def __post_init__(self) -> None:
        values = (self.degree, self.betweenness, self.closeness, self.eigenvector)
        if any(value < 0 for value in values):
            message = "Influence weights must be non-negative"
            raise ValueError(message)
        if not math.isclose(sum(values), 1.0, abs_tol=1e-9):
            message = f"Influence weights must sum to 1.0, got {sum(values):.6f}"
            raise ValueError(message)


@dataclass(frozen=True)
class SignalMaxima:
    """Per-signal normalization divisors, floored at 1."""

    degree: float
    betweenness: float
    closeness: float
    eigenvector: float

    @classmethod
    def observe(cls, records: Sequence[CentralityRecord]) -> SignalMaxima:
        """
        Take the maximum of each signal across records, never below 1.

        Returns
        -------
        SignalMaxima
            Divisors for normalization.
        """
        return cls(
            degree=max([float(r.degree) for r in records] + [1.0]),
            betweenness=max([r.betweenness for r in records] + [1.0]),
            closeness=max([r.closeness for r in records] + [1.0]),
            eigenvector=max([r.eigenvector for r in records] + [1.0]),
        )


@dataclass(frozen=True)
class InfluencerRecord:
    """A centrality record with normalized components and a composite score."""

    centrality: CentralityRecord
    degree_normalized: float
    betweenness_normalized: float
    closeness_normalized: float
    eigenvector_normalized: float
    influence_score: float
    rank: int = 0
    identified_at: datetime | None = None
    identified_by: str | None = None

    @property
    def node_id(self) -> str:
        """Identifier of the ranked node."""
        return self.centrality.node_id

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a flat JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Centrality fields merged with normalized components and score.
        """
        payload = self.centrality.to_dict()
        payload.update(
            {
                "degree_normalized": self.degree_normalized,
                "betweenness_normalized": self.betweenness_normalized,
                "closeness_normalized": self.closeness_normalized,
                "eigenvector_normalized": self.eigenvector_normalized,
                "influence_score": self.influence_score,
                "rank": self.rank,
                "identified_at": (
                    self.identified_at.isoformat() if self.identified_at is not None else None
                ),
                "identified_by": self.identified_by,
            }
        )
        return payload


@dataclass(frozen=True)
class InfluenceSummary:
    """Headline numbers for an influencer ranking."""

    total_nodes: int
    top_influencer: InfluencerRecord | None
    avg_influence_score: float

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
            "top_influencer": (
                self.top_influencer.to_dict() if self.top_influencer is not None else None
            ),
            "avg_influence_score": self.avg_influence_score,
        }


@dataclass(frozen=True)
class InfluenceRanking:
    """Full ranking plus the emitted top-K."""

    ranked: tuple[InfluencerRecord, ...]
    top: tuple[InfluencerRecord, ...]

    def summary(self) -> InfluenceSummary:
        """
        Summarize the ranking; the average spans every ranked node.

        Returns
        -------
        InfluenceSummary
            Totals and the leading record.
        """
        total = len(self.ranked)
        avg = sum(r.influence_score for r in self.ranked) / total if total else 0.0
        return InfluenceSummary(
            total_nodes=total,
            top_influencer=self.top[0] if self.top else None,
            avg_influence_score=avg,
        )


def score_record(
    record: CentralityRecord,
    maxima: SignalMaxima,
    weights: InfluenceWeights,
) -> InfluencerRecord:
    """
    Normalize one record's signals and blend them into a 0-100 score.

    Returns
    -------
    InfluencerRecord
        Unranked influencer record.
    """
    degree_norm = record.degree / maxima.degree
    betweenness_norm = record.betweenness / maxima.betweenness
    closeness_norm = record.closeness / maxima.closeness
    eigenvector_norm = record.eigenvector / maxima.eigenvector
    composite = (
        weights.degree * degree_norm
        + weights.betweenness * betweenness_norm
        + weights.closeness * closeness_norm
        + weights.eigenvector * eigenvector_norm
    )
    return InfluencerRecord(
        centrality=record,
        degree_normalized=degree_norm,
        betweenness_normalized=betweenness_norm,
        closeness_normalized=closeness_norm,
        eigenvector_normalized=eigenvector_norm,
        influence_score=SCORE_SCALE * composite,
    )


class InfluenceRanker:
    """Rank nodes by composite influence and emit the top-K."""

    def __init__(
        self,
        *,
        weights: InfluenceWeights | None = None,
        top_k: int = DEFAULT_TOP_K,
    ) -> None:
        if top_k < 0:
            message = "top_k must be non-negative"
            raise ValueError(message)
        self.weights = weights or InfluenceWeights()
        self.top_k = top_k

    def rank(
        self,
        records: Sequence[CentralityRecord],
        *,
        identified_by: str | None = None,
        now: datetime | None = None,
    ) -> InfluenceRanking:
        """
        Score, sort descending and cut to ``top_k``.

        The sort is stable, so tied scores keep snapshot order.

        Returns
        -------
        InfluenceRanking
            Every scored record plus the top-K slice, ranks starting at 1.
        """
        maxima = SignalMaxima.observe(records)
        stamp = now or datetime.now(UTC)
        scored = sorted(
            (score_record(record, maxima, self.weights) for record in records),
            key=lambda item: item.influence_score,
            reverse=True,
        )
        ranked = tuple(
            replace(item, rank=position, identified_at=stamp, identified_by=identified_by)
            for position, item in enumerate(scored, start=1)
        )
        log.debug("Ranked %d nodes; emitting top %d", len(ranked), self.top_k)
        return InfluenceRanking(ranked=ranked, top=ranked[: self.top_k])
