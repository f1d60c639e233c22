"""Collaborator protocols consumed by the analytics services."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from graphinsight.analytics.influence import InfluencerRecord
from graphinsight.core.types import Edge, Node


class GraphEntityStore(Protocol):
    """Source of graph snapshots."""

    def list_nodes(self) -> Sequence[Node]:
        """Return every stored node."""
        ...

    def list_edges(self) -> Sequence[Edge]:
        """Return every stored relationship."""
        ...


class InfluencerRecordStore(Protocol):
    """Sink for ranked influencer records."""

    def create(self, record: InfluencerRecord) -> None:
        """Persist one record; raise on failure."""
        ...


__all__ = ["GraphEntityStore", "InfluencerRecordStore"]
