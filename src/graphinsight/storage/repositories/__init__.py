"""Repository layer for DuckDB persistence."""

from graphinsight.storage.repositories.base import BaseRepository, RowDict
from graphinsight.storage.repositories.graph import GraphRepository
from graphinsight.storage.repositories.influencers import InfluencerRepository

__all__ = [
    "BaseRepository",
    "GraphRepository",
    "InfluencerRepository",
    "RowDict",
]
