"""Repository for persisted key-influencer records."""

from __future__ import annotations

from dataclasses import dataclass

from graphinsight.analytics.influence import InfluencerRecord
from graphinsight.storage.repositories.base import BaseRepository, RowDict, fetch_all_dicts


@dataclass(frozen=True)
class InfluencerRepository(BaseRepository):
    """Append influencer records and read back the latest ranking."""

    def create(self, record: InfluencerRecord) -> None:
        """Insert one influencer record."""
        c = record.centrality
        self.con.execute(
            """
            INSERT INTO analytics.key_influencers VALUES (
                ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?
            )
            """,
            [
                c.node_id,
                c.label,
                c.node_type,
                c.degree,
                c.in_degree,
                c.out_degree,
                c.weighted_degree,
                c.betweenness,
                c.closeness,
                c.eigenvector,
                record.degree_normalized,
                record.betweenness_normalized,
                record.closeness_normalized,
                record.eigenvector_normalized,
                record.influence_score,
                record.rank,
                record.identified_at.replace(tzinfo=None) if record.identified_at else None,
                record.identified_by,
            ],
        )

    def list_latest(self, *, limit: int = 20) -> list[RowDict]:
        """
        Return records from the most recent ranking run, best first.

        Returns
        -------
        list[RowDict]
            Rows ordered by rank.
        """
        sql = """
            SELECT *
            FROM analytics.key_influencers
            WHERE identified_at = (SELECT MAX(identified_at) FROM analytics.key_influencers)
            ORDER BY rank
            LIMIT ?
        """
        return fetch_all_dicts(self.con, sql, [limit])

    def count(self) -> int:
        """
        Count persisted influencer rows.

        Returns
        -------
        int
            Total rows in analytics.key_influencers.
        """
        row = self.con.execute("SELECT COUNT(*) FROM analytics.key_influencers").fetchone()
        return int(row[0]) if row is not None else 0
