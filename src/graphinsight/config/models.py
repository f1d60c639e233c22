"""Runtime settings for the analytics engine and its serving surfaces."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, model_validator

from graphinsight.analytics.centrality import BetweennessMode, CentralityOptions
from graphinsight.analytics.engine import EngineOptions
from graphinsight.analytics.influence import InfluenceWeights

DEFAULT_DB_PATH = Path("build") / "db" / "graphinsight.duckdb"


def _parse_env_flag(value: str | None, *, default: bool) -> bool:
    """
    Interpret a string environment value as a boolean.

    Parameters
    ----------
    value:
        Raw environment variable value or None.
    default:
        Value to return when the environment variable is unset.

    Returns
    -------
    bool
        Parsed boolean flag.
    """
    if value is None:
        return default
    return value.lower() not in {"0", "false", "no", "off"}


def _optional_float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


class AnalyticsConfig(BaseModel):
    """
    Settings shared by the CLI, the HTTP app and the analysis service.

    Centralizes environment loading and validation so every surface ranks and
    times out the same way.
    """

    db_path: Path = Field(
        default=DEFAULT_DB_PATH,
        description="Path to graphinsight.duckdb holding the graph and influencer tables.",
    )
    read_only: bool = Field(
        default=False,
        description="Open DuckDB read-only; influencer persistence is then skipped.",
    )
    betweenness_mode: BetweennessMode = Field(
        default="approximate",
        description="'approximate' keeps the dashboard heuristic; 'exact' uses Brandes.",
    )
    eigenvector_iterations: int = Field(
        default=20,
        description="Power-iteration rounds for eigenvector centrality.",
    )
    eigenvector_tolerance: float | None = Field(
        default=None,
        description="Optional early-stop tolerance; None runs every round.",
    )
    top_k: int = Field(default=20, description="Influencers emitted and persisted per run.")
    path_hub_count: int = Field(
        default=5,
        description="Highest-degree nodes considered for shortest-path analysis.",
    )
    max_paths: int = Field(default=10, description="Cap on shortest paths returned.")
    timeout_seconds: float | None = Field(
        default=None,
        description="Deadline for one analysis run; None disables it.",
    )
    max_workers: int = Field(
        default=4,
        description="Thread pool size for independent metric tasks; 1 runs sequentially.",
    )
    persist_influencers: bool = Field(
        default=True,
        description="Persist the top-K influencers after each ranking.",
    )
    cluster_key: str = Field(
        default="industry",
        description="Node property used to group clusters in the graph summary.",
    )
    weight_degree: float = Field(default=0.30, description="Composite weight of degree.")
    weight_betweenness: float = Field(default=0.30, description="Composite weight of betweenness.")
    weight_closeness: float = Field(default=0.20, description="Composite weight of closeness.")
    weight_eigenvector: float = Field(default=0.20, description="Composite weight of eigenvector.")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> AnalyticsConfig:
        """
        Construct an AnalyticsConfig from environment variables.

        Returns
        -------
        AnalyticsConfig
            Validated configuration populated from environment values.
        """
        source = env if env is not None else os.environ
        db_path_env = source.get("GRAPHINSIGHT_DB_PATH")
        db_path = Path(db_path_env).expanduser() if db_path_env else DEFAULT_DB_PATH
        mode = source.get("GRAPHINSIGHT_BETWEENNESS_MODE", "approximate").strip().lower()
        return cls(
            db_path=db_path,
            read_only=_parse_env_flag(source.get("GRAPHINSIGHT_READ_ONLY"), default=False),
            betweenness_mode=mode,  # type: ignore[arg-type]
            eigenvector_iterations=int(source.get("GRAPHINSIGHT_EIGENVECTOR_ITERATIONS", "20")),
            eigenvector_tolerance=_optional_float(source.get("GRAPHINSIGHT_EIGENVECTOR_TOLERANCE")),
            top_k=int(source.get("GRAPHINSIGHT_TOP_K", "20")),
            path_hub_count=int(source.get("GRAPHINSIGHT_PATH_HUBS", "5")),
            max_paths=int(source.get("GRAPHINSIGHT_MAX_PATHS", "10")),
            timeout_seconds=_optional_float(source.get("GRAPHINSIGHT_TIMEOUT_SEC")),
            max_workers=int(source.get("GRAPHINSIGHT_MAX_WORKERS", "4")),
            persist_influencers=_parse_env_flag(
                source.get("GRAPHINSIGHT_PERSIST_INFLUENCERS"), default=True
            ),
            cluster_key=source.get("GRAPHINSIGHT_CLUSTER_KEY", "industry"),
        )

    @model_validator(mode="after")
    def _validate_limits(self) -> AnalyticsConfig:
        """
        Reject non-positive limits and inconsistent weights.

        Returns
        -------
        AnalyticsConfig
            The validated configuration.

        Raises
        ------
        ValueError
            When a limit is out of range or the weights do not sum to 1.
        """
        if self.eigenvector_iterations <= 0:
            message = "eigenvector_iterations must be positive"
            raise ValueError(message)
        if self.eigenvector_tolerance is not None and self.eigenvector_tolerance <= 0:
            message = "eigenvector_tolerance must be positive when set"
            raise ValueError(message)
        if self.top_k < 0:
            message = "top_k must be non-negative"
            raise ValueError(message)
        if self.path_hub_count < 2:  # noqa: PLR2004
            message = "path_hub_count must be at least 2"
            raise ValueError(message)
        if self.max_paths < 0:
            message = "max_paths must be non-negative"
            raise ValueError(message)
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            message = "timeout_seconds must be positive when set"
            raise ValueError(message)
        if self.max_workers <= 0:
            message = "max_workers must be positive"
            raise ValueError(message)
        self.influence_weights()
        return self

    def influence_weights(self) -> InfluenceWeights:
        """
        Build the composite blend weights.

        Returns
        -------
        InfluenceWeights
            Validated weights.
        """
        return InfluenceWeights(
            degree=self.weight_degree,
            betweenness=self.weight_betweenness,
            closeness=self.weight_closeness,
            eigenvector=self.weight_eigenvector,
        )

    def engine_options(self) -> EngineOptions:
        """
        Translate settings into engine options.

        Returns
        -------
        EngineOptions
            Options for GraphAnalyticsEngine.
        """
        return EngineOptions(
            centrality=CentralityOptions(
                betweenness_mode=self.betweenness_mode,
                eigenvector_iterations=self.eigenvector_iterations,
                eigenvector_tolerance=self.eigenvector_tolerance,
                max_workers=self.max_workers,
            ),
            weights=self.influence_weights(),
            top_k=self.top_k,
            path_hub_count=self.path_hub_count,
            max_paths=self.max_paths,
            timeout_seconds=self.timeout_seconds,
            max_workers=self.max_workers,
        )
