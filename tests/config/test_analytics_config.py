"""Environment-driven analytics configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from graphinsight.config.models import DEFAULT_DB_PATH, AnalyticsConfig


def test_defaults_without_environment() -> None:
    """An empty environment yields documented defaults."""
    config = AnalyticsConfig.from_env({})
    if config.db_path != DEFAULT_DB_PATH or config.betweenness_mode != "approximate":
        pytest.fail(f"Unexpected defaults {config}")
    if config.timeout_seconds is not None or config.eigenvector_tolerance is not None:
        pytest.fail("Timeout and tolerance are opt-in")
    options = config.engine_options()
    if options.top_k != 20 or options.centrality.eigenvector_iterations != 20:  # noqa: PLR2004
        pytest.fail(f"Unexpected engine options {options}")


def test_environment_overrides() -> None:
    """Every documented variable is honored."""
    config = AnalyticsConfig.from_env(
        {
            "GRAPHINSIGHT_DB_PATH": "/tmp/graph.duckdb",  # noqa: S108
            "GRAPHINSIGHT_BETWEENNESS_MODE": "EXACT",
            "GRAPHINSIGHT_EIGENVECTOR_ITERATIONS": "50",
            "GRAPHINSIGHT_EIGENVECTOR_TOLERANCE": "1e-6",
            "GRAPHINSIGHT_TOP_K": "5",
            "GRAPHINSIGHT_PATH_HUBS": "3",
            "GRAPHINSIGHT_MAX_PATHS": "2",
            "GRAPHINSIGHT_TIMEOUT_SEC": "2.5",
            "GRAPHINSIGHT_MAX_WORKERS": "1",
            "GRAPHINSIGHT_PERSIST_INFLUENCERS": "false",
            "GRAPHINSIGHT_READ_ONLY": "1",
            "GRAPHINSIGHT_CLUSTER_KEY": "region",
        }
    )
    if config.db_path != Path("/tmp/graph.duckdb"):  # noqa: S108
        pytest.fail("DB path override ignored")
    options = config.engine_options()
    if options.centrality.betweenness_mode != "exact" or options.timeout_seconds != 2.5:  # noqa: PLR2004
        pytest.fail(f"Unexpected options {options}")
    if (options.top_k, options.path_hub_count, options.max_paths, options.max_workers) != (5, 3, 2, 1):
        pytest.fail(f"Unexpected limits {options}")
    if config.persist_influencers or not config.read_only or config.cluster_key != "region":
        pytest.fail("Flag overrides ignored")


@pytest.mark.parametrize(
    "overrides",
    [
        {"path_hub_count": 1},
        {"eigenvector_iterations": 0},
        {"timeout_seconds": 0.0},
        {"max_workers": 0},
        {"weight_degree": 0.9},
        {"betweenness_mode": "brandes"},
    ],
)
def test_invalid_limits_rejected(overrides: dict[str, object]) -> None:
    """Out-of-range settings fail validation."""
    with pytest.raises(ValidationError):
        AnalyticsConfig(**overrides)  # type: ignore[arg-type]


def test_unknown_betweenness_mode_from_env_rejected() -> None:
    """A misspelled mode fails instead of falling back to approximate."""
    with pytest.raises(ValidationError, match="betweenness_mode"):
        AnalyticsConfig.from_env({"GRAPHINSIGHT_BETWEENNESS_MODE": "exakt"})
