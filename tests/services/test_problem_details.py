"""Problem Details error taxonomy."""

from __future__ import annotations

import json
import logging

import pytest

from graphinsight.services.errors import (
    AnalysisTimeoutError,
    NoGraphDataError,
    internal_error,
    log_problem,
    problem,
)


def test_problem_defaults_type_and_instance() -> None:
    """Type URIs derive from the code; instances are unique."""
    first = problem("graph.invalid", "Invalid", "bad payload", status=400)
    second = problem("graph.invalid", "Invalid", "bad payload", status=400)
    if first.type != "https://problems.graphinsight.dev/graph.invalid":
        pytest.fail(f"Unexpected type {first.type}")
    if first.instance == second.instance:
        pytest.fail("Each problem should get its own correlation id")
    payload = first.to_dict()
    if payload["status"] != 400 or "extras" in payload:  # noqa: PLR2004
        pytest.fail(f"Unexpected payload {payload}")


def test_domain_errors_map_to_statuses() -> None:
    """Client errors are 400, timeouts 504, unexpected failures 500."""
    no_data = NoGraphDataError().problem_detail
    if (no_data.status, no_data.code, no_data.detail) != (
        400,
        "graph.no_data",
        "No graph data available for analysis",
    ):
        pytest.fail(f"Unexpected no-data problem {no_data}")
    timeout = AnalysisTimeoutError(2.0, stage="closeness").problem_detail
    if timeout.status != 504 or timeout.extras["stage"] != "closeness":  # noqa: PLR2004
        pytest.fail(f"Unexpected timeout problem {timeout}")
    failure = internal_error(RuntimeError("boom"))
    if failure.status != 500 or failure.detail != "boom":  # noqa: PLR2004
        pytest.fail(f"Unexpected internal problem {failure}")


def test_log_problem_emits_json(caplog: pytest.LogCaptureFixture) -> None:
    """Problems are logged as one JSON document at ERROR."""
    logger = logging.getLogger("graphinsight.tests.errors")
    detail = problem("graph.timeout", "Timed out", "too slow", status=504)
    with caplog.at_level(logging.ERROR, logger="graphinsight.tests.errors"):
        log_problem(logger, detail)
    logged = json.loads(caplog.records[-1].getMessage())
    if logged["code"] != "graph.timeout" or logged["status"] != 504:  # noqa: PLR2004
        pytest.fail(f"Unexpected log payload {logged}")
