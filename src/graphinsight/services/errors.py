"""Shared error taxonomy and Problem Details helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_ERROR = 500
HTTP_GATEWAY_TIMEOUT = 504


def generate_correlation_id() -> str:
    """
    Return a new correlation identifier for tracing errors.

    Returns
    -------
    str
        UUID4 correlation identifier.
    """
    return str(uuid4())


@dataclass(frozen=True)
class ProblemDetail:
    """
    RFC 9457 Problem Details payload.

    Fields mirror the standard shape with optional extras for diagnostics.
    """

    type: str
    title: str
    detail: str
    status: int | None = None
    instance: str = field(default_factory=generate_correlation_id)
    code: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize to a JSON-friendly dict.

        Returns
        -------
        dict[str, Any]
            Problem detail payload as a plain dictionary.
        """
        payload: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "detail": self.detail,
            "instance": self.instance,
        }
        if self.status is not None:
            payload["status"] = self.status
        if self.code is not None:
            payload["code"] = self.code
        if self.extras:
            payload["extras"] = self.extras
        return payload


def problem(  # noqa: PLR0913
    code: str,
    title: str,
    detail: str,
    *,
    status: int | None = None,
    instance: str | None = None,
    type_uri: str | None = None,
    extras: dict[str, Any] | None = None,
) -> ProblemDetail:
    """
    Create a ProblemDetail with defaults for type/instance.

    Parameters
    ----------
    code
        Stable problem code (e.g., 'graph.no_data').
    title
        Human-readable error summary.
    detail
        Detailed description of the error.
    status
        Optional HTTP-style status code.
    instance
        Correlation/trace identifier; defaults to a UUID4.
    type_uri
        URI identifying the problem type; defaults to a graphinsight namespace.
    extras
        Optional structured context for diagnostics.

    Returns
    -------
    ProblemDetail
        Structured problem payload.
    """
    resolved_instance = instance or generate_correlation_id()
    resolved_type = type_uri or f"https://problems.graphinsight.dev/{code}"
    return ProblemDetail(
        type=resolved_type,
        title=title,
        detail=detail,
        status=status,
        instance=resolved_instance,
        code=code,
        extras=extras or {},
    )


def log_problem(logger: logging.Logger | logging.LoggerAdapter, detail: ProblemDetail) -> None:
    """Emit a Problem Detail as a structured error log."""
    logger.error(json.dumps(detail.to_dict()))


class ProblemError(Exception):
    """Base exception carrying a ProblemDetail payload."""

    def __init__(self, detail: ProblemDetail) -> None:
        super().__init__(detail.detail)
        self.problem_detail = detail


class NoGraphDataError(ProblemError):
    """Raised when an analysis is requested over an empty node set."""

    def __init__(self, message: str = "No graph data available for analysis") -> None:
        super().__init__(
            problem(
                "graph.no_data",
                "No graph data",
                message,
                status=HTTP_BAD_REQUEST,
            )
        )


class InvalidGraphError(ProblemError):
    """Snapshot payload could not be turned into a valid graph."""

    def __init__(self, message: str, *, extras: dict[str, Any] | None = None) -> None:
        super().__init__(
            problem(
                "graph.invalid",
                "Invalid graph data",
                message,
                status=HTTP_BAD_REQUEST,
                extras=extras,
            )
        )


class DuplicateNodeError(InvalidGraphError):
    """Two nodes in one snapshot share an identifier."""

    def __init__(self, node_id: str) -> None:
        message = f"Duplicate node id in snapshot: {node_id}"
        super().__init__(message, extras={"node_id": node_id})
        self.node_id = node_id


class AnalysisTimeoutError(ProblemError):
    """Analysis exceeded its deadline."""

    def __init__(
        self, timeout_seconds: float | None, *, stage: str, cancelled: bool = False
    ) -> None:
        if cancelled:
            title = "Analysis cancelled"
            detail = f"Graph analysis was cancelled during {stage} after a sibling task failed"
        else:
            title = "Analysis timed out"
            detail = f"Graph analysis exceeded {timeout_seconds or 0.0:.3f}s during {stage}"
        super().__init__(
            problem(
                "graph.timeout",
                title,
                detail,
                status=HTTP_GATEWAY_TIMEOUT,
                extras={
                    "stage": stage,
                    "timeout_seconds": timeout_seconds,
                    "cancelled": cancelled,
                },
            )
        )
        self.stage = stage
        self.cancelled = cancelled


class StorageError(ProblemError):
    """Store read or write failure surfaced to callers."""

    def __init__(self, message: str) -> None:
        super().__init__(
            problem(
                "storage.failure",
                "Storage failure",
                message,
                status=HTTP_INTERNAL_ERROR,
            )
        )


def internal_error(exc: BaseException) -> ProblemDetail:
    """
    Wrap an unexpected exception as a generic 500 problem.

    Returns
    -------
    ProblemDetail
        Problem carrying the underlying exception message.
    """
    return problem(
        "graph.analysis_failed",
        "Failed to analyze knowledge graph",
        str(exc),
        status=HTTP_INTERNAL_ERROR,
    )
