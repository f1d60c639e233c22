"""CLI entrypoint for loading and analyzing knowledge-graph snapshots."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from graphinsight.analytics.engine import ALL_ALGORITHMS, GraphAnalyticsEngine
from graphinsight.config.models import AnalyticsConfig
from graphinsight.services.analysis_service import AnalysisService, snapshot_from_graph_data
from graphinsight.services.errors import ProblemError, log_problem, problem
from graphinsight.services.wiring import ServiceResource, build_service_resource
from graphinsight.storage.gateway import StorageConfig, open_gateway
from graphinsight.storage.repositories import GraphRepository

LOG = logging.getLogger("graphinsight.cli")

CommandHandler = Callable[[argparse.Namespace], int]


# ---------------------------------------------------------------------------
# Argument parsing / logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure logging based on -v/--verbose count.

    0 -> WARNING, 1 -> INFO, 2+ -> DEBUG.
    """
    if verbosity <= 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _add_input_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--input",
        type=Path,
        default=None,
        help="Analyze a snapshot JSON file instead of the stored graph",
    )


def _make_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graphinsight",
        description="Knowledge-graph analytics and influencer ranking CLI",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (can be repeated)",
    )
    parser.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="DuckDB path (default: $GRAPHINSIGHT_DB_PATH or build/db/graphinsight.duckdb)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_load = subparsers.add_parser("load", help="Load a snapshot JSON file into the graph store")
    p_load.add_argument("snapshot", type=Path, help="File holding {nodes, relationships}")
    p_load.add_argument(
        "--append",
        action="store_true",
        help="Keep existing nodes and relationships instead of replacing them",
    )
    p_load.set_defaults(func=_cmd_load)

    p_analyze = subparsers.add_parser("analyze", help="Run graph algorithms")
    p_analyze.add_argument(
        "--algorithm",
        action="append",
        choices=ALL_ALGORITHMS,
        default=None,
        help="Algorithm to run (repeatable; default: all)",
    )
    _add_input_arg(p_analyze)
    p_analyze.set_defaults(func=_cmd_analyze)

    p_influencers = subparsers.add_parser("influencers", help="Rank key influencers")
    p_influencers.add_argument("--top-k", type=int, default=None, help="Influencers to emit")
    p_influencers.add_argument(
        "--identified-by",
        default=None,
        help="Actor recorded on persisted influencer rows",
    )
    p_influencers.add_argument(
        "--no-persist",
        action="store_true",
        help="Skip writing the ranking to analytics.key_influencers",
    )
    _add_input_arg(p_influencers)
    p_influencers.set_defaults(func=_cmd_influencers)

    p_summary = subparsers.add_parser("summary", help="Summarize graph structure")
    _add_input_arg(p_summary)
    p_summary.set_defaults(func=_cmd_summary)

    return parser


def make_parser() -> argparse.ArgumentParser:
    """
    Public helper to construct the CLI parser (for tests/tools).

    Returns
    -------
    argparse.ArgumentParser
        Configured parser with all subcommands registered.
    """
    return _make_parser()


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def _config_from_args(args: argparse.Namespace) -> AnalyticsConfig:
    config = AnalyticsConfig.from_env()
    if args.db_path is not None:
        config = config.model_copy(update={"db_path": args.db_path})
    return config


def _read_graph_data(path: Path) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        message = f"Snapshot file {path} must hold a JSON object with nodes and relationships"
        raise ValueError(message)
    return data


def _write_json(data: object) -> None:
    sys.stdout.write(json.dumps(data, indent=2, default=str))
    sys.stdout.write("\n")


def _run_with_service(
    config: AnalyticsConfig,
    action: Callable[[AnalysisService], object],
) -> int:
    resource: ServiceResource = build_service_resource(config)
    try:
        _write_json(action(resource.service))
    finally:
        resource.close()
    return 0


def _detached_service(config: AnalyticsConfig) -> AnalysisService:
    return AnalysisService(
        GraphAnalyticsEngine(config.engine_options()),
        persist_influencers=False,
        cluster_key=config.cluster_key,
    )


def _cmd_load(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    snapshot = snapshot_from_graph_data(_read_graph_data(args.snapshot))
    gateway = open_gateway(StorageConfig.for_ingest(config.db_path))
    try:
        GraphRepository(gateway).load_snapshot(snapshot, replace=not args.append)
    finally:
        gateway.close()
    _write_json(
        {
            "db_path": str(config.db_path),
            "nodes": len(snapshot.nodes),
            "relationships": len(snapshot.edges),
        }
    )
    return 0


def _cmd_analyze(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    if args.input is not None:
        graph_data = _read_graph_data(args.input)
        _write_json(
            _detached_service(config).analyze(
                algorithm_type=args.algorithm, graph_data=graph_data
            )
        )
        return 0
    return _run_with_service(
        config, lambda service: service.analyze(algorithm_type=args.algorithm)
    )


def _cmd_influencers(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    graph_data = _read_graph_data(args.input) if args.input is not None else None
    if args.no_persist:
        config = config.model_copy(update={"persist_influencers": False})
        if graph_data is not None:
            run = _detached_service(config).identify_influencers(
                graph_data=graph_data,
                top_k=args.top_k,
                identified_by=args.identified_by,
            )
            _write_json(run.to_response())
            return 0
    return _run_with_service(
        config,
        lambda service: service.identify_influencers(
            graph_data=graph_data,
            top_k=args.top_k,
            identified_by=args.identified_by,
        ).to_response(),
    )


def _cmd_summary(args: argparse.Namespace) -> int:
    config = _config_from_args(args)
    if args.input is not None:
        graph_data = _read_graph_data(args.input)
        _write_json(_detached_service(config).summarize(graph_data=graph_data))
        return 0
    return _run_with_service(config, lambda service: service.summarize())


def main(argv: Iterable[str] | None = None) -> int:
    """
    CLI entrypoint for graphinsight commands.

    Parameters
    ----------
    argv:
        Optional argument list (defaults to sys.argv).

    Returns
    -------
    int
        Exit code (0 on success).
    """
    parser = _make_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        func: CommandHandler = args.func
        return int(func(args))
    except ProblemError as exc:
        log_problem(LOG, exc.problem_detail)
        return 1
    except Exception as exc:  # noqa: BLE001 pragma: no cover - error path
        pd = problem(
            code="cli.failure",
            title="CLI command failed",
            detail=str(exc),
            extras={"command": args.command},
        )
        log_problem(LOG, pd)
        return 1


if __name__ == "__main__":
    sys.exit(main())
