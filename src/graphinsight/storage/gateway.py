"""Composition root types for DuckDB access."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import duckdb

from graphinsight.storage.schemas import apply_all_schemas, assert_schema_alignment

DuckDBConnection = duckdb.DuckDBPyConnection
DuckDBError = duckdb.Error

MEMORY_PATH = Path(":memory:")
# Files are attached under a fixed catalog name so a file stem such as
# "graph" or "analytics" cannot shadow the schemas of the same name.
STORE_CATALOG = "graphinsight_store"


@dataclass(frozen=True)
class StorageConfig:
    """Define configuration for opening a graphinsight DuckDB database."""

    db_path: Path
    read_only: bool = False
    apply_schema: bool = False
    validate_schema: bool = False

    @classmethod
    def for_ingest(cls, db_path: Path) -> StorageConfig:
        """
        Configuration for snapshot loads and influencer persistence.

        Parameters
        ----------
        db_path
            Primary DuckDB database path.

        Returns
        -------
        StorageConfig
            Writable config that creates and validates tables.
        """
        return cls(
            db_path=db_path,
            read_only=False,
            apply_schema=True,
            validate_schema=True,
        )

    @classmethod
    def for_readonly(cls, db_path: Path) -> StorageConfig:
        """
        Configuration for processes that only analyze a stored graph.

        Parameters
        ----------
        db_path
            DuckDB database path to open read-only.

        Returns
        -------
        StorageConfig
            Read-only config that validates but never creates tables.
        """
        return cls(
            db_path=db_path,
            read_only=True,
            apply_schema=False,
            validate_schema=True,
        )


class StorageGateway(Protocol):
    """Expose DuckDB access for graph repositories."""

    config: StorageConfig

    @property
    def con(self) -> DuckDBConnection:
        """
        Return an open DuckDB connection.

        Returns
        -------
        DuckDBConnection
            Live connection bound to the configured database.
        """
        ...

    def close(self) -> None:
        """Close the underlying DuckDB connection."""
        ...

    def execute(self, sql: str, params: Sequence[object] | None = None) -> DuckDBConnection:
        """Execute SQL against the underlying connection."""
        ...

    def cursor(self) -> DuckDBConnection:
        """Return a cursor safe to use from another thread."""
        ...


@dataclass
class _DuckDBGateway:
    """Concrete StorageGateway implementation."""

    config: StorageConfig
    con: DuckDBConnection

    def close(self) -> None:
        """Close the underlying connection."""
        self.con.close()

    def execute(self, sql: str, params: Sequence[object] | None = None) -> DuckDBConnection:
        """
        Execute a SQL statement using the active DuckDB connection.

        Returns
        -------
        DuckDBConnection
            Connection representing the executed query.
        """
        return self.con.execute(sql, params)

    def cursor(self) -> DuckDBConnection:
        """
        Duplicate the connection for use on another thread.

        Returns
        -------
        DuckDBConnection
            Cursor sharing the same database and default catalog.
        """
        cur = self.con.cursor()
        if self.config.db_path != MEMORY_PATH:
            cur.execute(f"USE {STORE_CATALOG};")
        return cur


def _attach_store(con: DuckDBConnection, config: StorageConfig) -> None:
    """Attach the database file as STORE_CATALOG and make it the default catalog."""
    path = str(config.db_path).replace("'", "''")
    options = " (READ_ONLY)" if config.read_only else ""
    con.execute(f"ATTACH '{path}' AS {STORE_CATALOG}{options};")
    con.execute(f"USE {STORE_CATALOG};")


def _connect(config: StorageConfig) -> DuckDBConnection:
    """
    Open a DuckDB connection using the provided configuration.

    Parameters
    ----------
    config
        Where to connect and whether to create or check tables.

    Returns
    -------
    DuckDBConnection
        Connection with the graph schema applied when requested.

    Raises
    ------
    FileNotFoundError
        Raised when a read-only database does not exist.
    """
    is_memory = config.db_path == MEMORY_PATH
    if config.read_only and not is_memory and not config.db_path.exists():
        message = f"DuckDB database not found at {config.db_path}"
        raise FileNotFoundError(message)
    if not config.read_only and not is_memory:
        config.db_path.parent.mkdir(parents=True, exist_ok=True)
    con = duckdb.connect(":memory:")
    if not is_memory:
        _attach_store(con, config)
    if config.apply_schema and not config.read_only:
        apply_all_schemas(con)
    if config.validate_schema:
        assert_schema_alignment(con, strict=True)
    return con


def open_gateway(config: StorageConfig) -> StorageGateway:
    """
    Create a StorageGateway bound to a DuckDB database.

    Parameters
    ----------
    config
        Storage configuration describing connection options.

    Returns
    -------
    StorageGateway
        Gateway exposing the live connection.
    """
    return _DuckDBGateway(config=config, con=_connect(config))


def open_memory_gateway(
    *,
    apply_schema: bool = True,
    validate_schema: bool = True,
) -> StorageGateway:
    """
    Open a private in-memory database, mainly for tests.

    Parameters
    ----------
    apply_schema
        Create the graph and analytics tables.
    validate_schema
        Check column layouts after creation.

    Returns
    -------
    StorageGateway
        Gateway backed by an in-memory DuckDB connection.
    """
    cfg = StorageConfig(
        db_path=MEMORY_PATH,
        read_only=False,
        apply_schema=apply_schema,
        validate_schema=validate_schema,
    )
    return open_gateway(cfg)
