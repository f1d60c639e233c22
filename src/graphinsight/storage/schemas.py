"""DuckDB DDL for the graph store and the influencer output table."""

from __future__ import annotations

import logging

from duckdb import DuckDBPyConnection

from graphinsight.config.schemas.tables import TABLE_SCHEMAS, TableSchema

SCHEMAS = ("graph", "analytics")
log = logging.getLogger(__name__)


class SchemaDriftError(RuntimeError):
    """Raised when live tables no longer match TABLE_SCHEMAS."""


def _ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _qualified(table: TableSchema) -> str:
    return f"{_ident(table.schema)}.{_ident(table.name)}"


def table_ddl(table: TableSchema) -> tuple[str, ...]:
    """
    Render the statements that create one table and its indexes.

    Every statement is idempotent, so existing rows are never touched.

    Returns
    -------
    tuple[str, ...]
        CREATE TABLE statement followed by one CREATE INDEX per index.
    """
    body = [
        f"{_ident(col.name)} {col.type}" + ("" if col.nullable else " NOT NULL")
        for col in table.columns
    ]
    if table.primary_key:
        body.append(f"PRIMARY KEY ({', '.join(_ident(col) for col in table.primary_key)})")
    statements = [f"CREATE TABLE IF NOT EXISTS {_qualified(table)} ({', '.join(body)});"]
    statements.extend(
        f"CREATE {'UNIQUE ' if index.unique else ''}INDEX IF NOT EXISTS {_ident(index.name)} "
        f"ON {_qualified(table)} ({', '.join(_ident(col) for col in index.columns)});"
        for index in table.indexes
    )
    return tuple(statements)


TABLE_DDL: dict[str, tuple[str, ...]] = {
    key: table_ddl(schema) for key, schema in TABLE_SCHEMAS.items()
}


def apply_all_schemas(con: DuckDBPyConnection) -> None:
    """Create the graph and analytics schemas with every codified table."""
    for schema in SCHEMAS:
        con.execute(f"CREATE SCHEMA IF NOT EXISTS {_ident(schema)};")
    for statements in TABLE_DDL.values():
        for statement in statements:
            con.execute(statement)
    log.debug("Applied %d table definitions", len(TABLE_DDL))


def _live_columns(con: DuckDBPyConnection, table: TableSchema) -> list[str]:
    rows = con.execute(
        """
        SELECT column_name
        FROM information_schema.columns
        WHERE table_catalog = current_database()
          AND table_schema = ? AND table_name = ?
        ORDER BY ordinal_position
        """,
        [table.schema, table.name],
    ).fetchall()
    return [row[0] for row in rows]


def assert_schema_alignment(
    con: DuckDBPyConnection,
    *,
    strict: bool = True,
) -> list[str]:
    """
    Compare live column layouts with TABLE_SCHEMAS.

    Parameters
    ----------
    con
        Connection to inspect.
    strict
        Raise instead of returning when drift is found.

    Returns
    -------
    list[str]
        One message per drifted table; empty when aligned.

    Raises
    ------
    SchemaDriftError
        If ``strict`` is set and any table is missing or differs.
    """
    issues: list[str] = []
    for table in TABLE_SCHEMAS.values():
        actual = _live_columns(con, table)
        if not actual:
            issues.append(f"{table.fq_name}: table missing")
        elif actual != table.column_names():
            issues.append(f"{table.fq_name}: expected {table.column_names()} got {actual}")
    if issues:
        log.error("Schema drift detected: %s", "; ".join(issues))
        if strict:
            message = f"Schema drift detected: {'; '.join(issues)}"
            raise SchemaDriftError(message)
    return issues
