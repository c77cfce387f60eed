"""
Table DDL for the bundled backends.

Logical column types from `dbbench.domain.tables` are mapped to concrete
per-backend types here. Every statement is idempotent (`IF NOT EXISTS` /
`IF EXISTS`) so cases can ensure their tables before each run.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from dbbench.domain.models import Backend, TableSchema
from dbbench.domain.tables import HEAVY, HIERARCHY_TABLES, JSON, LIGHT, MEDIUM, TIMESERIES
from dbbench.errors import UnsupportedBackendError
from dbbench.infrastructure.contracts import DataAccessor
from dbbench.utils.logging import get_logger

log = get_logger(__name__)

COLUMN_TYPES: Mapping[Backend, Mapping[str, str]] = {
    Backend.POSTGRES: {
        "id": "BIGSERIAL PRIMARY KEY",
        "bigint_pk": "BIGINT PRIMARY KEY",
        "bigint": "BIGINT",
        "int": "INTEGER",
        "uuid": "UUID",
        "varchar": "VARCHAR(256)",
        "timestamp": "TIMESTAMP",
        "boolean": "BOOLEAN",
        "blob": "BYTEA",
        "json": "JSONB",
        "vector768": "vector(768)",
        "double": "DOUBLE PRECISION",
    },
    Backend.SQLITE: {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "bigint_pk": "INTEGER PRIMARY KEY",
        "bigint": "INTEGER",
        "int": "INTEGER",
        "uuid": "CHAR(36)",
        "varchar": "VARCHAR(256)",
        "timestamp": "TEXT",
        "boolean": "INTEGER",
        "blob": "BLOB",
        "json": "TEXT",
        "vector768": "TEXT",
        "double": "REAL",
    },
}

# Tables created and dropped around a full-suite run.
SUITE_TABLES = (LIGHT, MEDIUM, HEAVY, JSON, TIMESERIES) + HIERARCHY_TABLES


def _types_for(backend: Backend) -> Mapping[str, str]:
    types = COLUMN_TYPES.get(backend)
    if types is None:
        raise UnsupportedBackendError("table DDL", backend.value)
    return types


def _index_ddl(table: TableSchema, column: str, backend: Backend, sql_type: str) -> str:
    name = f"{table.name}_{column}_idx"
    if backend == Backend.POSTGRES and sql_type == "json":
        return f"CREATE INDEX IF NOT EXISTS {name} ON {table.name} USING GIN ({column} jsonb_path_ops)"
    return f"CREATE INDEX IF NOT EXISTS {name} ON {table.name} ({column})"


def render_ddl(table: TableSchema, backend: Backend) -> List[str]:
    """CREATE TABLE plus one CREATE INDEX per indexed column."""
    types = _types_for(backend)
    statements: List[str] = []
    if backend == Backend.POSTGRES and any(c.sql_type == "vector768" for c in table.columns):
        statements.append("CREATE EXTENSION IF NOT EXISTS vector")
    columns = ", ".join(f"{c.name} {types[c.sql_type]}" for c in table.columns)
    statements.append(f"CREATE TABLE IF NOT EXISTS {table.name} ({columns})")
    statements.extend(
        _index_ddl(table, c.name, backend, c.sql_type) for c in table.columns if c.indexed
    )
    return statements


def create_tables(accessor: DataAccessor, tables: Iterable[TableSchema]) -> None:
    tables = list(tables)
    with accessor.session() as session:
        for table in tables:
            for statement in render_ddl(table, accessor.backend):
                session.execute(statement)
    log.info("Tables created", extra={"tables": [t.name for t in tables]})


def drop_tables(accessor: DataAccessor, tables: Iterable[TableSchema]) -> None:
    tables = list(tables)
    _types_for(accessor.backend)
    with accessor.session() as session:
        for table in tables:
            session.execute(f"DROP TABLE IF EXISTS {table.name}")
    log.info("Tables dropped", extra={"tables": [t.name for t in tables]})


def ensure_tables(accessor: DataAccessor, tables: Sequence[Optional[TableSchema]] = ()) -> None:
    """Create the hierarchy tables and any of `tables` that are missing."""
    wanted = list(HIERARCHY_TABLES)
    wanted.extend(t for t in tables if t is not None and t not in wanted)
    create_tables(accessor, wanted)


__all__ = [
    "COLUMN_TYPES",
    "SUITE_TABLES",
    "create_tables",
    "drop_tables",
    "ensure_tables",
    "render_ddl",
]
