"""
Domain models for dbbench.

Defines backend identities, case categories, logical table schemas and the
immutable case descriptor. Descriptors and schemas are built once at startup
and never mutated afterwards.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


class Backend(str, Enum):
    """Database or search-engine family a case can target."""

    POSTGRES = "postgres"
    MYSQL = "mysql"
    MSSQL = "mssql"
    SQLITE = "sqlite"
    CLICKHOUSE = "clickhouse"
    CASSANDRA = "cassandra"
    ELASTICSEARCH = "elasticsearch"
    OPENSEARCH = "opensearch"

    @property
    def symbol(self) -> str:
        return _SYMBOLS[self]

    @property
    def is_relational(self) -> bool:
        return self in RELATIONAL


_SYMBOLS = {
    Backend.POSTGRES: "P",
    Backend.MYSQL: "M",
    Backend.MSSQL: "W",
    Backend.SQLITE: "S",
    Backend.CLICKHOUSE: "C",
    Backend.CASSANDRA: "A",
    Backend.ELASTICSEARCH: "E",
    Backend.OPENSEARCH: "O",
}

ALL: FrozenSet[Backend] = frozenset(Backend)
RELATIONAL: FrozenSet[Backend] = frozenset(
    {Backend.POSTGRES, Backend.MYSQL, Backend.MSSQL, Backend.SQLITE}
)
PMWSA: FrozenSet[Backend] = RELATIONAL | {Backend.CASSANDRA}
VECTOR: FrozenSet[Backend] = frozenset(
    {Backend.POSTGRES, Backend.ELASTICSEARCH, Backend.OPENSEARCH}
)


class Category(str, Enum):
    SELECT = "select"
    UPDATE = "update"
    INSERT = "insert"
    DELETE = "delete"
    TRANSACTION = "transaction"
    OTHER = "other"


class Column(BaseModel):
    """
    One column of a logical table.

    `kind` names the randomizer generator; `sql_type` is the logical type that
    the DDL layer maps to a concrete per-backend type.
    """

    name: str
    kind: str
    sql_type: str
    cardinality: int = 0
    indexed: bool = False

    model_config = {"frozen": True}


class TableSchema(BaseModel):
    """Logical table: name, columns and the columns rewritten by update cases."""

    name: str
    columns: Tuple[Column, ...]
    update_columns: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def column_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def insert_columns(self) -> Tuple[Column, ...]:
        """Columns populated on insert (auto-increment ids excluded)."""
        return tuple(c for c in self.columns if c.kind != "autoinc")

    def columns_conf(self, names: Iterable[str]) -> Tuple[Column, ...]:
        by_name = {c.name: c for c in self.columns}
        try:
            return tuple(by_name[n] for n in names)
        except KeyError as exc:
            raise KeyError(f"table '{self.name}' has no column {exc}") from None


class CaseDescriptor(BaseModel):
    """
    Immutable description of one benchmark case.

    `launcher` is one of the launch variants in `dbbench.launchers`: a plain
    worker loop, a setup-then-loop, or the full-suite meta-case.
    """

    name: str
    metric: str = ""
    description: str = ""
    category: Category = Category.OTHER
    readonly: bool = False
    backends: FrozenSet[Backend]
    table: Optional[TableSchema] = None
    launcher: Any = Field(None, repr=False, exclude=True)

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @field_validator("backends")
    @classmethod
    def _backends_not_empty(cls, value: FrozenSet[Backend]) -> FrozenSet[Backend]:
        if not value:
            raise ValueError("a case must support at least one backend")
        return value

    def is_supported(self, backend: Backend) -> bool:
        return backend in self.backends

    def backend_marks(self) -> str:
        """Render supported backends as e.g. `[PM-S----]`."""
        return "[" + "".join(b.symbol if b in self.backends else "-" for b in Backend) + "]"


class CaseGroup(BaseModel):
    name: str
    cases: Tuple[CaseDescriptor, ...] = ()

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.cases)


__all__ = [
    "ALL",
    "Backend",
    "CaseDescriptor",
    "CaseGroup",
    "Category",
    "Column",
    "PMWSA",
    "RELATIONAL",
    "TableSchema",
    "VECTOR",
]
