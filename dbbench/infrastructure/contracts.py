"""
Data-access contracts consumed by the benchmark cases.

One accessor implementation exists per backend family and is chosen once, at
connection time. Cases only ever talk to these protocols.
"""

from __future__ import annotations

from typing import Any, ContextManager, Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from dbbench.domain.models import Backend

Row = Tuple[Any, ...]


@runtime_checkable
class Session(Protocol):
    """A scoped unit of database interaction bound to one connection."""

    def probe(self) -> None:
        """Cheapest possible read round-trip (`SELECT 1` or equivalent)."""
        ...

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        ...

    def query_rows(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the affected row count."""
        ...

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        """Run one prepared statement for every parameter row."""
        ...

    def bulk_insert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
        ...

    def next_val(self, sequence: str) -> int:
        ...


@runtime_checkable
class DataAccessor(Protocol):
    backend: Backend

    def session(self) -> ContextManager[Session]:
        ...

    def transaction(self) -> ContextManager[Session]:
        """Session whose work commits on success and rolls back on exception."""
        ...

    def ping(self) -> None:
        ...

    def create_sequence(self, name: str) -> None:
        ...

    def close(self) -> None:
        ...


__all__ = ["DataAccessor", "Row", "Session"]
