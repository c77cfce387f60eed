"""
Pytest configuration for dbbench.

Provides fixtures for:
- An in-memory fake accessor that records every statement
- Settings with test-friendly suite timings
- Small registries of stub cases
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional, Sequence, Tuple

import pytest

from dbbench.config import Settings
from dbbench.domain.models import ALL, Backend, CaseDescriptor, Category
from dbbench.launchers import WorkerLoop
from dbbench.registry import CaseRegistry


class FakeSession:
    def __init__(self, accessor: "FakeAccessor", in_transaction: bool) -> None:
        self._accessor = accessor
        self.in_transaction = in_transaction

    def probe(self) -> None:
        self._accessor.record("SELECT 1", ())

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Optional[Tuple[Any, ...]]:
        self._accessor.record(sql, params)
        return self._accessor.row_for(sql)

    def query_rows(self, sql: str, params: Sequence[Any] = ()) -> List[Tuple[Any, ...]]:
        self._accessor.record(sql, params)
        return []

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        self._accessor.record(sql, params)
        return 1

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        rows = list(rows)
        self._accessor.record(sql, rows)
        return len(rows)

    def bulk_insert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
        rows = list(rows)
        self._accessor.record(f"COPY {table} ({', '.join(columns)})", rows)
        return len(rows)

    def next_val(self, sequence: str) -> int:
        self._accessor.record(f"NEXTVAL {sequence}", ())
        return 1


class FakeAccessor:
    """Records (sql, params) pairs; `rows` maps an SQL prefix to the row returned."""

    def __init__(self, backend: Backend = Backend.SQLITE) -> None:
        self.backend = backend
        self.statements: List[Tuple[str, Any]] = []
        self.rows: Dict[str, Tuple[Any, ...]] = {}
        self.transactions = 0
        self.sequences: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def record(self, sql: str, params: Any) -> None:
        with self._lock:
            self.statements.append((sql, params))

    def row_for(self, sql: str) -> Optional[Tuple[Any, ...]]:
        for prefix, row in self.rows.items():
            if sql.startswith(prefix):
                return row
        return (0,)

    def sql(self) -> List[str]:
        with self._lock:
            return [s for s, _ in self.statements]

    @contextmanager
    def session(self) -> Generator[FakeSession, None, None]:
        yield FakeSession(self, in_transaction=False)

    @contextmanager
    def transaction(self) -> Generator[FakeSession, None, None]:
        with self._lock:
            self.transactions += 1
        yield FakeSession(self, in_transaction=True)

    def ping(self) -> None:
        self.record("PING", ())

    def create_sequence(self, name: str) -> None:
        self.sequences.append(name)

    def close(self) -> None:
        self.closed = True


def counting_unit(counter: Dict[str, int], rows: int = 1) -> Callable[[Any], int]:
    lock = threading.Lock()

    def unit(ctx: Any) -> int:
        with lock:
            counter[ctx.case.name] = counter.get(ctx.case.name, 0) + 1
        return rows

    return unit


def stub_case(name: str, category: Category = Category.OTHER, backends=ALL, unit=None) -> CaseDescriptor:
    return CaseDescriptor(
        name=name,
        category=category,
        backends=frozenset(backends),
        launcher=WorkerLoop(unit or (lambda ctx: 1)),
    )


@pytest.fixture
def fake_accessor() -> FakeAccessor:
    return FakeAccessor(Backend.SQLITE)


@pytest.fixture
def postgres_accessor() -> FakeAccessor:
    return FakeAccessor(Backend.POSTGRES)


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """
    Settings fixture with test-specific overrides.

    Suite phases are shortened so timed phases finish quickly.
    """
    return Settings(
        db_backend=Backend.SQLITE,
        sqlite_path=str(tmp_path / "dbbench.sqlite"),
        log_level=os.getenv("LOG_LEVEL", "DEBUG"),
        random_seed=7,
        suite_phase_seconds=0.01,
        min_blob_size=16,
        max_blob_size=64,
        results_dir=str(tmp_path / "results"),
    )


@pytest.fixture
def empty_registry() -> CaseRegistry:
    return CaseRegistry()


@pytest.fixture
def make_accessor() -> Callable[..., FakeAccessor]:
    return FakeAccessor


@pytest.fixture
def make_case() -> Callable[..., CaseDescriptor]:
    return stub_case


@pytest.fixture
def make_counting_unit() -> Callable[..., Callable[[Any], int]]:
    return counting_unit
