"""
Integration tests against a real SQLite database file.

These tests exercise the full path from the catalog through the orchestrator
to the SQLite accessor and verify that:
1. Seed inserts populate the tenant hierarchy and CTI tables
2. Workload inserts, updates and tenant-aware selects run without errors
3. The emulated sequence advances once per unit

SQLite ships with Python, so only the phased suite run is gated behind
RUN_INTEGRATION_TESTS=1.
"""

from __future__ import annotations

import os

import pytest

from dbbench.cases import build_registry
from dbbench.domain.models import Backend
from dbbench.infrastructure import SQLiteAccessor, connect
from dbbench.orchestrator import Orchestrator
from dbbench.runner import LoopBudget, RunPlan

TENANT_LOOPS = 20
CTI_LOOPS = 5
INSERT_LOOPS = 10
INSERT_BATCH = 4
SELECT_LOOPS = 10
WORKERS = 4


@pytest.fixture
def sqlite_settings(test_settings):
    return test_settings.model_copy(update={"db_backend": Backend.SQLITE})


@pytest.fixture
def bench(sqlite_settings):
    accessor = connect(sqlite_settings)
    assert isinstance(accessor, SQLiteAccessor)
    try:
        yield Orchestrator(build_registry(), accessor, sqlite_settings)
    finally:
        accessor.close()


def _count(bench: Orchestrator, table: str) -> int:
    with bench.accessor.session() as session:
        return int(session.query_row(f"SELECT COUNT(*) FROM {table}")[0])


def _run(bench: Orchestrator, name: str, loops: int, workers: int = WORKERS, batch=None):
    outcome = bench.execute_case(name, RunPlan(workers=workers, budget=LoopBudget(loops), batch=batch))
    assert not outcome.skipped
    assert outcome.result.loops == loops
    return outcome


def test_seed_then_workload(bench) -> None:
    _run(bench, "insert-tenant", TENANT_LOOPS, workers=1)
    _run(bench, "insert-cti", CTI_LOOPS, workers=1)

    assert _count(bench, "dbbench_tenants") == TENANT_LOOPS
    assert _count(bench, "dbbench_cti_entities") == CTI_LOOPS
    # Every tenant has its self-link plus one link per ancestor.
    assert _count(bench, "dbbench_tenant_closure") >= TENANT_LOOPS

    _run(bench, "insert-medium", INSERT_LOOPS, batch=INSERT_BATCH)
    assert _count(bench, "dbbench_medium") == INSERT_LOOPS * INSERT_BATCH

    _run(bench, "insert-heavy", INSERT_LOOPS, batch=INSERT_BATCH)
    _run(bench, "select-medium-last-in-tenant", SELECT_LOOPS)
    _run(bench, "select-heavy-last-in-tenant-and-cti", SELECT_LOOPS)
    _run(bench, "select-heavy-rand-in-tenant-like", SELECT_LOOPS)
    _run(bench, "update-medium", SELECT_LOOPS)
    _run(bench, "update-heavy", SELECT_LOOPS)

    assert _count(bench, "dbbench_medium") == INSERT_LOOPS * INSERT_BATCH


def test_insert_variants_write_the_same_rows(bench) -> None:
    for name in ("insert-light", "insert-light-prepared", "insert-light-multivalue"):
        _run(bench, name, INSERT_LOOPS, batch=INSERT_BATCH)

    assert _count(bench, "dbbench_light") == 3 * INSERT_LOOPS * INSERT_BATCH


def test_sequence_advances_once_per_unit(bench) -> None:
    _run(bench, "select-nextval", SELECT_LOOPS)

    with bench.accessor.session() as session:
        value = session.next_val("dbbench_sequence")
    assert value == SELECT_LOOPS + 1


def test_point_selects_and_ping(bench) -> None:
    _run(bench, "insert-medium", INSERT_LOOPS, batch=INSERT_BATCH)

    for name in ("select-1", "ping", "select-medium-last", "select-medium-rand", "insert-ts-sql", "select-ts-sql"):
        _run(bench, name, SELECT_LOOPS)


@pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Suite run is slow; set RUN_INTEGRATION_TESTS=1",
)
def test_full_suite_on_sqlite(bench) -> None:
    suite = bench.run_suite(chunk=5000, limit=5000, workers=4)

    assert suite.chunks_run == 1
    assert suite.summary["insert"] is not None
    assert any(o.skipped for o in suite.outcomes)
