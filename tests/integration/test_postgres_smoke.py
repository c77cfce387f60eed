"""
Integration tests for the PostgreSQL accessor.

These tests run against a real PostgreSQL instance and verify that the
PostgreSQL-only paths (COPY, sequences, SKIP LOCKED, JSONB and large
objects) execute without errors.

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest

from dbbench.cases import build_registry
from dbbench.config import Settings
from dbbench.domain.models import Backend
from dbbench.infrastructure import PostgresAccessor, connect, schema
from dbbench.orchestrator import Orchestrator
from dbbench.runner import LoopBudget, RunPlan

DEFAULT_LOOPS = 10
DEFAULT_BATCH = 8
DEFAULT_WORKERS = 2

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture
def bench(tmp_path):
    settings = Settings(
        db_backend=Backend.POSTGRES,
        random_seed=11,
        min_blob_size=16,
        max_blob_size=64,
        results_dir=str(tmp_path / "results"),
    )
    accessor = connect(settings)
    assert isinstance(accessor, PostgresAccessor)
    schema.drop_tables(accessor, schema.SUITE_TABLES)
    try:
        yield Orchestrator(build_registry(), accessor, settings)
    finally:
        schema.drop_tables(accessor, schema.SUITE_TABLES)
        accessor.close()


def _run(bench: Orchestrator, name: str, loops: int = DEFAULT_LOOPS, batch=None):
    outcome = bench.execute_case(
        name, RunPlan(workers=DEFAULT_WORKERS, budget=LoopBudget(loops), batch=batch)
    )
    assert not outcome.skipped
    assert outcome.result.loops == loops
    return outcome


def test_copy_and_prepared_inserts(bench) -> None:
    _run(bench, "copy-light", batch=DEFAULT_BATCH)
    _run(bench, "insert-light-prepared", batch=DEFAULT_BATCH)

    with bench.accessor.session() as session:
        count = session.query_row("SELECT COUNT(*) FROM dbbench_light")[0]
    assert count == 2 * DEFAULT_LOOPS * DEFAULT_BATCH


def test_sequence_and_skip_locked(bench) -> None:
    _run(bench, "select-nextval")
    _run(bench, "select-heavy-for-update-skip-locked")


def test_json_insert_and_search(bench) -> None:
    _run(bench, "insert-json", batch=DEFAULT_BATCH)
    _run(bench, "select-json-by-indexed-value")
    _run(bench, "search-json-by-nonindexed-value")


def test_tenant_aware_select(bench) -> None:
    _run(bench, "insert-tenant", loops=20)
    _run(bench, "insert-cti", loops=5)
    _run(bench, "insert-heavy", batch=DEFAULT_BATCH)
    _run(bench, "select-heavy-last-in-tenant-and-cti")
