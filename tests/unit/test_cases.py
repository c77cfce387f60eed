from __future__ import annotations

import pytest

from dbbench.cases import build_registry
from dbbench.domain.models import RELATIONAL, Backend
from dbbench.errors import CaseFailedError, ConfigurationError, DataAccessError
from dbbench.orchestrator import Orchestrator
from dbbench.runner import LoopBudget, RunPlan

LOOPS = 3
BATCH = 5
MAX_ID = 100_000


@pytest.fixture(scope="module")
def registry():
    return build_registry()


def _plan(loops: int = LOOPS, batch=None, workers: int = 1) -> RunPlan:
    return RunPlan(workers=workers, budget=LoopBudget(loops), batch=batch)


def _statements(accessor, prefix):
    return [(sql, params) for sql, params in accessor.statements if sql.startswith(prefix)]


def test_insert_rows_one_statement_per_row(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    outcome = bench.execute_case("insert-medium", _plan(batch=BATCH))

    assert outcome.result.rows == LOOPS * BATCH
    assert fake_accessor.transactions == LOOPS
    inserts = _statements(fake_accessor, "INSERT INTO dbbench_medium")
    assert len(inserts) == LOOPS * BATCH
    assert inserts[0][0] == (
        "INSERT INTO dbbench_medium (uuid, tenant_id, euc_id, progress, enqueue_time) VALUES (?, ?, ?, ?, ?)"
    )


def test_multivalue_insert_carries_the_batch(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    bench.execute_case("insert-medium-multivalue", _plan(loops=1, batch=BATCH))

    (sql, params), = _statements(fake_accessor, "INSERT INTO dbbench_medium")
    assert sql.count("(?, ?, ?, ?, ?)") == BATCH
    assert len(params) == BATCH * 5


def test_copy_uses_bulk_path(registry, postgres_accessor, test_settings) -> None:
    bench = Orchestrator(registry, postgres_accessor, test_settings)

    bench.execute_case("copy-light", _plan(loops=2, batch=BATCH))

    copies = _statements(postgres_accessor, "COPY dbbench_light (uuid)")
    assert len(copies) == 2
    assert all(len(rows) == BATCH for _, rows in copies)


def test_insert_tenant_fills_the_cache(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    bench.execute_case("insert-tenant", _plan(loops=10))

    assert bench.tenants.tenant_count == 10
    assert len(_statements(fake_accessor, "INSERT INTO dbbench_tenants ")) == 10


def test_update_single_row(registry, fake_accessor, test_settings) -> None:
    fake_accessor.rows["SELECT MAX(id)"] = (MAX_ID,)
    bench = Orchestrator(registry, fake_accessor, test_settings)

    bench.execute_case("update-medium", _plan())

    updates = _statements(fake_accessor, "UPDATE dbbench_medium")
    assert len(updates) == LOOPS
    sql, params = updates[0]
    assert sql == "UPDATE dbbench_medium SET progress = ?, enqueue_time = ? WHERE id = ?"
    assert 1 <= params[-1] <= MAX_ID


@pytest.mark.parametrize("batch, span", [(None, 50_000), (10, 10)])
def test_bulk_update_span(registry, fake_accessor, test_settings, batch, span) -> None:
    fake_accessor.rows["SELECT MAX(id)"] = (MAX_ID,)
    bench = Orchestrator(registry, fake_accessor, test_settings)

    outcome = bench.execute_case("bulkupdate-heavy", _plan(loops=2, batch=batch))

    assert outcome.result.rows == 2 * span
    for sql, params in _statements(fake_accessor, "UPDATE dbbench_heavy"):
        assert sql.endswith("WHERE id >= ? AND id < ?")
        assert params[-1] - params[-2] == span


def test_nextval_creates_sequence_once(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    bench.execute_case("select-nextval", _plan(loops=4, workers=2))

    assert fake_accessor.sequences == ["dbbench_sequence"]
    assert len(_statements(fake_accessor, "NEXTVAL dbbench_sequence")) == 4


def test_custom_case_without_query_is_a_configuration_error(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    with pytest.raises(ConfigurationError):
        bench.execute_case("custom", _plan())


def test_custom_case_runs_the_configured_query(registry, fake_accessor, test_settings) -> None:
    settings = test_settings.model_copy(update={"custom_query": "DELETE FROM dbbench_light WHERE id < 0"})
    bench = Orchestrator(registry, fake_accessor, settings)

    bench.execute_case("custom", _plan())

    assert len(_statements(fake_accessor, "DELETE FROM dbbench_light")) == LOOPS


def test_custom_case_with_tenant_marker_needs_tenants(registry, fake_accessor, test_settings) -> None:
    settings = test_settings.model_copy(update={"custom_query": "SELECT 1 WHERE {TENANT} IS NOT NULL"})
    bench = Orchestrator(registry, fake_accessor, settings)

    with pytest.raises(CaseFailedError) as excinfo:
        bench.execute_case("custom", _plan())

    assert isinstance(excinfo.value.cause, DataAccessError)


def test_tenant_aware_select_fails_fast_on_empty_cache(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    with pytest.raises(CaseFailedError) as excinfo:
        bench.execute_case("select-medium-last-in-tenant", _plan())

    assert isinstance(excinfo.value.cause, DataAccessError)


def test_tenant_aware_select_after_seeding(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)
    bench.execute_case("insert-tenant", _plan(loops=5))

    bench.execute_case("select-medium-last-in-tenant", _plan())

    selects = [s for s in fake_accessor.sql() if "tenants_closure" in s]
    assert len(selects) == LOOPS
    assert selects[0].endswith('ORDER BY "dbbench_medium"."enqueue_time" DESC LIMIT 1')


def test_skip_locked_bumps_progress(registry, postgres_accessor, test_settings) -> None:
    postgres_accessor.rows["SELECT COUNT(*)"] = (1_000,)
    postgres_accessor.rows["SELECT id, progress"] = (3, 7)
    bench = Orchestrator(registry, postgres_accessor, test_settings)

    bench.execute_case("select-heavy-for-update-skip-locked", _plan(loops=2, workers=2))

    locks = _statements(postgres_accessor, "SELECT id, progress")
    assert locks[0][0].endswith("WHERE id < 5 LIMIT 1 FOR UPDATE SKIP LOCKED")
    updates = _statements(postgres_accessor, "UPDATE dbbench_heavy SET progress")
    assert [params for _, params in updates] == [(8, 3), (8, 3)]


def test_json_cases_skip_backends_without_json(registry, fake_accessor, test_settings) -> None:
    bench = Orchestrator(registry, fake_accessor, test_settings)

    outcome = bench.execute_case("search-json-by-indexed-value", _plan())

    assert outcome.skipped


def test_json_search_binds_the_pattern(registry, postgres_accessor, test_settings) -> None:
    postgres_accessor.rows["SELECT MAX(id)"] = (MAX_ID,)
    bench = Orchestrator(registry, postgres_accessor, test_settings)

    bench.execute_case("search-json-by-indexed-value", _plan(loops=1))

    (sql, params), = _statements(postgres_accessor, "SELECT id FROM dbbench_json")
    assert "json_data->'field0'->'field2'->>'field0' LIKE %s AND id > %s" in sql
    assert params[0] == "%eedl%"


@pytest.mark.parametrize(
    "name",
    [
        "select-medium-last-in-tenant",
        "select-heavy-last-in-tenant",
        "select-heavy-last-in-tenant-and-cti",
        "select-blob-last-in-tenant",
    ],
)
def test_tenant_aware_cases_are_skipped_on_non_relational_backends(
    registry, make_accessor, test_settings, name
) -> None:
    accessor = make_accessor(Backend.CASSANDRA)
    bench = Orchestrator(registry, accessor, test_settings)

    outcome = bench.execute_case(name, _plan())

    assert registry.lookup(name).backends == RELATIONAL
    assert outcome.skipped
    assert accessor.statements == []
