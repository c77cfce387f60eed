from __future__ import annotations

import threading
import time

import pytest

from dbbench.domain.models import Backend, Category
from dbbench.errors import CaseFailedError, ConfigurationError, UnsupportedBackendError
from dbbench.runner import CaseRunner, DurationBudget, LoopBudget, RunPlan, WorkerContext

LOOPS = 100
WORKERS = 4
BACKEND = Backend.SQLITE


def _factory(case, worker_id, batch):
    return WorkerContext(
        case=case,
        backend=BACKEND,
        worker_id=worker_id,
        batch=batch,
        accessor=None,
        randomizer=None,
        tenants=None,
        settings=None,
    )


@pytest.fixture
def runner() -> CaseRunner:
    return CaseRunner(_factory)


def test_loop_budget_records_exact_sample_count(runner, make_case) -> None:
    case = make_case("insert-x", category=Category.INSERT)

    result = runner.run(case, BACKEND, WORKERS, LoopBudget(LOOPS), lambda ctx: 1)

    assert result.loops == LOOPS
    assert len(result.samples) == LOOPS
    assert result.rows == LOOPS
    assert result.workers == WORKERS
    assert result.loop_bounded
    assert not result.cancelled


def test_loop_budget_is_exact_under_contention(runner, make_case, make_counting_unit) -> None:
    counter = {}
    case = make_case("contended")
    count = make_counting_unit(counter)

    def unit(ctx):
        time.sleep(0.0005)
        return count(ctx)

    result = runner.run(case, BACKEND, 16, LoopBudget(LOOPS), unit)

    assert counter["contended"] == LOOPS
    assert len(result.samples) == LOOPS


def test_rows_per_unit_drive_the_rate(runner, make_case) -> None:
    result = runner.run(make_case("batch"), BACKEND, 2, LoopBudget(10), lambda ctx: ctx.batch, batch=50)

    assert result.rows == 500
    assert result.rate > 0


def test_first_failure_aborts_the_run(runner, make_case) -> None:
    calls = []
    lock = threading.Lock()

    def unit(ctx):
        with lock:
            calls.append(ctx.worker_id)
            if len(calls) == 5:
                raise ValueError("boom")
        return 1

    with pytest.raises(CaseFailedError) as excinfo:
        runner.run(make_case("failing"), BACKEND, WORKERS, LoopBudget(10_000), unit)

    assert isinstance(excinfo.value.cause, ValueError)
    assert excinfo.value.case_name == "failing"
    assert len(calls) < 10_000


def test_failure_stops_sibling_workers_promptly(runner, make_case) -> None:
    lock = threading.Lock()
    state = {"failed": False, "after": 0}

    def unit(ctx):
        with lock:
            failed = state["failed"]
            if failed:
                state["after"] += 1
            state["failed"] = True
        if not failed:
            raise RuntimeError("first unit fails")
        time.sleep(0.0005)
        return 1

    with pytest.raises(CaseFailedError):
        runner.run(make_case("fail-fast"), BACKEND, WORKERS, LoopBudget(200_000), unit)

    # Workers already past the abort check may finish the unit in hand.
    assert state["after"] <= WORKERS * 2


def test_shutdown_stops_between_units(make_case) -> None:
    shutdown = threading.Event()
    runner = CaseRunner(_factory, shutdown)
    seen = []

    def unit(ctx):
        seen.append(1)
        if len(seen) >= 10:
            shutdown.set()
        return 1

    result = runner.run(make_case("stoppable"), BACKEND, 1, LoopBudget(10_000), unit)

    assert result.cancelled
    assert result.loops == 10


def test_duration_budget_stops_at_deadline(runner, make_case) -> None:
    def unit(ctx):
        time.sleep(0.001)
        return 1

    result = runner.run(make_case("timed"), BACKEND, 2, DurationBudget(0.05), unit)

    assert result.loops > 0
    assert result.elapsed_seconds >= 0.05
    assert not result.loop_bounded


def test_unsupported_backend_is_rejected_before_work(runner, make_case) -> None:
    case = make_case("pg-only", backends={Backend.POSTGRES})

    with pytest.raises(UnsupportedBackendError):
        runner.run(case, BACKEND, 1, LoopBudget(1), lambda ctx: pytest.fail("must not run"))


@pytest.mark.parametrize("build", [lambda: LoopBudget(0), lambda: DurationBudget(0)])
def test_non_positive_budgets_are_configuration_errors(build) -> None:
    with pytest.raises(ConfigurationError):
        build()


def test_plan_batch_defaults() -> None:
    assert RunPlan(workers=1, budget=LoopBudget(1)).effective_batch(256) == 256
    assert RunPlan(workers=1, budget=LoopBudget(1), batch=10).effective_batch(256) == 10
