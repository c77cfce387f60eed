from __future__ import annotations

import signal
import sys
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import typer

from dbbench import gate
from dbbench.cases import build_registry
from dbbench.config import Settings, get_settings
from dbbench.domain.models import Backend
from dbbench.errors import BenchmarkError, ConfigurationError
from dbbench.infrastructure import connect
from dbbench.launchers import FullSuite
from dbbench.orchestrator import Orchestrator, persist_results, validate_chunk
from dbbench.reporter import print_catalog, print_outcomes, print_suite
from dbbench.runner import Budget, DurationBudget, LoopBudget, RunPlan
from dbbench.utils.logging import configure_logging, get_logger

app = typer.Typer(help="Database throughput benchmark CLI.")

log = get_logger(__name__)


def resolve_budget(settings: Settings, loops: Optional[int], duration: Optional[float]) -> Budget:
    """
    Pick exactly one budget: explicit flags first, then settings.

    Raises
    ------
    ConfigurationError
        If both `loops` and `duration` are given.
    """
    if loops is not None and duration is not None:
        raise ConfigurationError("--loops and --duration are mutually exclusive")
    if loops is not None:
        return LoopBudget(loops)
    if duration is not None:
        return DurationBudget(duration)
    if settings.benchmark_loops > 0:
        return LoopBudget(settings.benchmark_loops)
    return DurationBudget(settings.benchmark_duration_seconds)


def _install_signal_handlers(shutdown: threading.Event) -> None:
    def handler(signum, frame):  # noqa: ARG001
        log.warning("[SHUTDOWN] signal received, finishing current unit", extra={"signal": signum})
        shutdown.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    target = (
        settings.sqlite_path
        if settings.db_backend == Backend.SQLITE
        else f"{settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )
    typer.echo(
        f"DB={settings.db_backend.value}:{target} | "
        f"workers={settings.benchmark_workers} loops={settings.benchmark_loops} "
        f"duration={settings.benchmark_duration_seconds}s batch={settings.benchmark_batch} | "
        f"suite chunk={settings.suite_chunk} limit={settings.suite_limit}"
    )


@app.command("list")
def list_cases(
    backend: Optional[Backend] = typer.Option(
        None, "--backend", "-b", help="Dim cases that cannot run on this backend."
    ),
) -> None:
    """
    List every case by group with its supported backends.
    """
    print_catalog(build_registry(), backend)


@app.command()
def run(
    case: str = typer.Option("select-1", "--case", "-t", help="Case to run, or 'all' for the full suite."),
    workers: Optional[int] = typer.Option(None, "--workers", "-c", help="Concurrent workers."),
    loops: Optional[int] = typer.Option(None, "--loops", "-l", help="Stop after this many units of work."),
    duration: Optional[float] = typer.Option(None, "--duration", "-d", help="Stop after this many seconds."),
    batch: Optional[int] = typer.Option(None, "--batch", "-b", help="Rows per unit of work."),
    chunk: Optional[int] = typer.Option(None, "--chunk", help="Suite chunk size."),
    limit: Optional[int] = typer.Option(None, "--limit", help="Suite row limit."),
    backend: Optional[Backend] = typer.Option(None, "--backend", help="Override DB_BACKEND."),
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Query for the 'custom' case."),
    persist: Optional[bool] = typer.Option(None, "--persist/--no-persist", help="Write results/latest.json."),
) -> None:
    """
    Run one case, or the phased full suite with `--case all`.
    """
    overrides: Dict[str, Any] = {
        "db_backend": backend,
        "benchmark_workers": workers,
        "benchmark_batch": batch,
        "suite_chunk": chunk,
        "suite_limit": limit,
        "custom_query": query,
        "persist_results": persist,
    }
    settings = get_settings().model_copy(update={k: v for k, v in overrides.items() if v is not None})
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    try:
        _run(settings, case, loops, duration)
    except BenchmarkError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)


def _run(settings: Settings, case_name: str, loops: Optional[int], duration: Optional[float]) -> None:
    registry = build_registry()
    descriptor = registry.lookup(case_name)
    gate.require(descriptor, settings.db_backend)
    plan = RunPlan(
        workers=max(settings.benchmark_workers, 1),
        budget=resolve_budget(settings, loops, duration),
        batch=settings.benchmark_batch or None,
    )
    if isinstance(descriptor.launcher, FullSuite):
        validate_chunk(settings.suite_chunk, settings.suite_limit)

    shutdown = threading.Event()
    _install_signal_handlers(shutdown)
    accessor = connect(settings)
    try:
        bench = Orchestrator(registry, accessor, settings, shutdown=shutdown)
        outcome = bench.execute_case(descriptor, plan)
        if bench.last_suite is not None:
            print_suite(bench.last_suite)
            results = bench.last_suite.as_dict()
        else:
            print_outcomes([outcome])
            results = outcome.as_dict()
        if settings.persist_results:
            persist_results(results, accessor.backend, Path(settings.results_dir))
    finally:
        accessor.close()


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
