"""
Orchestrator for executing benchmark cases and the phased full suite.

Usage (example from CLI):
    from dbbench.cases import build_registry
    from dbbench.infrastructure import connect
    from dbbench.orchestrator import Orchestrator

    bench = Orchestrator(build_registry(), connect(settings), settings)
    outcome = bench.execute_case("select-1", RunPlan(workers=4, budget=DurationBudget(5)))
    suite = bench.run_suite(chunk=50_000, limit=100_000, workers=16)

A suite run repeats one fixed block of phases per chunk. Phases run strictly
one after another; only the workers inside a phase run concurrently. Results
can be persisted to `results/`:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from dbbench import gate
from dbbench.config import Settings, get_settings
from dbbench.domain.models import Backend, CaseDescriptor
from dbbench.errors import ConfigurationError
from dbbench.infrastructure import schema
from dbbench.infrastructure.contracts import DataAccessor
from dbbench.infrastructure.randomizer import Randomizer
from dbbench.infrastructure.tenants import TenantsCache
from dbbench.registry import CaseRegistry
from dbbench.runner import (
    Budget,
    CaseRunner,
    DurationBudget,
    LoopBudget,
    RunPlan,
    RunResult,
    UnitOfWork,
    WorkerContext,
)
from dbbench.scores import ScoreBoard
from dbbench.utils.logging import get_logger
from dbbench.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

MIN_CHUNK = 5000
DEFAULT_SUITE_WORKERS = 16

TENANT_SEED_LOOPS = 10_000
CTI_SEED_LOOPS = 1_000


@dataclass(frozen=True)
class PhaseSpec:
    budget: Budget
    workers: int
    case_name: str


def validate_chunk(chunk: int, limit: int, min_chunk: int = MIN_CHUNK) -> None:
    """
    Reject a chunk/limit pair before any work begins.

    Raises
    ------
    ConfigurationError
        If `chunk` is below `min_chunk` or above `limit`.
    """
    if chunk < min_chunk:
        raise ConfigurationError(f"chunk must not be less than {min_chunk}, got {chunk}")
    if chunk > limit:
        raise ConfigurationError(f"chunk ({chunk}) must not be greater than limit ({limit})")


def chunk_count(chunk: int, limit: int) -> int:
    """Number of chunk iterations needed to cover `limit`."""
    return -(-limit // chunk)


def _phase(budget: Budget, workers: int, *names: str) -> List[PhaseSpec]:
    return [PhaseSpec(budget=budget, workers=workers, case_name=n) for n in names]


def chunk_phases(chunk: int, workers: int, phase_seconds: float = 10.0) -> List[PhaseSpec]:
    """
    The phase block executed once per chunk.

    Seed inserts come first so every later phase finds tenants, CTI entities
    and non-empty workload tables. Selects are duration-bounded; inserts and
    updates are loop-bounded by a share of the chunk.
    """
    timed = DurationBudget(phase_seconds)
    unit = chunk // 100
    phases: List[PhaseSpec] = []

    phases += _phase(timed, 1, "select-1")

    phases += _phase(LoopBudget(TENANT_SEED_LOOPS), 1, "insert-tenant")
    phases += _phase(LoopBudget(CTI_SEED_LOOPS), 1, "insert-cti")

    phases += _phase(
        LoopBudget(unit * 5), 1,
        "insert-light", "insert-medium", "insert-heavy", "insert-json", "insert-ts-sql",
    )
    phases += _phase(
        LoopBudget(unit * 95), workers,
        "insert-light", "insert-medium", "insert-json", "insert-ts-sql",
    )

    updates = ("update-medium", "update-heavy", "update-heavy-partial-sameval", "update-heavy-sameval")
    phases += _phase(LoopBudget(unit * 2), 1, *updates)
    phases += _phase(LoopBudget(unit * 28), workers, *updates)

    for names in (("select-medium-rand", "select-heavy-rand"), ("select-medium-last", "select-heavy-last")):
        phases += _phase(timed, 1, *names)
        phases += _phase(timed, workers, *names)

    other_selects = (
        "select-heavy-last-in-tenant",
        "select-heavy-rand-in-tenant-like",
        "select-heavy-last-in-tenant-and-cti",
        "select-json-by-indexed-value",
        "select-json-by-nonindexed-value",
        "select-ts-sql",
        "select-heavy-minmax-in-tenant",
        "select-heavy-minmax-in-tenant-and-state",
    )
    phases += _phase(timed, 1, *other_selects)
    phases += _phase(timed, workers, *other_selects)
    return phases


@dataclass
class CaseOutcome:
    case: CaseDescriptor
    result: Optional[RunResult] = None
    skipped: bool = False
    reason: str = ""
    profile: Optional[ProfileStats] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"case": self.case.name, "skipped": self.skipped}
        if self.reason:
            payload["reason"] = self.reason
        if self.result is not None:
            payload.update(self.result.as_dict())
        if self.profile is not None:
            payload["profile"] = self.profile.as_dict()
        return payload


@dataclass
class SuiteResult:
    chunk: int
    limit: int
    workers: int
    chunks_run: int = 0
    outcomes: List[CaseOutcome] = field(default_factory=list)
    summary: Dict[str, Optional[float]] = field(default_factory=dict)
    cancelled: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            "chunk": self.chunk,
            "limit": self.limit,
            "workers": self.workers,
            "chunks_run": self.chunks_run,
            "cancelled": self.cancelled,
            "summary": self.summary,
            "cases": [o.as_dict() for o in self.outcomes if not o.skipped],
        }


class Orchestrator:
    """
    Runs cases against one accessor and aggregates their scores.

    Parameters
    ----------
    registry : CaseRegistry
        Catalog to resolve case names against.
    accessor : DataAccessor
        Data-access implementation for the active backend.
    settings : Settings, optional
        Effective configuration. Defaults to `get_settings()`.
    shutdown : threading.Event, optional
        Set by signal handlers; observed between units and between cases.
    """

    def __init__(
        self,
        registry: CaseRegistry,
        accessor: DataAccessor,
        settings: Optional[Settings] = None,
        tenants: Optional[TenantsCache] = None,
        scores: Optional[ScoreBoard] = None,
        shutdown: Optional[threading.Event] = None,
    ) -> None:
        self.registry = registry
        self.accessor = accessor
        self.settings = settings or get_settings()
        self.tenants = tenants or TenantsCache(accessor.backend)
        self.scores = scores or ScoreBoard()
        self.shutdown = shutdown or threading.Event()
        self.runner = CaseRunner(self._make_context, self.shutdown)
        self.last_suite: Optional[SuiteResult] = None
        self._ensured: Set[str] = set()
        self._run_index = 0

    @property
    def backend(self) -> Backend:
        return self.accessor.backend

    def randomizer(self, label: str) -> Randomizer:
        """A randomizer for setup steps, seeded from settings and `label`."""
        return Randomizer(
            seed=f"{self.settings.random_seed}:{label}:{self._run_index}",
            tenants=self.tenants,
            min_blob_size=self.settings.min_blob_size,
            max_blob_size=self.settings.max_blob_size,
        )

    def _make_context(self, case: CaseDescriptor, worker_id: int, batch: int) -> WorkerContext:
        return WorkerContext(
            case=case,
            backend=self.backend,
            worker_id=worker_id,
            batch=batch,
            accessor=self.accessor,
            randomizer=self.randomizer(f"{case.name}:{worker_id}"),
            tenants=self.tenants,
            settings=self.settings,
        )

    def _prepare(self, case: CaseDescriptor) -> None:
        # "" stands for the hierarchy tables every case may touch.
        key = case.table.name if case.table is not None else ""
        if key not in self._ensured:
            schema.ensure_tables(self.accessor, [case.table])
            self._ensured.update({key, ""})
        if not self.tenants.loaded:
            with self.accessor.session() as session:
                self.tenants.load(session)

    def run_units(
        self, case: CaseDescriptor, unit: UnitOfWork, plan: RunPlan, default_batch: int = 1
    ) -> RunResult:
        self._run_index += 1
        return self.runner.run(
            case,
            self.backend,
            plan.workers,
            plan.budget,
            unit,
            batch=plan.effective_batch(default_batch),
        )

    def execute_case(self, case: Union[str, CaseDescriptor], plan: RunPlan) -> CaseOutcome:
        """
        Look up, admit, prepare, launch and score one case.

        Unsupported cases come back as a skipped outcome. Failures of the run
        propagate as `CaseFailedError`.
        """
        descriptor = self.registry.lookup(case) if isinstance(case, str) else case
        admission = gate.admit(descriptor, self.backend)
        if admission.skipped:
            log.debug(f"[CASE SKIPPED] {descriptor.name}", extra={"case": descriptor.name, "reason": admission.reason})
            return CaseOutcome(case=descriptor, skipped=True, reason=admission.reason)

        self._prepare(descriptor)
        log.info(
            f"[CASE START] {descriptor.name}",
            extra={"case": descriptor.name, "workers": plan.workers, "budget": plan.budget.describe()},
        )
        with profile_block(descriptor.name) as stats:
            result = descriptor.launcher.launch(descriptor, self, plan)

        outcome = CaseOutcome(case=descriptor, result=result, profile=stats)
        if result is None:
            return outcome
        if result.rate > 0:
            self.scores.record(descriptor.category, result.rate)
        log.info(
            f"[CASE COMPLETE] {descriptor.name}",
            extra={
                "case": descriptor.name,
                "loops": result.loops,
                "rows": result.rows,
                "rate": round(result.rate, 2),
                "cancelled": result.cancelled,
            },
        )
        return outcome

    def run_suite(
        self,
        chunk: Optional[int] = None,
        limit: Optional[int] = None,
        workers: Optional[int] = None,
    ) -> SuiteResult:
        """
        Run the phased suite over `ceil(limit / chunk)` chunks.

        Tables are dropped and recreated up front and dropped again at the
        end, including when a case fails. A shutdown request stops after the
        current case; the partial summary is still produced.
        """
        chunk = chunk if chunk is not None else self.settings.suite_chunk
        limit = limit if limit is not None else self.settings.suite_limit
        validate_chunk(chunk, limit)
        workers = workers if workers and workers > 1 else DEFAULT_SUITE_WORKERS

        self.scores.reset()
        self.tenants.reset()
        schema.drop_tables(self.accessor, schema.SUITE_TABLES)
        schema.create_tables(self.accessor, schema.SUITE_TABLES)
        self._ensured.update(t.name for t in schema.SUITE_TABLES)
        self._ensured.add("")

        suite = SuiteResult(chunk=chunk, limit=limit, workers=workers)
        phases = chunk_phases(chunk, workers, self.settings.suite_phase_seconds)
        total = chunk_count(chunk, limit)

        try:
            for index in range(total):
                log.info(f"[CHUNK {index + 1}/{total}]", extra={"chunk": chunk, "workers": workers})
                for phase in phases:
                    if self.shutdown.is_set():
                        break
                    log.debug(
                        f"[PHASE] {phase.case_name}",
                        extra={"workers": phase.workers, "budget": phase.budget.describe()},
                    )
                    suite.outcomes.append(
                        self.execute_case(phase.case_name, RunPlan(workers=phase.workers, budget=phase.budget))
                    )
                if self.shutdown.is_set():
                    suite.cancelled = True
                    break
                suite.chunks_run += 1
        finally:
            suite.summary = self.scores.summary()
            for category, value in suite.summary.items():
                log.info(
                    f"{category} geomean: {value:.0f}" if value is not None else f"{category} geomean: n/a",
                    extra={"category": category, "geomean": value},
                )
            schema.drop_tables(self.accessor, schema.SUITE_TABLES)
            self._ensured.clear()
            self.tenants.reset()
            self.last_suite = suite
        log.info(
            "[SUITE COMPLETE]" if not suite.cancelled else "[SUITE CANCELLED]",
            extra={"chunks_run": suite.chunks_run, "cases": len(suite.outcomes)},
        )
        return suite


def persist_results(results: Dict[str, Any], backend: Backend, results_dir: Path) -> None:
    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": backend.value,
        **results,
    }
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=str)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


__all__ = [
    "CaseOutcome",
    "MIN_CHUNK",
    "Orchestrator",
    "PhaseSpec",
    "SuiteResult",
    "chunk_count",
    "chunk_phases",
    "persist_results",
    "validate_chunk",
]
