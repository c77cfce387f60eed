"""
Case runner: executes one case's unit of work across N concurrent workers.

A run is bounded either by a shared iteration budget or by a wall-clock
deadline. The iteration counter is the only state workers mutate together;
claims are serialized so the run never overruns its budget. Shutdown and
abort flags are checked between units, never mid-unit. The first failing unit
aborts every worker and the failure is raised to the caller without retry.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from dbbench.domain.models import Backend, CaseDescriptor, Category
from dbbench.errors import CaseFailedError, ConfigurationError, UnsupportedBackendError
from dbbench.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class LoopBudget:
    """Run until `loops` units of work have completed across all workers."""

    loops: int

    def __post_init__(self) -> None:
        if self.loops < 1:
            raise ConfigurationError(f"loop budget must be positive, got {self.loops}")

    def describe(self) -> str:
        return f"{self.loops} loops"


@dataclass(frozen=True)
class DurationBudget:
    """Run until `seconds` of wall-clock time have elapsed."""

    seconds: float

    def __post_init__(self) -> None:
        if self.seconds <= 0:
            raise ConfigurationError(f"duration budget must be positive, got {self.seconds}")

    def describe(self) -> str:
        return f"{self.seconds:g}s"


Budget = Union[LoopBudget, DurationBudget]


@dataclass(frozen=True)
class RunPlan:
    """
    How to run one case: worker count, budget and batch size.

    `batch=None` means the operator did not configure one, so the case may
    apply its own default.
    """

    workers: int
    budget: Budget
    batch: Optional[int] = None

    def effective_batch(self, default: int = 1) -> int:
        return self.batch if self.batch else default


@dataclass
class WorkerContext:
    """Per-worker view of the collaborators a unit of work may use."""

    case: CaseDescriptor
    backend: Backend
    worker_id: int
    batch: int
    accessor: Any
    randomizer: Any
    tenants: Any
    settings: Any
    state: Dict[str, Any] = field(default_factory=dict)


UnitOfWork = Callable[[WorkerContext], int]
ContextFactory = Callable[[CaseDescriptor, int, int], WorkerContext]


@dataclass
class RunResult:
    case: str
    category: Category
    workers: int
    budget: Budget
    loops: int
    rows: int
    elapsed_seconds: float
    samples: List[float] = field(default_factory=list, repr=False)
    cancelled: bool = False

    @property
    def rate(self) -> float:
        """Rows per second over the whole run."""
        return self.rows / self.elapsed_seconds if self.elapsed_seconds > 0 else 0.0

    @property
    def loop_bounded(self) -> bool:
        return isinstance(self.budget, LoopBudget)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "case": self.case,
            "category": self.category.value,
            "workers": self.workers,
            "budget": self.budget.describe(),
            "loops": self.loops,
            "rows": self.rows,
            "duration_seconds": round(self.elapsed_seconds, 3),
            "rate": round(self.rate, 2),
            "cancelled": self.cancelled,
        }


class IterationCounter:
    """Remaining-iteration counter shared by all workers of a loop-bounded run."""

    def __init__(self, total: int) -> None:
        self._remaining = total
        self._lock = threading.Lock()

    def claim(self) -> bool:
        with self._lock:
            if self._remaining <= 0:
                return False
            self._remaining -= 1
            return True

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining


class _Tally:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.loops = 0
        self.rows = 0
        self.samples: List[float] = []

    def add(self, rows: int, latency: float) -> None:
        with self._lock:
            self.loops += 1
            self.rows += rows
            self.samples.append(latency)


class CaseRunner:
    """
    Runs units of work with a fixed-size thread pool.

    Parameters
    ----------
    context_factory : callable
        Builds the `WorkerContext` for (case, worker_id, batch).
    shutdown : threading.Event
        Set by the operator to stop admitting new units.
    """

    def __init__(self, context_factory: ContextFactory, shutdown: Optional[threading.Event] = None) -> None:
        self._context_factory = context_factory
        self.shutdown = shutdown or threading.Event()

    def run(
        self,
        descriptor: CaseDescriptor,
        backend: Backend,
        workers: int,
        budget: Budget,
        unit: UnitOfWork,
        batch: int = 1,
    ) -> RunResult:
        if not descriptor.is_supported(backend):
            raise UnsupportedBackendError(f"case '{descriptor.name}'", backend.value)
        if workers < 1:
            raise ConfigurationError(f"worker count must be positive, got {workers}")

        counter = IterationCounter(budget.loops) if isinstance(budget, LoopBudget) else None
        deadline = (
            time.monotonic() + budget.seconds if isinstance(budget, DurationBudget) else None
        )
        abort = threading.Event()
        tally = _Tally()

        log.debug(
            f"[RUN] {descriptor.name} workers={workers} budget={budget.describe()} batch={batch}",
            extra={"case": descriptor.name, "workers": workers, "batch": batch},
        )
        start = time.perf_counter()
        failures: List[BaseException] = []
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=f"worker-{descriptor.name}"
        ) as pool:
            futures = [
                pool.submit(
                    self._work, descriptor, worker_id, batch, unit, counter, deadline, abort, tally
                )
                for worker_id in range(workers)
            ]
            for future in as_completed(futures):
                exc = future.exception()
                if exc is not None:
                    abort.set()
                    failures.append(exc)
        elapsed = time.perf_counter() - start

        if failures:
            log.error(
                f"[RUN FAILED] {descriptor.name}",
                extra={"case": descriptor.name, "error": str(failures[0])},
            )
            raise CaseFailedError(descriptor.name, failures[0]) from failures[0]

        return RunResult(
            case=descriptor.name,
            category=descriptor.category,
            workers=workers,
            budget=budget,
            loops=tally.loops,
            rows=tally.rows,
            elapsed_seconds=elapsed,
            samples=tally.samples,
            cancelled=self.shutdown.is_set(),
        )

    def _work(
        self,
        descriptor: CaseDescriptor,
        worker_id: int,
        batch: int,
        unit: UnitOfWork,
        counter: Optional[IterationCounter],
        deadline: Optional[float],
        abort: threading.Event,
        tally: _Tally,
    ) -> None:
        try:
            ctx = self._context_factory(descriptor, worker_id, batch)
            while not abort.is_set() and not self.shutdown.is_set():
                if deadline is not None and time.monotonic() >= deadline:
                    break
                if counter is not None and not counter.claim():
                    break
                started = time.perf_counter()
                rows = unit(ctx)
                tally.add(rows, time.perf_counter() - started)
        except BaseException:
            # Raised here so sibling workers stop before this future resolves.
            abort.set()
            raise


__all__ = [
    "Budget",
    "CaseRunner",
    "DurationBudget",
    "IterationCounter",
    "LoopBudget",
    "RunPlan",
    "RunResult",
    "UnitOfWork",
    "WorkerContext",
]
