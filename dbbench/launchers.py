"""
Launch variants for case descriptors.

A case is launched in one of three ways: a plain worker loop around a unit of
work, a setup step that prepares state and then returns the unit to loop, or
the full-suite meta-case that hands control back to the orchestrator.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Callable, Optional

from dbbench.runner import RunPlan, RunResult, UnitOfWork

if TYPE_CHECKING:
    from dbbench.domain.models import CaseDescriptor
    from dbbench.orchestrator import Orchestrator


class Launcher(abc.ABC):
    @abc.abstractmethod
    def launch(
        self, case: "CaseDescriptor", bench: "Orchestrator", plan: RunPlan
    ) -> Optional[RunResult]:  # pragma: no cover - interface only
        """Run the case and return its result, or None for meta-cases."""
        raise NotImplementedError


class WorkerLoop(Launcher):
    """Loop `unit` under the plan's budget; `default_batch` applies when unset."""

    def __init__(self, unit: UnitOfWork, default_batch: int = 1) -> None:
        self.unit = unit
        self.default_batch = default_batch

    def launch(self, case, bench, plan):
        return bench.run_units(case, self.unit, plan, self.default_batch)


Setup = Callable[["CaseDescriptor", "Orchestrator", RunPlan], UnitOfWork]


class SetupThenLoop(Launcher):
    """Run `setup` once, then loop the unit it returns."""

    def __init__(self, setup: Setup, default_batch: int = 1) -> None:
        self.setup = setup
        self.default_batch = default_batch

    def launch(self, case, bench, plan):
        unit = self.setup(case, bench, plan)
        return bench.run_units(case, unit, plan, self.default_batch)


class FullSuite(Launcher):
    """The `all` meta-case: run the phased suite with configured chunk/limit."""

    def launch(self, case, bench, plan):
        bench.run_suite(workers=plan.workers)
        return None


__all__ = ["FullSuite", "Launcher", "SetupThenLoop", "WorkerLoop"]
