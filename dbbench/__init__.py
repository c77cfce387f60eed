"""
dbbench - multi-dialect database benchmark harness.

This package provides:

- A registry of named benchmark cases grouped for listing
- A dialect gate that skips cases the active backend cannot run
- A concurrent case runner bounded by loop count or wall-clock duration
- A phased full suite with per-category geometric-mean scores
- A tenant-aware query builder over a tenant closure table
"""

from __future__ import annotations

__version__ = "0.1.0"

# Public API exports
from dbbench.cases import build_registry
from dbbench.config import Settings, get_settings
from dbbench.errors import (
    BenchmarkError,
    CaseFailedError,
    ConfigurationError,
    DataAccessError,
    UnsupportedBackendError,
)
from dbbench.orchestrator import CaseOutcome, Orchestrator, SuiteResult
from dbbench.registry import CaseRegistry
from dbbench.runner import DurationBudget, LoopBudget, RunPlan, RunResult
from dbbench.scores import ScoreBoard, geomean
from dbbench.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    # Configuration
    "Settings",
    "get_settings",
    # Catalog
    "CaseRegistry",
    "build_registry",
    # Execution
    "CaseOutcome",
    "DurationBudget",
    "LoopBudget",
    "Orchestrator",
    "RunPlan",
    "RunResult",
    "SuiteResult",
    # Scores
    "ScoreBoard",
    "geomean",
    # Errors
    "BenchmarkError",
    "CaseFailedError",
    "ConfigurationError",
    "DataAccessError",
    "UnsupportedBackendError",
    # Logging
    "configure_logging",
    "get_logger",
]
