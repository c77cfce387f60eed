"""
Error taxonomy for dbbench.

Configuration errors are raised before any work is performed. Data-access
failures abort the current run and are never retried. Unsupported
case/backend combinations inside a suite are skips, not errors, and a
shutdown request is not an error at all.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Root of all errors raised by dbbench."""


class ConfigurationError(BenchmarkError):
    """Invalid options, catalog or case/backend combination."""


class DuplicateCaseError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"case '{name}' is already registered")
        self.name = name


class CaseNotFoundError(ConfigurationError):
    def __init__(self, name: str) -> None:
        super().__init__(f"unknown case '{name}'")
        self.name = name


class UnsupportedBackendError(ConfigurationError):
    def __init__(self, subject: str, backend: str) -> None:
        super().__init__(f"{subject} is not supported on backend '{backend}'")
        self.subject = subject
        self.backend = backend


class DataAccessError(BenchmarkError):
    """A collaborator (database, randomizer, tenant cache) failed during a run."""


class CaseFailedError(DataAccessError):
    """A unit of work raised; the whole run was aborted."""

    def __init__(self, case_name: str, cause: BaseException) -> None:
        super().__init__(f"case '{case_name}' failed: {type(cause).__name__}: {cause}")
        self.case_name = case_name
        self.cause = cause


class RandomizerError(DataAccessError):
    """The fake-data generator could not produce a value."""


class ScoreError(BenchmarkError):
    """Invalid input to the score aggregator."""


__all__ = [
    "BenchmarkError",
    "CaseFailedError",
    "CaseNotFoundError",
    "ConfigurationError",
    "DataAccessError",
    "DuplicateCaseError",
    "RandomizerError",
    "ScoreError",
    "UnsupportedBackendError",
]
