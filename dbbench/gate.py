"""
Dialect gate: decides whether a case applies to the active backend.

A refused admission is a skip, not a failure. Only callers that were asked to
run one specific case use `require`, which turns the refusal into a
configuration error.
"""

from __future__ import annotations

from dataclasses import dataclass

from dbbench.domain.models import Backend, CaseDescriptor
from dbbench.errors import UnsupportedBackendError


@dataclass(frozen=True)
class Admission:
    case_name: str
    backend: Backend
    admitted: bool
    reason: str = ""

    @property
    def skipped(self) -> bool:
        return not self.admitted


def is_supported(descriptor: CaseDescriptor, backend: Backend) -> bool:
    return backend in descriptor.backends


def admit(descriptor: CaseDescriptor, backend: Backend) -> Admission:
    if is_supported(descriptor, backend):
        return Admission(case_name=descriptor.name, backend=backend, admitted=True)
    return Admission(
        case_name=descriptor.name,
        backend=backend,
        admitted=False,
        reason=f"not supported on {backend.value}, supported: {descriptor.backend_marks()}",
    )


def require(descriptor: CaseDescriptor, backend: Backend) -> None:
    if not is_supported(descriptor, backend):
        raise UnsupportedBackendError(f"case '{descriptor.name}'", backend.value)


__all__ = ["Admission", "admit", "is_supported", "require"]
