"""
Case registry: the process-lifetime catalog of benchmark cases.

Cases are registered once at startup, grouped for listing, and looked up by
name afterwards. Registration order is preserved so listings and suite replays
are deterministic. Descriptors are never removed.
"""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from dbbench.domain.models import Backend, CaseDescriptor, CaseGroup
from dbbench.errors import CaseNotFoundError, ConfigurationError, DuplicateCaseError
from dbbench.utils.logging import get_logger

log = get_logger(__name__)


class CaseRegistry:
    """Catalog of case descriptors keyed by unique name."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cases: Dict[str, CaseDescriptor] = {}
        self._groups: Dict[str, List[str]] = {}

    def __len__(self) -> int:
        return len(self._cases)

    def __contains__(self, name: object) -> bool:
        return name in self._cases

    def add_group(self, name: str) -> None:
        with self._lock:
            if name in self._groups:
                raise ConfigurationError(f"group '{name}' is already defined")
            self._groups[name] = []

    def register(self, descriptor: CaseDescriptor, group: Optional[str] = None) -> CaseDescriptor:
        """
        Add a descriptor to the catalog, optionally as a member of `group`.

        Raises
        ------
        DuplicateCaseError
            If a descriptor with the same name is already registered.
        ConfigurationError
            If `group` has not been created with `add_group`.
        """
        with self._lock:
            if descriptor.name in self._cases:
                raise DuplicateCaseError(descriptor.name)
            if group is not None and group not in self._groups:
                raise ConfigurationError(f"unknown group '{group}'")
            self._cases[descriptor.name] = descriptor
            if group is not None:
                self._groups[group].append(descriptor.name)
        log.debug("Registered case", extra={"case": descriptor.name, "group": group})
        return descriptor

    def lookup(self, name: str) -> CaseDescriptor:
        try:
            return self._cases[name]
        except KeyError:
            raise CaseNotFoundError(name) from None

    def all_descriptors(self) -> Tuple[CaseDescriptor, ...]:
        return tuple(self._cases.values())

    def descriptors_in_group(self, name: str) -> Tuple[CaseDescriptor, ...]:
        try:
            names = self._groups[name]
        except KeyError:
            raise ConfigurationError(f"unknown group '{name}'") from None
        return tuple(self._cases[n] for n in names)

    def groups(self) -> Tuple[CaseGroup, ...]:
        return tuple(
            CaseGroup(name=name, cases=self.descriptors_in_group(name)) for name in self._groups
        )

    def supported_on(self, backend: Backend) -> Tuple[CaseDescriptor, ...]:
        return tuple(c for c in self._cases.values() if c.is_supported(backend))


__all__ = ["CaseRegistry"]
