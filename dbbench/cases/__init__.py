"""
Benchmark case catalog.

Each group module exposes a `CASES` tuple; `build_registry` registers them in
listing order. Usage:

    from dbbench.cases import build_registry

    registry = build_registry()
    registry.lookup("select-1")
"""

from __future__ import annotations

from dbbench.cases import advanced, base, blob, tenant_aware, timeseries, vector
from dbbench.registry import CaseRegistry

GROUPS = (
    ("Base tests group", base.CASES),
    ("Vector tests group", vector.CASES),
    ("Advanced tests group", advanced.CASES),
    ("Tenant-aware tests", tenant_aware.CASES),
    ("Blob tests", blob.CASES),
    ("Timeseries tests", timeseries.CASES),
)


def build_registry() -> CaseRegistry:
    registry = CaseRegistry()
    for group, cases in GROUPS:
        registry.add_group(group)
        for case in cases:
            registry.register(case, group=group)
    return registry


__all__ = ["GROUPS", "build_registry"]
