"""
Domain package for dbbench.

Exports backend identities, case categories, table schemas and the case
descriptor. Keep this package focused on data definitions and validation.
"""

from dbbench.domain.models import (
    ALL,
    PMWSA,
    RELATIONAL,
    VECTOR,
    Backend,
    CaseDescriptor,
    CaseGroup,
    Category,
    Column,
    TableSchema,
)

__all__ = [
    "ALL",
    "Backend",
    "CaseDescriptor",
    "CaseGroup",
    "Category",
    "Column",
    "PMWSA",
    "RELATIONAL",
    "TableSchema",
    "VECTOR",
]
