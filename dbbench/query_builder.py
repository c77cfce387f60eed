"""
Backend-specific SQL construction.

Everything here is a pure function of (template, backend, values). Dialect
differences live in the static tables below instead of branches inside case
bodies. Templates quote identifiers with a backtick, which is swapped for the
backend's quoting character in a final pass after all values are substituted.

Usage:
    from dbbench.query_builder import build_tenant_aware_query

    sql = build_tenant_aware_query(
        "dbbench_heavy", Backend.POSTGRES, tenant_uuid, order_by="ORDER BY enqueue_time DESC"
    )
"""

from __future__ import annotations

import uuid
from typing import Mapping, Optional, Sequence

from dbbench.domain.models import Backend
from dbbench.domain.tables import CTI_ENTITIES, CTI_PROVISIONING, TENANT_CLOSURE, TENANTS
from dbbench.errors import UnsupportedBackendError

TEMPLATE_QUOTE = "`"

TRUE_MARKER = "{true}"
TENANT_UUID_MARKER = "{tenant_uuid}"
CTI_UUID_MARKER = "{cti_uuid}"

# Markers accepted in user-supplied raw queries.
RAW_TENANT_MARKER = "{TENANT}"
RAW_CTI_MARKER = "{CTI}"

TRUE_LITERAL: Mapping[Backend, str] = {
    Backend.POSTGRES: "true",
    Backend.MYSQL: "1",
    Backend.MSSQL: "1",
    Backend.SQLITE: "1",
}

IDENTIFIER_QUOTE: Mapping[Backend, str] = {
    Backend.POSTGRES: '"',
    Backend.MYSQL: "`",
    Backend.MSSQL: '"',
    Backend.SQLITE: '"',
}

PARAMETER_MARKER: Mapping[Backend, str] = {
    Backend.POSTGRES: "%s",
    Backend.MYSQL: "%s",
    Backend.MSSQL: "?",
    Backend.SQLITE: "?",
}

_MSSQL_NULL_ORDER = "ORDER BY (SELECT NULL)"


def _require_relational(backend: Backend, what: str) -> None:
    if backend not in TRUE_LITERAL:
        raise UnsupportedBackendError(what, backend.value)


def quote_uuid(value: str) -> str:
    """Normalise a UUID and return it as a single-quoted SQL literal."""
    return "'" + str(uuid.UUID(str(value))) + "'"


def tenant_aware_template(table: str) -> str:
    """
    Join `table` to its tenant, the tenant closure and the ancestor tenant.

    Only ancestor/self paths without an access barrier qualify, and neither
    the row's tenant nor the ancestor may be soft-deleted.
    """
    return (
        f"SELECT `{table}`.`id` AS `id`, `{table}`.`tenant_id` FROM `{table}` "
        f"JOIN `{TENANTS.name}` AS `tenants_child` "
        f"ON ((`tenants_child`.`uuid` = `{table}`.`tenant_id`) "
        f"AND (`tenants_child`.`is_deleted` != {TRUE_MARKER})) "
        f"JOIN `{TENANT_CLOSURE.name}` AS `tenants_closure` "
        f"ON ((`tenants_closure`.`child_id` = `tenants_child`.`id`) "
        f"AND (`tenants_closure`.`barrier` <= 0)) "
        f"JOIN `{TENANTS.name}` AS `tenants_parent` "
        f"ON ((`tenants_parent`.`id` = `tenants_closure`.`parent_id`) "
        f"AND (`tenants_parent`.`uuid` IN ({TENANT_UUID_MARKER})) "
        f"AND (`tenants_parent`.`is_deleted` != {TRUE_MARKER}))"
    )


def cti_aware_template(table: str) -> str:
    """
    Extend the tenant-aware join with CTI scoping.

    A row qualifies when the tenant has the CTI entity provisioned as enabled
    OR the entity is globally enabled; the second branch needs no
    provisioning row at all.
    """
    return tenant_aware_template(table) + (
        f" JOIN `{CTI_ENTITIES.name}` AS `cti_ent` "
        f"ON `cti_ent`.`uuid` = `{table}`.`cti_entity_uuid` "
        f"AND `{table}`.`cti_entity_uuid` IN ({CTI_UUID_MARKER}) "
        f"LEFT JOIN `{CTI_PROVISIONING.name}` AS `cti_prov` "
        f"ON `cti_prov`.`tenant_id` = `tenants_child`.`id` "
        f"AND `cti_prov`.`cti_entity_uuid` = `{table}`.`cti_entity_uuid` "
        f"WHERE `cti_prov`.`state` = 1 OR `cti_ent`.`global_state` = 1"
    )


def substitute_values(template: str, backend: Backend, values: Mapping[str, str]) -> str:
    """
    Replace value markers. `{true}` always maps to the backend's boolean
    spelling; every other marker in `values` maps to its given text.
    """
    _require_relational(backend, "value substitution")
    sql = template.replace(TRUE_MARKER, TRUE_LITERAL[backend])
    for marker, value in values.items():
        sql = sql.replace(marker, value)
    return sql


def apply_identifier_quote(sql: str, backend: Backend) -> str:
    _require_relational(backend, "identifier quoting")
    quote = IDENTIFIER_QUOTE[backend]
    if quote == TEMPLATE_QUOTE:
        return sql
    return sql.replace(TEMPLATE_QUOTE, quote)


def render(template: str, backend: Backend, values: Mapping[str, str]) -> str:
    """Substitute values first, identifier quotes last."""
    return apply_identifier_quote(substitute_values(template, backend, values), backend)


def row_limit(backend: Backend, limit: int, order_by: Optional[str]) -> str:
    """Return the trailing ORDER BY (if any) plus exactly one row-limit clause."""
    if backend == Backend.MSSQL:
        order = order_by or _MSSQL_NULL_ORDER
        return f"{order} OFFSET 0 ROWS FETCH NEXT {int(limit)} ROWS ONLY"
    prefix = f"{order_by} " if order_by else ""
    return f"{prefix}LIMIT {int(limit)}"


def build_tenant_aware_query(
    table: str,
    backend: Backend,
    tenant_uuid: str,
    order_by: Optional[str] = None,
    cti_uuid: Optional[str] = None,
) -> str:
    """
    Build the tenant-scoped (and optionally CTI-scoped) single-row lookup.

    Raises
    ------
    UnsupportedBackendError
        If `backend` is not one of the relational families.
    ValueError
        If a UUID argument is malformed.
    """
    _require_relational(backend, "tenant-aware query")
    values = {TENANT_UUID_MARKER: quote_uuid(tenant_uuid)}
    if cti_uuid is not None:
        template = cti_aware_template(table)
        values[CTI_UUID_MARKER] = quote_uuid(cti_uuid)
    else:
        template = tenant_aware_template(table)
    sql = substitute_values(template, backend, values)
    sql = f"{sql} {row_limit(backend, 1, order_by)}"
    return apply_identifier_quote(sql, backend)


def substitute_raw_markers(
    query: str, tenant_uuid: Optional[str] = None, cti_uuid: Optional[str] = None
) -> str:
    """Fill `{TENANT}` / `{CTI}` in a user-supplied query; no quoting pass."""
    if tenant_uuid is not None:
        query = query.replace(RAW_TENANT_MARKER, quote_uuid(tenant_uuid))
    if cti_uuid is not None:
        query = query.replace(RAW_CTI_MARKER, quote_uuid(cti_uuid))
    return query


def placeholders(backend: Backend, count: int) -> str:
    _require_relational(backend, "parameter placeholders")
    return ", ".join([PARAMETER_MARKER[backend]] * count)


def param(backend: Backend) -> str:
    _require_relational(backend, "parameter placeholders")
    return PARAMETER_MARKER[backend]


def select_query(
    backend: Backend,
    table: str,
    columns: Sequence[str],
    where: Optional[str] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = 1,
) -> str:
    """
    Plain SELECT for the point/range cases. `where` and `order_by` are raw
    fragments (without the keywords ORDER BY).
    """
    _require_relational(backend, "select query")
    sql = f"SELECT {', '.join(columns)} FROM {table}"
    if where:
        sql += f" WHERE {where}"
    order = f"ORDER BY {order_by}" if order_by else None
    if limit is not None:
        sql += " " + row_limit(backend, limit, order)
    elif order:
        sql += " " + order
    return sql


def insert_query(backend: Backend, table: str, columns: Sequence[str]) -> str:
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({placeholders(backend, len(columns))})"
    )


def multi_value_insert_query(
    backend: Backend, table: str, columns: Sequence[str], rows: int
) -> str:
    group = f"({placeholders(backend, len(columns))})"
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES " + ", ".join([group] * rows)


__all__ = [
    "CTI_UUID_MARKER",
    "IDENTIFIER_QUOTE",
    "PARAMETER_MARKER",
    "TENANT_UUID_MARKER",
    "TRUE_LITERAL",
    "TRUE_MARKER",
    "apply_identifier_quote",
    "build_tenant_aware_query",
    "cti_aware_template",
    "insert_query",
    "multi_value_insert_query",
    "param",
    "placeholders",
    "quote_uuid",
    "render",
    "row_limit",
    "select_query",
    "substitute_raw_markers",
    "substitute_values",
    "tenant_aware_template",
]
