from __future__ import annotations

import re

import pytest

from dbbench.domain.models import Backend
from dbbench.errors import UnsupportedBackendError
from dbbench.query_builder import (
    build_tenant_aware_query,
    insert_query,
    multi_value_insert_query,
    render,
    select_query,
    substitute_raw_markers,
)

TENANT = "3f2504e0-4f89-41d3-9a0c-0305e82c3301"
CTI = "9b2d1a7c-5e2f-4c1b-8a3d-6f7e8d9c0b1a"
TABLE = "dbbench_heavy"
ORDER = f"ORDER BY `{TABLE}`.`enqueue_time` DESC"


def _limits(sql: str) -> int:
    return len(re.findall(r"\bLIMIT\b", sql)) + len(re.findall(r"\bFETCH NEXT\b", sql))


@pytest.mark.parametrize(
    "backend, true_literal, quote",
    [
        (Backend.POSTGRES, "true", '"'),
        (Backend.MYSQL, "1", "`"),
        (Backend.SQLITE, "1", '"'),
        (Backend.MSSQL, "1", '"'),
    ],
)
def test_tenant_aware_query_per_backend(backend, true_literal, quote) -> None:
    sql = build_tenant_aware_query(TABLE, backend, TENANT, order_by=ORDER)

    assert sql.count(f"{quote}tenants_child{quote}.{quote}uuid{quote}") == 1
    assert sql.count(f"JOIN {quote}dbbench_tenant_closure{quote} AS {quote}tenants_closure{quote}") == 1
    assert sql.count(f"AS {quote}tenants_parent{quote}") == 1
    assert f"!= {true_literal})" in sql
    assert "{true}" not in sql
    assert f"IN ('{TENANT}')" in sql
    assert _limits(sql) == 1
    if quote != "`":
        assert "`" not in sql


def test_postgres_tenant_query_ends_with_order_and_limit() -> None:
    sql = build_tenant_aware_query(TABLE, Backend.POSTGRES, TENANT, order_by=ORDER)

    assert sql.startswith(f'SELECT "{TABLE}"."id" AS "id"')
    assert sql.endswith(f'ORDER BY "{TABLE}"."enqueue_time" DESC LIMIT 1')


def test_mssql_uses_offset_fetch_even_without_order() -> None:
    sql = build_tenant_aware_query(TABLE, Backend.MSSQL, TENANT)

    assert sql.endswith("ORDER BY (SELECT NULL) OFFSET 0 ROWS FETCH NEXT 1 ROWS ONLY")
    assert "LIMIT" not in sql


def test_cti_aware_query_embeds_cti_once_with_permissive_predicate() -> None:
    sql = build_tenant_aware_query(TABLE, Backend.POSTGRES, TENANT, order_by=ORDER, cti_uuid=CTI)

    assert sql.count(CTI) == 1
    assert 'JOIN "dbbench_cti_entities" AS "cti_ent"' in sql
    assert 'LEFT JOIN "dbbench_cti_provisioning" AS "cti_prov"' in sql
    assert 'WHERE "cti_prov"."state" = 1 OR "cti_ent"."global_state" = 1' in sql
    assert _limits(sql) == 1


def test_values_are_substituted_before_identifier_quoting() -> None:
    # A backtick inside a substituted value is converted too, proving the order.
    sql = render("SELECT `a` FROM t WHERE x = {v}", Backend.POSTGRES, {"{v}": "`b`"})

    assert sql == 'SELECT "a" FROM t WHERE x = "b"'


def test_malformed_uuid_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_tenant_aware_query(TABLE, Backend.POSTGRES, "not-a-uuid")


def test_non_relational_backend_is_rejected() -> None:
    with pytest.raises(UnsupportedBackendError):
        build_tenant_aware_query(TABLE, Backend.ELASTICSEARCH, TENANT)


def test_raw_markers_are_quoted_literals() -> None:
    query = "SELECT * FROM t WHERE tenant_id = {TENANT} AND cti = {CTI}"

    sql = substitute_raw_markers(query, tenant_uuid=TENANT, cti_uuid=CTI)

    assert sql == f"SELECT * FROM t WHERE tenant_id = '{TENANT}' AND cti = '{CTI}'"


def test_select_query_shapes() -> None:
    assert (
        select_query(Backend.SQLITE, "t", ["id"], "id > ?", order_by="id ASC")
        == "SELECT id FROM t WHERE id > ? ORDER BY id ASC LIMIT 1"
    )
    assert select_query(Backend.POSTGRES, "t", ["COUNT(0)"], "a = %s", limit=None) == (
        "SELECT COUNT(0) FROM t WHERE a = %s"
    )


def test_insert_queries_use_backend_markers() -> None:
    assert insert_query(Backend.POSTGRES, "t", ["a", "b"]) == "INSERT INTO t (a, b) VALUES (%s, %s)"
    assert multi_value_insert_query(Backend.SQLITE, "t", ["a"], 3) == "INSERT INTO t (a) VALUES (?), (?), (?)"
