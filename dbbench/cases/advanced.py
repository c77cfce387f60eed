"""
Advanced tests group: sequences, pings, user-supplied queries, row locking,
JSON documents and the update variants that rewrite existing values.
"""

from __future__ import annotations

from typing import Mapping

from dbbench.cases import units
from dbbench.domain.models import ALL, RELATIONAL, Backend, CaseDescriptor, Category
from dbbench.domain.tables import HEAVY, JSON
from dbbench.errors import ConfigurationError, UnsupportedBackendError
from dbbench.launchers import SetupThenLoop, WorkerLoop
from dbbench.query_builder import RAW_CTI_MARKER, RAW_TENANT_MARKER, param, substitute_raw_markers
from dbbench.runner import WorkerContext
from dbbench.utils.logging import get_logger

log = get_logger(__name__)

SEQUENCE_NAME = "dbbench_sequence"
BULK_UPDATE_ROWS = 50_000

JSON_BACKENDS = frozenset({Backend.MYSQL, Backend.POSTGRES})
SKIP_LOCKED_BACKENDS = frozenset({Backend.POSTGRES, Backend.MYSQL, Backend.MSSQL})

# `{p}` marks a bound parameter.
JSON_INDEXED: Mapping[Backend, str] = {
    Backend.POSTGRES: "json_data @> '{\"field0\": {\"field0\": 10}}'",
    Backend.MYSQL: "JSON_EXTRACT(json_data, '$.field0.field0') = 10",
}
JSON_NONINDEXED: Mapping[Backend, str] = {
    Backend.POSTGRES: "json_data @> '{\"field0\": {\"field1\": 10}}'",
    Backend.MYSQL: "JSON_EXTRACT(json_data, '$.field0.field1') = 10",
}
JSON_SEARCH_INDEXED: Mapping[Backend, str] = {
    Backend.POSTGRES: "json_data->'field0'->'field2'->>'field0' LIKE {p}",
    Backend.MYSQL: "JSON_UNQUOTE(JSON_EXTRACT(json_data, '$.field0.field2.field0')) LIKE {p}",
}
JSON_SEARCH_NONINDEXED: Mapping[Backend, str] = {
    Backend.POSTGRES: "json_data->'field1'->'field2'->>'field0' LIKE {p}",
    Backend.MYSQL: "JSON_UNQUOTE(JSON_EXTRACT(json_data, '$.field1.field2.field0')) LIKE {p}",
}
JSON_SEARCH_PATTERN = "%eedl%"

_SKIP_LOCKED_QUERY: Mapping[Backend, str] = {
    Backend.POSTGRES: "SELECT id, progress FROM {table} WHERE id < {max} LIMIT 1 FOR UPDATE SKIP LOCKED",
    Backend.MYSQL: "SELECT id, progress FROM {table} WHERE id < {max} LIMIT 1 FOR UPDATE SKIP LOCKED",
    Backend.MSSQL: "SELECT TOP(1) id, progress FROM {table} WITH (UPDLOCK, READPAST, ROWLOCK) WHERE id < {max}",
}


def ping(ctx: WorkerContext) -> int:
    ctx.accessor.ping()
    return 1


def nextval_setup(case, bench, plan):
    bench.accessor.create_sequence(SEQUENCE_NAME)

    def unit(ctx: WorkerContext) -> int:
        with ctx.accessor.transaction() as tx:
            tx.next_val(SEQUENCE_NAME)
        return 1

    return unit


def custom_setup(case, bench, plan):
    """Run `settings.custom_query`, filling `{TENANT}` / `{CTI}` per unit."""
    query = bench.settings.custom_query
    if not query:
        raise ConfigurationError("the 'custom' case needs a query (CUSTOM_QUERY or --query)")
    wants_tenant = RAW_TENANT_MARKER in query
    wants_cti = RAW_CTI_MARKER in query
    log.debug("Custom query", extra={"query": query})

    def unit(ctx: WorkerContext) -> int:
        sql = query
        if wants_tenant or wants_cti:
            sql = substitute_raw_markers(
                query,
                tenant_uuid=ctx.tenants.random_tenant_uuid(ctx.randomizer) if wants_tenant else None,
                cti_uuid=ctx.tenants.random_cti_uuid(ctx.randomizer) if wants_cti else None,
            )
        with ctx.accessor.session() as session:
            session.execute(sql)
        return 1

    return unit


def skip_locked_setup(case, bench, plan):
    """
    Lock one of the first `workers * 2` rows with SKIP LOCKED semantics and
    bump its progress in the same transaction.
    """
    template = _SKIP_LOCKED_QUERY.get(bench.backend)
    if template is None:
        raise UnsupportedBackendError(case.name, bench.backend.value)
    upper = plan.workers * 2 + 1
    units.prefill(bench, HEAVY, upper)
    query = template.format(table=HEAVY.name, max=upper)

    def unit(ctx: WorkerContext) -> int:
        marker = param(ctx.backend)
        with ctx.accessor.transaction() as tx:
            row_id, progress = units.require_rows(tx.query_row(query), "SELECT FOR UPDATE")
            tx.execute(
                f"UPDATE {HEAVY.name} SET progress = {marker} WHERE id = {marker}",
                (progress + 1, row_id),
            )
        return 1

    return unit


def json_setup(predicates: Mapping[Backend, str], search: bool = False):
    """Random-id JSON select with the backend's predicate for this case."""

    def setup(case, bench, plan):
        predicate = predicates.get(bench.backend)
        if predicate is None:
            raise UnsupportedBackendError(case.name, bench.backend.value)
        extra = (lambda ctx: (JSON_SEARCH_PATTERN,)) if search else (lambda ctx: ())
        return units.random_id_where(predicate, extra)(case, bench, plan)

    return setup


def _json_select(name, description, predicates, search=False):
    return CaseDescriptor(
        name=name,
        metric="rows/sec",
        description=description,
        category=Category.SELECT,
        readonly=True,
        backends=JSON_BACKENDS,
        table=JSON,
        launcher=SetupThenLoop(json_setup(predicates, search)),
    )


def _update(name, description, setup):
    return CaseDescriptor(
        name=name,
        metric="rows/sec",
        description=description,
        category=Category.UPDATE,
        backends=RELATIONAL,
        table=HEAVY,
        launcher=SetupThenLoop(setup),
    )


CASES = (
    CaseDescriptor(
        name="select-nextval",
        metric="ops/sec",
        description="increment a DB sequence in a loop",
        category=Category.OTHER,
        readonly=True,
        backends=RELATIONAL,
        launcher=SetupThenLoop(nextval_setup),
    ),
    CaseDescriptor(
        name="ping",
        metric="ping/sec",
        description="just ping DB",
        category=Category.OTHER,
        readonly=True,
        backends=ALL,
        launcher=WorkerLoop(ping),
    ),
    CaseDescriptor(
        name="custom",
        metric="queries/sec",
        description="custom DB query execution",
        category=Category.OTHER,
        backends=ALL,
        launcher=SetupThenLoop(custom_setup),
    ),
    CaseDescriptor(
        name="select-heavy-for-update-skip-locked",
        metric="updates/sec",
        description="do SELECT FOR UPDATE SKIP LOCKED and then UPDATE",
        category=Category.OTHER,
        backends=SKIP_LOCKED_BACKENDS,
        table=HEAVY,
        launcher=SetupThenLoop(skip_locked_setup),
    ),
    CaseDescriptor(
        name="insert-json",
        metric="rows/sec",
        description="insert a row into a table with JSON(b) column",
        category=Category.INSERT,
        backends=JSON_BACKENDS,
        table=JSON,
        launcher=WorkerLoop(units.insert_rows),
    ),
    _json_select(
        "select-json-by-indexed-value",
        "select a row from the 'json' table by some json condition",
        JSON_INDEXED,
    ),
    _json_select(
        "search-json-by-indexed-value",
        "search a row from the 'json' table using some json condition using LIKE {}",
        JSON_SEARCH_INDEXED,
        search=True,
    ),
    _json_select(
        "select-json-by-nonindexed-value",
        "select a row from the 'json' table by some json condition",
        JSON_NONINDEXED,
    ),
    _json_select(
        "search-json-by-nonindexed-value",
        "search a row from the 'json' table using some json condition using LIKE {}",
        JSON_SEARCH_NONINDEXED,
        search=True,
    ),
    _update(
        "update-heavy-sameval",
        "update random row in the 'heavy' table putting the value which already exists",
        units.update_setup(columns=("const_val",)),
    ),
    _update(
        "update-heavy-partial-sameval",
        "update random row in the 'heavy' table putting two values, where one of them is already exists in this row",
        units.update_setup(columns=("const_val", "progress")),
    ),
    _update(
        "bulkupdate-heavy",
        f"update N rows (see --batch, default {BULK_UPDATE_ROWS}) in the 'heavy' table by single transaction",
        units.update_setup(rows=BULK_UPDATE_ROWS),
    ),
)
