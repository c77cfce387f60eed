"""
Unit-of-work factories shared by the case declarations.

Every factory returns a callable `unit(ctx) -> rows` that performs exactly
one unit of work against `ctx.accessor`. Setup factories have the signature
`setup(case, bench, plan) -> unit` and may read the database once before the
loop starts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Tuple

from dbbench.domain.models import Column, TableSchema
from dbbench.errors import DataAccessError
from dbbench.query_builder import (
    insert_query,
    multi_value_insert_query,
    param,
    placeholders,
    select_query,
)
from dbbench.runner import RunPlan, UnitOfWork, WorkerContext

if TYPE_CHECKING:
    from dbbench.domain.models import CaseDescriptor
    from dbbench.orchestrator import Orchestrator

# (where fragment, params) built per unit from the worker context.
WhereBuilder = Callable[[WorkerContext], Tuple[str, Sequence[Any]]]
Setup = Callable[["CaseDescriptor", "Orchestrator", RunPlan], UnitOfWork]

PREFILL_BATCH = 1000


def _table(ctx: WorkerContext) -> TableSchema:
    return ctx.case.table


def max_id(bench: "Orchestrator", table: TableSchema) -> int:
    with bench.accessor.session() as session:
        row = session.query_row(f"SELECT MAX(id) FROM {table.name}")
    return int(row[0]) if row and row[0] is not None else 0


def prefill(bench: "Orchestrator", table: TableSchema, rows: int) -> None:
    """Insert random rows until `table` holds at least `rows` rows."""
    with bench.accessor.session() as session:
        existing = int(session.query_row(f"SELECT COUNT(*) FROM {table.name}")[0])
    missing = rows - existing
    if missing <= 0:
        return
    rz = bench.randomizer(f"prefill:{table.name}")
    columns = table.insert_columns()
    sql = insert_query(bench.backend, table.name, [c.name for c in columns])
    while missing > 0:
        batch = min(missing, PREFILL_BATCH)
        with bench.accessor.transaction() as tx:
            tx.execute_many(sql, rz.gen_fake_rows(columns, batch))
        missing -= batch


# Inserts


def insert_rows(ctx: WorkerContext) -> int:
    """One INSERT per row, `batch` rows per transaction."""
    columns = _table(ctx).insert_columns()
    with ctx.accessor.transaction() as tx:
        for _ in range(ctx.batch):
            names, values = ctx.randomizer.gen_fake_data(columns)
            tx.execute(insert_query(ctx.backend, _table(ctx).name, names), values)
    return ctx.batch


def insert_prepared(ctx: WorkerContext) -> int:
    """One prepared INSERT executed for the whole batch."""
    columns = _table(ctx).insert_columns()
    sql = insert_query(ctx.backend, _table(ctx).name, [c.name for c in columns])
    with ctx.accessor.transaction() as tx:
        tx.execute_many(sql, ctx.randomizer.gen_fake_rows(columns, ctx.batch))
    return ctx.batch


def insert_multivalue(ctx: WorkerContext) -> int:
    """A single `INSERT ... VALUES (...), (...)` statement carrying the batch."""
    columns = _table(ctx).insert_columns()
    rows = ctx.randomizer.gen_fake_rows(columns, ctx.batch)
    sql = multi_value_insert_query(ctx.backend, _table(ctx).name, [c.name for c in columns], len(rows))
    with ctx.accessor.transaction() as tx:
        tx.execute(sql, [value for row in rows for value in row])
    return ctx.batch


def copy_rows(ctx: WorkerContext) -> int:
    """Bulk-copy path of the driver (COPY on PostgreSQL)."""
    columns = _table(ctx).insert_columns()
    rows = ctx.randomizer.gen_fake_rows(columns, ctx.batch)
    with ctx.accessor.transaction() as tx:
        tx.bulk_insert(_table(ctx).name, [c.name for c in columns], rows)
    return ctx.batch


def create_tenants(ctx: WorkerContext) -> int:
    with ctx.accessor.transaction() as tx:
        for _ in range(ctx.batch):
            ctx.tenants.create_tenant(ctx.randomizer, tx)
    return ctx.batch


def create_cti_entities(ctx: WorkerContext) -> int:
    with ctx.accessor.transaction() as tx:
        for _ in range(ctx.batch):
            ctx.tenants.create_cti_entity(ctx.randomizer, tx)
    return ctx.batch


# Selects


def select_unit(
    columns: Sequence[str],
    where: Optional[WhereBuilder] = None,
    order_by: Optional[str] = None,
    limit: Optional[int] = 1,
) -> UnitOfWork:
    """Run one SELECT; a missing row is not an error."""

    def unit(ctx: WorkerContext) -> int:
        fragment, params = where(ctx) if where else (None, ())
        sql = select_query(ctx.backend, _table(ctx).name, columns, fragment, order_by, limit)
        with ctx.accessor.session() as session:
            session.query_rows(sql, params)
        return 1

    return unit


def column_equals(*names: str) -> WhereBuilder:
    """`a = ? AND b = ?` with values drawn from the table's column generators."""

    def build(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
        columns = _table(ctx).columns_conf(names)
        _, values = ctx.randomizer.gen_fake_data(columns)
        marker = param(ctx.backend)
        return " AND ".join(f"{n} = {marker}" for n in names), values

    return build


def random_id_select(columns: Sequence[str], op: str = ">") -> Setup:
    """Select the first row past a random id, ascending."""

    def setup(case: "CaseDescriptor", bench: "Orchestrator", plan: RunPlan) -> UnitOfWork:
        upper = max_id(bench, case.table)

        def where(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
            return f"id {op} {param(ctx.backend)}", (ctx.randomizer.int_below(upper),)

        return select_unit(columns, where, order_by="id ASC")

    return setup


def random_id_where(extra: str, extra_params: Callable[[WorkerContext], Sequence[Any]]) -> Setup:
    """Raw predicate plus `id > random`, first matching row by id."""

    def setup(case: "CaseDescriptor", bench: "Orchestrator", plan: RunPlan) -> UnitOfWork:
        upper = max_id(bench, case.table)

        def where(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
            marker = param(ctx.backend)
            params: List[Any] = list(extra_params(ctx))
            params.append(ctx.randomizer.int_below(upper))
            return f"{extra.replace('{p}', marker)} AND id > {marker}", params

        return select_unit(["id"], where, order_by="id ASC")

    return setup


def uuid_page(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
    values = [ctx.randomizer.new_uuid() for _ in range(ctx.batch)]
    return f"uuid IN ({placeholders(ctx.backend, len(values))})", values


# Updates


def update_setup(rows: Optional[int] = None, columns: Optional[Sequence[str]] = None) -> Setup:
    """
    Update random rows with fresh values for `columns` (the table's update
    columns by default). With `rows`, update a contiguous id range of that
    size in one statement; the plan's batch overrides it when configured.
    """

    def setup(case: "CaseDescriptor", bench: "Orchestrator", plan: RunPlan) -> UnitOfWork:
        table: TableSchema = case.table
        conf: Tuple[Column, ...] = table.columns_conf(columns or table.update_columns)
        upper = max_id(bench, table)
        span = plan.effective_batch(rows) if rows else 1

        def unit(ctx: WorkerContext) -> int:
            marker = param(ctx.backend)
            names, values = ctx.randomizer.gen_fake_data(conf)
            assignments = ", ".join(f"{n} = {marker}" for n in names)
            start = ctx.randomizer.int_below(max(upper - span, 0) + 1) + 1
            if span == 1:
                sql = f"UPDATE {table.name} SET {assignments} WHERE id = {marker}"
                params = [*values, start]
            else:
                sql = f"UPDATE {table.name} SET {assignments} WHERE id >= {marker} AND id < {marker}"
                params = [*values, start, start + span]
            with ctx.accessor.transaction() as tx:
                tx.execute(sql, params)
            return span

        return unit

    return setup


def require_rows(row: Optional[Sequence[Any]], what: str) -> Sequence[Any]:
    if row is None:
        raise DataAccessError(f"{what} returned no row")
    return row


__all__ = [
    "column_equals",
    "copy_rows",
    "create_cti_entities",
    "create_tenants",
    "insert_multivalue",
    "insert_prepared",
    "insert_rows",
    "max_id",
    "prefill",
    "random_id_select",
    "random_id_where",
    "select_unit",
    "update_setup",
    "uuid_page",
]
