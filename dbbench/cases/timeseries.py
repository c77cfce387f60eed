"""Timeseries tests: batched inserts and per-series reads on the `timeseries` table."""

from __future__ import annotations

from dbbench.cases import units
from dbbench.domain.models import PMWSA, CaseDescriptor, Category
from dbbench.domain.tables import TIMESERIES
from dbbench.launchers import WorkerLoop
from dbbench.query_builder import select_query
from dbbench.runner import WorkerContext

DEFAULT_BATCH = 256

_series = units.column_equals("tenant_id", "device_id", "metric_id")


def select_series(ctx: WorkerContext) -> int:
    """Newest `batch` points of one random (tenant, device, metric) series."""
    where, params = _series(ctx)
    sql = select_query(ctx.backend, TIMESERIES.name, ["id"], where, order_by="id DESC", limit=ctx.batch)
    with ctx.accessor.session() as session:
        session.query_rows(sql, params)
    return 1


CASES = (
    CaseDescriptor(
        name="insert-ts-sql",
        metric="values/sec",
        description="batch insert into the 'timeseries' SQL table",
        category=Category.INSERT,
        backends=PMWSA,
        table=TIMESERIES,
        launcher=WorkerLoop(units.insert_prepared, default_batch=DEFAULT_BATCH),
    ),
    CaseDescriptor(
        name="select-ts-sql",
        metric="values/sec",
        description="batch select from the 'timeseries' SQL table",
        category=Category.SELECT,
        backends=PMWSA,
        table=TIMESERIES,
        launcher=WorkerLoop(select_series, default_batch=DEFAULT_BATCH),
    ),
)
