"""Blob tests: inline binary payloads and PostgreSQL large objects."""

from __future__ import annotations

from dbbench.cases import units
from dbbench.cases.tenant_aware import tenant_aware_unit
from dbbench.domain.models import ALL, RELATIONAL, Backend, CaseDescriptor, Category, Column
from dbbench.domain.tables import BLOB, LARGE_OBJECT
from dbbench.launchers import WorkerLoop
from dbbench.query_builder import insert_query, param
from dbbench.runner import WorkerContext

PAYLOAD = Column(name="data", kind="blob", sql_type="blob")


def insert_large_objects(ctx: WorkerContext) -> int:
    """Store each payload with `lo_from_bytea` and insert a row pointing at its oid."""
    columns = LARGE_OBJECT.insert_columns()
    with ctx.accessor.transaction() as tx:
        for _ in range(ctx.batch):
            names, values = ctx.randomizer.gen_fake_data(columns)
            payload = ctx.randomizer.gen_fake_value(PAYLOAD)
            row = units.require_rows(
                tx.query_row(f"SELECT lo_from_bytea(0, {param(ctx.backend)})", (payload,)), "lo_from_bytea"
            )
            values[names.index("oid")] = row[0]
            tx.execute(insert_query(ctx.backend, LARGE_OBJECT.name, names), values)
    return ctx.batch


CASES = (
    CaseDescriptor(
        name="insert-blob",
        metric="rows/sec",
        description="insert a row with large random blob into the 'blob' table",
        category=Category.INSERT,
        backends=ALL,
        table=BLOB,
        launcher=WorkerLoop(units.insert_rows),
    ),
    CaseDescriptor(
        name="copy-blob",
        metric="rows/sec",
        description="copy a row with large random blob into the 'blob' table",
        category=Category.INSERT,
        backends=frozenset({Backend.POSTGRES, Backend.MSSQL}),
        table=BLOB,
        launcher=WorkerLoop(units.copy_rows),
    ),
    CaseDescriptor(
        name="insert-largeobj",
        metric="rows/sec",
        description="insert a row with large random object into the 'largeobject' table",
        category=Category.INSERT,
        backends=frozenset({Backend.POSTGRES}),
        table=LARGE_OBJECT,
        launcher=WorkerLoop(insert_large_objects),
    ),
    CaseDescriptor(
        name="select-blob-last-in-tenant",
        metric="rows/sec",
        description="select the last row from the 'blob' table WHERE tenant_id = {random tenant uuid}",
        category=Category.SELECT,
        readonly=True,
        backends=RELATIONAL,
        table=BLOB,
        launcher=WorkerLoop(tenant_aware_unit(f"ORDER BY `{BLOB.name}`.`timestamp` DESC")),
    ),
)
