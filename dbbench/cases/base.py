"""
Base tests group: seed inserts, insert variants per table, plain updates and
the point/range selects against the `light`, `medium` and `heavy` tables.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Sequence, Tuple

from dbbench.cases import units
from dbbench.domain.models import ALL, PMWSA, RELATIONAL, Backend, CaseDescriptor, Category, Column
from dbbench.domain.tables import HEAVY, LIGHT, MEDIUM
from dbbench.launchers import FullSuite, SetupThenLoop, WorkerLoop
from dbbench.query_builder import param
from dbbench.runner import WorkerContext

COPY_BACKENDS = frozenset({Backend.POSTGRES, Backend.MSSQL})

CUSTOMER = Column(name="customer_id", kind="customer_uuid", sql_type="uuid")
PARTNER = Column(name="partner_id", kind="partner_uuid", sql_type="uuid")
PAGE_START = Column(name="update_time", kind="time", sql_type="timestamp", cardinality=30)


def select_one(ctx: WorkerContext) -> int:
    with ctx.accessor.session() as session:
        session.probe()
    return 1


def _owner(column: Column, like: str = ""):
    def build(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
        marker = param(ctx.backend)
        fragment = f"{column.name} = {marker}"
        params = [ctx.randomizer.gen_fake_value(column)]
        if like:
            fragment += f" AND policy_name LIKE {marker}"
            params.append(f"%{like}%")
        return fragment, params

    return build


def _owner_page(column: Column, span: timedelta, started_before: timedelta = timedelta(0)):
    """Owner match plus an `update_time` window starting at a random time."""

    def build(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
        marker = param(ctx.backend)
        start = ctx.randomizer.gen_fake_value(PAGE_START)
        fragment = (
            f"{column.name} = {marker} AND update_time >= {marker} AND update_time < {marker}"
        )
        params = [ctx.randomizer.gen_fake_value(column), start, start + span]
        if started_before:
            fragment += f" AND start_time >= {marker}"
            params.append(start - started_before)
        return fragment, params

    return build


def _inserts(table, prepared=RELATIONAL, multivalue=ALL):
    short = table.name.replace("dbbench_", "")
    return (
        CaseDescriptor(
            name=f"insert-{short}",
            metric="rows/sec",
            description=f"insert a row into the '{short}' table",
            category=Category.INSERT,
            backends=ALL,
            table=table,
            launcher=WorkerLoop(units.insert_rows),
        ),
        CaseDescriptor(
            name=f"insert-{short}-prepared",
            metric="rows/sec",
            description=f"insert a row into the '{short}' table using prepared statement for the batch",
            category=Category.INSERT,
            backends=prepared,
            table=table,
            launcher=WorkerLoop(units.insert_prepared),
        ),
        CaseDescriptor(
            name=f"insert-{short}-multivalue",
            metric="rows/sec",
            description=f"insert a row into the '{short}' table using INSERT INTO t (x, y, z) VALUES (...), (...)",
            category=Category.INSERT,
            backends=multivalue,
            table=table,
            launcher=WorkerLoop(units.insert_multivalue),
        ),
        CaseDescriptor(
            name=f"copy-{short}",
            metric="rows/sec",
            description=f"copy a row into the '{short}' table",
            category=Category.INSERT,
            backends=COPY_BACKENDS,
            table=table,
            launcher=WorkerLoop(units.copy_rows),
        ),
    )


def _select(name, description, table, launcher, backends=ALL):
    return CaseDescriptor(
        name=name,
        metric="rows/sec",
        description=description,
        category=Category.SELECT,
        readonly=True,
        backends=backends,
        table=table,
        launcher=launcher,
    )


CASES = (
    CaseDescriptor(
        name="insert-tenant",
        metric="tenants/sec",
        description="insert a tenant into the 'tenants' table",
        category=Category.INSERT,
        backends=ALL,
        launcher=WorkerLoop(units.create_tenants),
    ),
    CaseDescriptor(
        name="insert-cti",
        metric="ctiEntity/sec",
        description="insert a CTI entity into the 'cti' table",
        category=Category.INSERT,
        backends=ALL,
        launcher=WorkerLoop(units.create_cti_entities),
    ),
    *_inserts(LIGHT),
    *_inserts(MEDIUM, multivalue=PMWSA),
    *_inserts(HEAVY),
    CaseDescriptor(
        name="update-medium",
        metric="rows/sec",
        description="update random row in the 'medium' table",
        category=Category.UPDATE,
        backends=RELATIONAL,
        table=MEDIUM,
        launcher=SetupThenLoop(units.update_setup()),
    ),
    CaseDescriptor(
        name="update-heavy",
        metric="rows/sec",
        description="update random row in the 'heavy' table",
        category=Category.UPDATE,
        backends=RELATIONAL,
        table=HEAVY,
        launcher=SetupThenLoop(units.update_setup()),
    ),
    CaseDescriptor(
        name="select-1",
        metric="select/sec",
        description="just do 'SELECT 1'",
        category=Category.SELECT,
        readonly=True,
        backends=ALL,
        launcher=WorkerLoop(select_one),
    ),
    _select(
        "select-medium-last",
        "select last row from the 'medium' table with few columns and 1 index",
        MEDIUM,
        WorkerLoop(units.select_unit(["id"], order_by="id DESC")),
    ),
    _select(
        "select-medium-rand",
        "select random row from the 'medium' table with few columns and 1 index",
        MEDIUM,
        SetupThenLoop(units.random_id_select(["id"], op=">=")),
    ),
    _select(
        "select-heavy-last",
        "select last row from the 'heavy' table",
        HEAVY,
        WorkerLoop(units.select_unit(["id"], order_by="id DESC")),
        RELATIONAL,
    ),
    _select(
        "select-heavy-rand",
        "select random row from the 'heavy' table",
        HEAVY,
        SetupThenLoop(units.random_id_select(["id"])),
        RELATIONAL,
    ),
    _select(
        "select-heavy-minmax-in-tenant",
        "select min(completion_time) and max(completion_time) value from the 'heavy' table WHERE tenant_id = {}",
        HEAVY,
        WorkerLoop(
            units.select_unit(
                ["MIN(completion_time)", "MAX(completion_time)"],
                units.column_equals("tenant_id"),
                limit=None,
            )
        ),
        RELATIONAL,
    ),
    _select(
        "select-heavy-minmax-in-tenant-and-state",
        "select min(completion_time) and max(completion_time) value from the 'heavy' table "
        "WHERE tenant_id = {} AND state = {}",
        HEAVY,
        WorkerLoop(
            units.select_unit(
                ["MIN(completion_time)", "MAX(completion_time)"],
                units.column_equals("tenant_id", "state"),
                limit=None,
            )
        ),
        RELATIONAL,
    ),
    _select(
        "select-heavy-rand-page-by-uuid",
        "select page from the 'heavy' table WHERE uuid IN (...)",
        HEAVY,
        WorkerLoop(units.select_unit(["id"], units.uuid_page)),
    ),
    _select(
        "select-heavy-rand-in-customer-recent",
        "select first page from the 'heavy' table WHERE customer_id = {} ORDER BY enqueue_time DESC",
        HEAVY,
        WorkerLoop(units.select_unit(["id"], _owner(CUSTOMER), order_by="enqueue_time DESC")),
    ),
    _select(
        "select-heavy-rand-in-customer-recent-like",
        "select first page from the 'heavy' table WHERE customer_id = {} AND policy_name LIKE '%k%' "
        "ORDER BY enqueue_time DESC",
        HEAVY,
        WorkerLoop(units.select_unit(["id"], _owner(CUSTOMER, like="k"), order_by="enqueue_time DESC")),
    ),
    _select(
        "select-heavy-rand-customer-update-time-page",
        "select first page from the 'heavy' table WHERE customer_id = {} AND update_time in 1h interval "
        "ORDER BY update_time",
        HEAVY,
        WorkerLoop(
            units.select_unit(["id"], _owner_page(CUSTOMER, timedelta(hours=1)), order_by="update_time ASC")
        ),
    ),
    _select(
        "select-heavy-rand-in-customer-count",
        "select COUNT(0) from the 'heavy' table WHERE customer_id = {}",
        HEAVY,
        WorkerLoop(units.select_unit(["COUNT(0)"], _owner(CUSTOMER), limit=None)),
    ),
    _select(
        "select-heavy-rand-in-partner-recent",
        "select first page from the 'heavy' table WHERE partner_id = {} ORDER BY enqueue_time DESC",
        HEAVY,
        WorkerLoop(units.select_unit(["id"], _owner(PARTNER), order_by="enqueue_time DESC")),
    ),
    _select(
        "select-heavy-rand-partner-start-update-time-page",
        "select first page from the 'heavy' table WHERE partner_id = {} AND update_time in 2d interval "
        "AND start_time after 1h before it ORDER BY update_time",
        HEAVY,
        WorkerLoop(
            units.select_unit(
                ["id"],
                _owner_page(PARTNER, timedelta(days=2), started_before=timedelta(hours=1)),
                order_by="update_time ASC",
            )
        ),
    ),
    CaseDescriptor(
        name="all",
        description="execute all tests in the 'base' group",
        category=Category.OTHER,
        backends=ALL,
        launcher=FullSuite(),
    ),
)
