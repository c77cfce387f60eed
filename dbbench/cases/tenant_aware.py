"""
Tenant-aware tests: single-row lookups scoped through the tenant closure
table, optionally narrowed to one CTI entity.

The closure-table join chain only exists as SQL, so every case here is
limited to the relational backends.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Tuple

from dbbench.cases import units
from dbbench.domain.models import RELATIONAL, CaseDescriptor, Category
from dbbench.domain.tables import HEAVY, MEDIUM
from dbbench.launchers import WorkerLoop
from dbbench.query_builder import build_tenant_aware_query, param
from dbbench.runner import UnitOfWork, WorkerContext

TENANT_LIKE_PATTERN = "%a%"


def tenant_aware_unit(order_by: Optional[str] = None, cti: bool = False) -> UnitOfWork:
    """
    Look up one row visible to a random cached tenant.

    Tenant and CTI UUIDs come from the tenants cache; an empty cache fails
    the unit with `DataAccessError`. A missing row is not an error.
    """

    def unit(ctx: WorkerContext) -> int:
        tenant_uuid = ctx.tenants.random_tenant_uuid(ctx.randomizer)
        cti_uuid = ctx.tenants.random_cti_uuid(ctx.randomizer) if cti else None
        sql = build_tenant_aware_query(
            ctx.case.table.name, ctx.backend, tenant_uuid, order_by=order_by, cti_uuid=cti_uuid
        )
        with ctx.accessor.session() as session:
            session.query_row(sql)
        return 1

    return unit


def _tenant_like(ctx: WorkerContext) -> Tuple[str, Sequence[Any]]:
    marker = param(ctx.backend)
    tenant = ctx.randomizer.gen_fake_value(ctx.case.table.columns_conf(["tenant_id"])[0])
    return f"tenant_id = {marker} AND resource_name LIKE {marker}", (tenant, TENANT_LIKE_PATTERN)


def _last_in_tenant(table) -> str:
    return f"ORDER BY `{table.name}`.`enqueue_time` DESC"


CASES = (
    CaseDescriptor(
        name="select-medium-last-in-tenant",
        metric="rows/sec",
        description="select the last row from the 'medium' table WHERE tenant_id = {random tenant uuid}",
        category=Category.SELECT,
        readonly=True,
        backends=RELATIONAL,
        table=MEDIUM,
        launcher=WorkerLoop(tenant_aware_unit(_last_in_tenant(MEDIUM))),
    ),
    CaseDescriptor(
        name="select-heavy-last-in-tenant",
        metric="rows/sec",
        description="select the last row from the 'heavy' table WHERE tenant_id = {random tenant uuid}",
        category=Category.SELECT,
        readonly=True,
        backends=RELATIONAL,
        table=HEAVY,
        launcher=WorkerLoop(tenant_aware_unit(_last_in_tenant(HEAVY))),
    ),
    CaseDescriptor(
        name="select-heavy-last-in-tenant-and-cti",
        metric="rows/sec",
        description="select the last row from the 'heavy' table WHERE tenant_id = {} AND cti = {}",
        category=Category.SELECT,
        readonly=True,
        backends=RELATIONAL,
        table=HEAVY,
        launcher=WorkerLoop(tenant_aware_unit(_last_in_tenant(HEAVY), cti=True)),
    ),
    CaseDescriptor(
        name="select-heavy-rand-in-tenant-like",
        metric="rows/sec",
        description="select random row from the 'heavy' table WHERE tenant_id = {} AND resource_name LIKE {}",
        category=Category.SELECT,
        readonly=True,
        backends=RELATIONAL,
        table=HEAVY,
        launcher=WorkerLoop(units.select_unit(["id"], _tenant_like, order_by="id DESC")),
    ),
)
