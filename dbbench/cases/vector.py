"""Vector tests group: 768-dimensional embeddings and L2 nearest-neighbour lookups."""

from __future__ import annotations

from dbbench.cases import units
from dbbench.domain.models import VECTOR, CaseDescriptor, Category
from dbbench.domain.tables import VECTOR_768
from dbbench.launchers import WorkerLoop
from dbbench.query_builder import param, select_query
from dbbench.runner import WorkerContext


def nearest_l2(ctx: WorkerContext) -> int:
    order_by = f"embedding <-> CAST({param(ctx.backend)} AS vector)"
    sql = select_query(ctx.backend, VECTOR_768.name, ["id", "embedding"], order_by=order_by)
    with ctx.accessor.session() as session:
        session.query_rows(sql, (ctx.randomizer.vector(),))
    return 1


CASES = (
    CaseDescriptor(
        name="insert-vector-768-multivalue",
        metric="rows/sec",
        description="insert a 768-dim vectors with ids into the 'vector' table by batches",
        category=Category.INSERT,
        backends=VECTOR,
        table=VECTOR_768,
        launcher=WorkerLoop(units.insert_multivalue),
    ),
    CaseDescriptor(
        name="select-vector-768-nearest-l2",
        metric="rows/sec",
        description="selects k nearest vectors by L2 norm from the 'vector' table to the given 768-dim vector",
        category=Category.SELECT,
        backends=VECTOR,
        table=VECTOR_768,
        launcher=WorkerLoop(nearest_l2),
    ),
)
