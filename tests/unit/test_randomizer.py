from __future__ import annotations

import json
import uuid

import pytest

from dbbench.domain.models import Backend, Column
from dbbench.domain.tables import HEAVY, MEDIUM
from dbbench.errors import DataAccessError, RandomizerError
from dbbench.infrastructure.randomizer import NEEDLE, VECTOR_DIMENSIONS, Randomizer
from dbbench.infrastructure.tenants import TenantsCache

SEED = "seed:1"


def test_same_seed_yields_same_rows() -> None:
    columns = [c for c in HEAVY.insert_columns() if c.kind not in ("time", "time_ns")]

    first = Randomizer(SEED).gen_fake_rows(columns, 5)
    second = Randomizer(SEED).gen_fake_rows(columns, 5)

    assert first == second
    assert first != Randomizer("other").gen_fake_rows(columns, 5)


def test_cardinality_bounds_the_value_set() -> None:
    column = Column(name="queue", kind="string", sql_type="varchar", cardinality=3)
    rz = Randomizer(SEED)

    assert len({rz.gen_fake_value(column) for _ in range(200)}) <= 3


def test_json_document_shape() -> None:
    rz = Randomizer(SEED)
    docs = [json.loads(rz.json_document()) for _ in range(200)]

    for doc in docs:
        assert set(doc) == {"field0", "field1"}
        assert 0 <= doc["field0"]["field0"] < 20
        assert isinstance(doc["field1"]["field2"]["field0"], str)
    assert any(d["field0"]["field2"]["field0"] == NEEDLE for d in docs)


def test_vector_literal_has_expected_dimensions() -> None:
    literal = Randomizer(SEED).vector()

    assert literal.startswith("[") and literal.endswith("]")
    assert len(literal[1:-1].split(",")) == VECTOR_DIMENSIONS


def test_unknown_generator_kind_raises() -> None:
    with pytest.raises(RandomizerError):
        Randomizer(SEED).gen_fake_value(Column(name="x", kind="nope", sql_type="int"))


@pytest.mark.parametrize("low, high", [(-1, 10), (10, 5)])
def test_invalid_blob_range_raises(low, high) -> None:
    with pytest.raises(RandomizerError):
        Randomizer(SEED, min_blob_size=low, max_blob_size=high)


def test_blob_respects_size_bounds() -> None:
    rz = Randomizer(SEED, min_blob_size=16, max_blob_size=64)
    column = Column(name="data", kind="blob", sql_type="blob")

    for _ in range(20):
        assert 16 <= len(rz.gen_fake_value(column)) <= 64


def test_tenant_uuid_falls_back_to_pool_when_cache_is_empty() -> None:
    rz = Randomizer(SEED, tenants=TenantsCache(Backend.SQLITE))
    tenant_column = MEDIUM.columns_conf(["tenant_id"])[0]

    value = rz.gen_fake_value(tenant_column)

    assert uuid.UUID(value).version == 4


def test_empty_tenant_cache_lookup_is_a_data_access_error() -> None:
    cache = TenantsCache(Backend.SQLITE)

    with pytest.raises(DataAccessError):
        cache.random_tenant_uuid(Randomizer(SEED))
    with pytest.raises(DataAccessError):
        cache.random_cti_uuid(Randomizer(SEED))


def test_int_below_non_positive_is_zero() -> None:
    assert Randomizer(SEED).int_below(0) == 0
