"""
Logical table schemas used by the benchmark cases.

`kind` values are randomizer generator names, `sql_type` values are logical
types mapped to concrete DDL in `dbbench.infrastructure.schema`.
"""
from __future__ import annotations

from dbbench.domain.models import Column, TableSchema

ID = Column(name="id", kind="autoinc", sql_type="id")

LIGHT = TableSchema(
    name="dbbench_light",
    columns=(
        ID,
        Column(name="uuid", kind="uuid", sql_type="uuid", indexed=True),
    ),
)

MEDIUM = TableSchema(
    name="dbbench_medium",
    columns=(
        ID,
        Column(name="uuid", kind="uuid", sql_type="uuid", indexed=True),
        Column(name="tenant_id", kind="tenant_uuid", sql_type="uuid", indexed=True),
        Column(name="euc_id", kind="int", sql_type="int", cardinality=2000),
        Column(name="progress", kind="int", sql_type="int", cardinality=100),
        Column(name="enqueue_time", kind="time", sql_type="timestamp", indexed=True),
    ),
    update_columns=("progress", "enqueue_time"),
)

HEAVY = TableSchema(
    name="dbbench_heavy",
    columns=(
        ID,
        Column(name="uuid", kind="uuid", sql_type="uuid", indexed=True),
        Column(name="checksum", kind="string", sql_type="varchar", cardinality=0),
        Column(name="tenant_id", kind="tenant_uuid", sql_type="uuid", indexed=True),
        Column(name="cti_entity_uuid", kind="cti_uuid", sql_type="uuid", indexed=True),
        Column(name="customer_id", kind="customer_uuid", sql_type="uuid", indexed=True),
        Column(name="partner_id", kind="partner_uuid", sql_type="uuid", indexed=True),
        Column(name="euc_id", kind="int", sql_type="int", cardinality=2000),
        Column(name="workflow_id", kind="int", sql_type="bigint", cardinality=1000),
        Column(name="state", kind="int", sql_type="int", cardinality=16),
        Column(name="type", kind="string", sql_type="varchar", cardinality=8),
        Column(name="queue", kind="string", sql_type="varchar", cardinality=10),
        Column(name="priority", kind="int", sql_type="int", cardinality=10),
        Column(name="resource_name", kind="string", sql_type="varchar", cardinality=100),
        Column(name="policy_name", kind="string", sql_type="varchar", cardinality=100),
        Column(name="const_val", kind="const", sql_type="int"),
        Column(name="progress", kind="int", sql_type="int", cardinality=100),
        Column(name="enqueue_time", kind="time", sql_type="timestamp", indexed=True),
        Column(name="start_time", kind="time", sql_type="timestamp"),
        Column(name="update_time", kind="time", sql_type="timestamp", indexed=True),
        Column(name="completion_time", kind="time_ns", sql_type="bigint"),
        Column(name="result_code", kind="int", sql_type="int", cardinality=8),
    ),
    update_columns=("progress", "state", "update_time"),
)

BLOB = TableSchema(
    name="dbbench_blob",
    columns=(
        ID,
        Column(name="uuid", kind="uuid", sql_type="uuid", indexed=True),
        Column(name="tenant_id", kind="tenant_uuid", sql_type="uuid", indexed=True),
        Column(name="timestamp", kind="time_ns", sql_type="bigint", indexed=True),
        Column(name="data", kind="blob", sql_type="blob"),
    ),
)

LARGE_OBJECT = TableSchema(
    name="dbbench_largeobj",
    columns=(
        ID,
        Column(name="uuid", kind="uuid", sql_type="uuid", indexed=True),
        Column(name="tenant_id", kind="tenant_uuid", sql_type="uuid", indexed=True),
        Column(name="timestamp", kind="time_ns", sql_type="bigint"),
        Column(name="oid", kind="const", sql_type="bigint"),
    ),
)

JSON = TableSchema(
    name="dbbench_json",
    columns=(
        ID,
        Column(name="uuid", kind="uuid", sql_type="uuid", indexed=True),
        Column(name="json_data", kind="json", sql_type="json", indexed=True),
    ),
)

TIMESERIES = TableSchema(
    name="dbbench_timeseries",
    columns=(
        ID,
        Column(name="tenant_id", kind="tenant_uuid", sql_type="uuid", indexed=True),
        Column(name="device_id", kind="uuid", sql_type="uuid", cardinality=50, indexed=True),
        Column(name="metric_id", kind="string", sql_type="varchar", cardinality=10),
        Column(name="ts", kind="time", sql_type="timestamp"),
        Column(name="value", kind="float", sql_type="double"),
    ),
)

VECTOR_768 = TableSchema(
    name="dbbench_vector_768",
    columns=(
        ID,
        Column(name="embedding", kind="vector_768", sql_type="vector768"),
    ),
)

# Tenant hierarchy and CTI tables are written by the tenants cache only.
TENANTS = TableSchema(
    name="dbbench_tenants",
    columns=(
        Column(name="id", kind="external", sql_type="bigint_pk"),
        Column(name="uuid", kind="external", sql_type="uuid", indexed=True),
        Column(name="name", kind="external", sql_type="varchar"),
        Column(name="parent_id", kind="external", sql_type="bigint"),
        Column(name="nesting_level", kind="external", sql_type="int"),
        Column(name="is_deleted", kind="external", sql_type="boolean"),
    ),
)

TENANT_CLOSURE = TableSchema(
    name="dbbench_tenant_closure",
    columns=(
        Column(name="parent_id", kind="external", sql_type="bigint", indexed=True),
        Column(name="child_id", kind="external", sql_type="bigint", indexed=True),
        Column(name="barrier", kind="external", sql_type="int"),
    ),
)

CTI_ENTITIES = TableSchema(
    name="dbbench_cti_entities",
    columns=(
        Column(name="id", kind="external", sql_type="bigint_pk"),
        Column(name="uuid", kind="external", sql_type="uuid", indexed=True),
        Column(name="cti", kind="external", sql_type="varchar"),
        Column(name="global_state", kind="external", sql_type="int"),
    ),
)

CTI_PROVISIONING = TableSchema(
    name="dbbench_cti_provisioning",
    columns=(
        Column(name="tenant_id", kind="external", sql_type="bigint", indexed=True),
        Column(name="cti_entity_uuid", kind="external", sql_type="uuid", indexed=True),
        Column(name="state", kind="external", sql_type="int"),
    ),
)

HIERARCHY_TABLES = (TENANTS, TENANT_CLOSURE, CTI_ENTITIES, CTI_PROVISIONING)

__all__ = [
    "BLOB",
    "CTI_ENTITIES",
    "CTI_PROVISIONING",
    "HEAVY",
    "HIERARCHY_TABLES",
    "JSON",
    "LARGE_OBJECT",
    "LIGHT",
    "MEDIUM",
    "TENANTS",
    "TENANT_CLOSURE",
    "TIMESERIES",
    "VECTOR_768",
]
