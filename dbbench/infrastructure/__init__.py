from dbbench.infrastructure.contracts import DataAccessor, Session
from dbbench.infrastructure.db_factory import PostgresAccessor, SQLiteAccessor, build_dsn, connect
from dbbench.infrastructure.randomizer import Randomizer
from dbbench.infrastructure.tenants import TenantsCache

__all__ = [
    "DataAccessor",
    "PostgresAccessor",
    "Randomizer",
    "SQLiteAccessor",
    "Session",
    "TenantsCache",
    "build_dsn",
    "connect",
]
