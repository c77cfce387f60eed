"""
Data-access factory for dbbench.

`connect()` picks exactly one accessor implementation for the configured
backend family: PostgreSQL through a psycopg `ConnectionPool`, or SQLite
through the standard library driver with one connection per worker thread.
Initial reachability is checked with tenacity backoff; once connected, no
call made by a unit of work is ever retried.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Generator, Iterable, List, Optional, Sequence

import psycopg
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from dbbench.config import Settings, get_settings
from dbbench.domain.models import Backend
from dbbench.errors import UnsupportedBackendError
from dbbench.infrastructure.contracts import DataAccessor, Row
from dbbench.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a PostgreSQL DSN from settings, honouring an explicit DB_DSN."""
    settings = settings or get_settings()
    if settings.db_dsn:
        return settings.db_dsn
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


# PostgreSQL


class _PostgresSession:
    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def probe(self) -> None:
        self._conn.execute("SELECT 1").fetchone()

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params) or None)
            return cur.fetchone()

    def query_rows(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params) or None)
            return cur.fetchall()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        with self._conn.cursor() as cur:
            cur.execute(sql, tuple(params) or None)
            return cur.rowcount

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        with self._conn.cursor() as cur:
            cur.executemany(sql, [tuple(r) for r in rows])
            return cur.rowcount

    def bulk_insert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
        count = 0
        with self._conn.cursor() as cur:
            with cur.copy(f"COPY {table} ({', '.join(columns)}) FROM STDIN") as copy:
                for row in rows:
                    copy.write_row(row)
                    count += 1
        return count

    def next_val(self, sequence: str) -> int:
        row = self.query_row("SELECT nextval(%s)", (sequence,))
        return int(row[0])


class PostgresAccessor:
    """PostgreSQL accessor backed by a psycopg connection pool."""

    backend = Backend.POSTGRES

    def __init__(self, dsn: str, min_size: int = 1, max_size: int = 32) -> None:
        self._pool = ConnectionPool(conninfo=dsn, min_size=min_size, max_size=max_size, open=True)

    @contextmanager
    def session(self) -> Generator[_PostgresSession, None, None]:
        # The pool commits on clean exit and rolls back if the block raised.
        with self._pool.connection() as conn:
            yield _PostgresSession(conn)

    @contextmanager
    def transaction(self) -> Generator[_PostgresSession, None, None]:
        with self._pool.connection() as conn:
            with conn.transaction():
                yield _PostgresSession(conn)

    def ping(self) -> None:
        with self.session() as session:
            session.probe()

    def create_sequence(self, name: str) -> None:
        with self.session() as session:
            session.execute(f"CREATE SEQUENCE IF NOT EXISTS {name}")

    def close(self) -> None:
        self._pool.close()


# SQLite


def _adapt(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    return value


def _adapt_row(params: Sequence[Any]) -> tuple:
    return tuple(_adapt(v) for v in params)


class _SQLiteSession:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def probe(self) -> None:
        self._conn.execute("SELECT 1").fetchone()

    def query_row(self, sql: str, params: Sequence[Any] = ()) -> Optional[Row]:
        return self._conn.execute(sql, _adapt_row(params)).fetchone()

    def query_rows(self, sql: str, params: Sequence[Any] = ()) -> List[Row]:
        return self._conn.execute(sql, _adapt_row(params)).fetchall()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        return self._conn.execute(sql, _adapt_row(params)).rowcount

    def execute_many(self, sql: str, rows: Iterable[Sequence[Any]]) -> int:
        return self._conn.executemany(sql, [_adapt_row(r) for r in rows]).rowcount

    def bulk_insert(self, table: str, columns: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({', '.join('?' * len(columns))})"
        return self.execute_many(sql, rows)

    def next_val(self, sequence: str) -> int:
        self._conn.execute(
            f"UPDATE {SQLiteAccessor.SEQUENCE_TABLE} SET value = value + 1 WHERE name = ?",
            (sequence,),
        )
        row = self._conn.execute(
            f"SELECT value FROM {SQLiteAccessor.SEQUENCE_TABLE} WHERE name = ?", (sequence,)
        ).fetchone()
        if row is None:
            raise sqlite3.OperationalError(f"sequence '{sequence}' does not exist")
        return int(row[0])


class SQLiteAccessor:
    """
    SQLite accessor: one autocommit connection per thread, explicit
    `BEGIN IMMEDIATE` transactions, sequences emulated with a counter table.
    """

    backend = Backend.SQLITE
    SEQUENCE_TABLE = "dbbench_sequences"

    def __init__(self, path: str, busy_timeout: float = 30.0) -> None:
        self.path = path
        self._busy_timeout = busy_timeout
        self._local = threading.local()
        self._lock = threading.Lock()
        self._connections: List[sqlite3.Connection] = []

    def _connection(self) -> sqlite3.Connection:
        conn = getattr(self._local, "conn", None)
        if conn is None:
            conn = sqlite3.connect(
                self.path,
                timeout=self._busy_timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.execute("PRAGMA journal_mode=WAL")
            self._local.conn = conn
            with self._lock:
                self._connections.append(conn)
        return conn

    @contextmanager
    def session(self) -> Generator[_SQLiteSession, None, None]:
        yield _SQLiteSession(self._connection())

    @contextmanager
    def transaction(self) -> Generator[_SQLiteSession, None, None]:
        conn = self._connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield _SQLiteSession(conn)
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def ping(self) -> None:
        with self.session() as session:
            session.probe()

    def create_sequence(self, name: str) -> None:
        with self.transaction() as tx:
            tx.execute(
                f"CREATE TABLE IF NOT EXISTS {self.SEQUENCE_TABLE} "
                "(name TEXT PRIMARY KEY, value INTEGER NOT NULL)"
            )
            tx.execute(
                f"INSERT OR IGNORE INTO {self.SEQUENCE_TABLE} (name, value) VALUES (?, 0)",
                (name,),
            )

    def close(self) -> None:
        with self._lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()


def _postgres(settings: Settings) -> PostgresAccessor:
    return PostgresAccessor(build_dsn(settings), max_size=settings.db_pool_max_size)


def _sqlite(settings: Settings) -> SQLiteAccessor:
    return SQLiteAccessor(settings.sqlite_path)


_ACCESSORS: Dict[Backend, Callable[[Settings], DataAccessor]] = {
    Backend.POSTGRES: _postgres,
    Backend.SQLITE: _sqlite,
}


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, sqlite3.OperationalError)),
    reraise=True,
)
def _wait_until_reachable(accessor: DataAccessor) -> None:
    accessor.ping()


def connect(settings: Optional[Settings] = None) -> DataAccessor:
    """
    Open the accessor for the configured backend and check it is reachable.

    Retries the first ping up to 3 times with exponential backoff.

    Raises
    ------
    UnsupportedBackendError
        If no driver is bundled for the configured backend.
    """
    settings = settings or get_settings()
    factory = _ACCESSORS.get(settings.db_backend)
    if factory is None:
        raise UnsupportedBackendError("data access", settings.db_backend.value)
    accessor = factory(settings)
    try:
        _wait_until_reachable(accessor)
    except Exception:
        accessor.close()
        raise
    log.info("Connected", extra={"backend": settings.db_backend.value})
    return accessor


__all__ = [
    "PostgresAccessor",
    "SQLiteAccessor",
    "build_dsn",
    "connect",
]
