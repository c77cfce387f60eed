"""
Seeded fake-data generator.

Each worker owns one `Randomizer`, so no locking is needed here. Columns with
a cardinality draw from a deterministic pool keyed by column name, which
keeps inserts and the selects that search for them on the same value set
regardless of seed.
"""

from __future__ import annotations

import json
import random
import string
import time
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from dbbench.domain.models import Column
from dbbench.errors import DataAccessError, RandomizerError

if TYPE_CHECKING:
    from dbbench.infrastructure.tenants import TenantsCache

VECTOR_DIMENSIONS = 768
NEEDLE = "needle"
DEFAULT_TIME_WINDOW_DAYS = 30
CUSTOMER_POOL = 100
PARTNER_POOL = 20
TENANT_POOL = 1000
CTI_POOL = 100

_LETTERS = string.ascii_lowercase


@lru_cache(maxsize=None)
def _pooled_uuid(key: str, index: int) -> str:
    rnd = random.Random(f"{key}:{index}")
    return str(uuid.UUID(int=rnd.getrandbits(128), version=4))


@lru_cache(maxsize=None)
def _pooled_word(key: str, index: int) -> str:
    rnd = random.Random(f"{key}:{index}")
    return "".join(rnd.choice(_LETTERS) for _ in range(rnd.randint(6, 16)))


def _utcnow() -> datetime:
    # Timestamps are stored without a zone.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Randomizer:
    """
    Fake value generator driven by column generator kinds.

    Parameters
    ----------
    seed : int | str
        Seed for the underlying `random.Random`.
    tenants : TenantsCache, optional
        Source of existing tenant and CTI UUIDs. When absent or empty, those
        kinds fall back to deterministic pools.
    min_blob_size, max_blob_size : int
        Byte bounds for `blob` values.
    """

    def __init__(
        self,
        seed: Union[int, str] = 1,
        tenants: Optional["TenantsCache"] = None,
        min_blob_size: int = 1024,
        max_blob_size: int = 102_400,
    ) -> None:
        if min_blob_size < 0 or max_blob_size < min_blob_size:
            raise RandomizerError(
                f"invalid blob size range [{min_blob_size}, {max_blob_size}]"
            )
        self._rand = random.Random(seed)
        self.tenants = tenants
        self.min_blob_size = min_blob_size
        self.max_blob_size = max_blob_size
        self._generators: Dict[str, Callable[[Column], Any]] = {
            "uuid": self._uuid,
            "tenant_uuid": self._tenant_uuid,
            "cti_uuid": self._cti_uuid,
            "customer_uuid": lambda c: _pooled_uuid("customer", self.int_below(CUSTOMER_POOL)),
            "partner_uuid": lambda c: _pooled_uuid("partner", self.int_below(PARTNER_POOL)),
            "int": self._int,
            "const": lambda c: 1,
            "string": self._string,
            "time": self._time,
            "time_ns": self._time_ns,
            "blob": self._blob,
            "json": lambda c: self.json_document(),
            "float": lambda c: self._rand.random() * 100.0,
            "vector_768": lambda c: self.vector(),
        }

    # primitives

    def int_below(self, upper: int) -> int:
        """Uniform integer in [0, upper); 0 when `upper` is not positive."""
        return self._rand.randrange(upper) if upper > 0 else 0

    def choice(self, items: Sequence[Any]) -> Any:
        return self._rand.choice(items)

    def new_uuid(self) -> str:
        return str(uuid.UUID(int=self._rand.getrandbits(128), version=4))

    def word(self, min_len: int = 6, max_len: int = 16) -> str:
        return "".join(self._rand.choice(_LETTERS) for _ in range(self._rand.randint(min_len, max_len)))

    def vector(self, dimensions: int = VECTOR_DIMENSIONS) -> str:
        """A vector literal in pgvector text form, e.g. `[0.1,0.2,...]`."""
        return "[" + ",".join(f"{self._rand.random():.6f}" for _ in range(dimensions)) + "]"

    def json_document(self) -> str:
        """
        Two-level document; `field0.field2.field0` carries the `needle` word
        in about one of ten documents.
        """

        def leaf() -> Dict[str, Any]:
            text = NEEDLE if self.int_below(10) == 0 else self.word()
            return {
                "field0": self.int_below(20),
                "field1": self.int_below(20),
                "field2": {"field0": text},
            }

        return json.dumps({"field0": leaf(), "field1": leaf()})

    # generators

    def _uuid(self, column: Column) -> str:
        if column.cardinality:
            return _pooled_uuid(column.name, self.int_below(column.cardinality))
        return self.new_uuid()

    def _tenant_uuid(self, column: Column) -> str:
        if self.tenants is not None and self.tenants.tenant_count:
            return self.tenants.random_tenant_uuid(self)
        return _pooled_uuid("tenant", self.int_below(TENANT_POOL))

    def _cti_uuid(self, column: Column) -> str:
        if self.tenants is not None and self.tenants.cti_count:
            return self.tenants.random_cti_uuid(self)
        return _pooled_uuid("cti", self.int_below(CTI_POOL))

    def _int(self, column: Column) -> int:
        if column.cardinality:
            return self.int_below(column.cardinality)
        return self._rand.randint(0, 2**31 - 1)

    def _string(self, column: Column) -> str:
        if column.cardinality:
            return _pooled_word(column.name, self.int_below(column.cardinality))
        return "".join(self._rand.choice("0123456789abcdef") for _ in range(32))

    def _time(self, column: Column) -> datetime:
        days = column.cardinality or DEFAULT_TIME_WINDOW_DAYS
        return _utcnow() - timedelta(seconds=self.int_below(days * 86_400))

    def _time_ns(self, column: Column) -> int:
        days = column.cardinality or DEFAULT_TIME_WINDOW_DAYS
        return time.time_ns() - self.int_below(days * 86_400) * 1_000_000_000

    def _blob(self, column: Column) -> bytes:
        size = self._rand.randint(self.min_blob_size, self.max_blob_size)
        return self._rand.randbytes(size)

    # public API

    def gen_fake_value(self, column: Column) -> Any:
        generator = self._generators.get(column.kind)
        if generator is None:
            raise RandomizerError(
                f"no generator for column '{column.name}' of kind '{column.kind}'"
            )
        try:
            return generator(column)
        except DataAccessError:
            raise
        except (ValueError, TypeError) as exc:
            raise RandomizerError(f"failed to generate '{column.name}': {exc}") from exc

    def gen_fake_data(self, columns: Sequence[Column]) -> Tuple[List[str], List[Any]]:
        """Generate one row: the column names and a value per column."""
        return [c.name for c in columns], [self.gen_fake_value(c) for c in columns]

    def gen_fake_rows(self, columns: Sequence[Column], count: int) -> List[List[Any]]:
        return [self.gen_fake_data(columns)[1] for _ in range(count)]


__all__ = ["NEEDLE", "Randomizer", "VECTOR_DIMENSIONS"]
