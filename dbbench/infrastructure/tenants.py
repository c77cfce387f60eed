"""
Tenant hierarchy and CTI entity cache.

Creates tenants (with their closure rows) and CTI entities (with their
provisioning rows) inside the caller's transaction, and remembers what it
created so workers can pick a random existing UUID. All mutations of the
cache are serialized by one lock; database writes happen outside it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Tuple

from dbbench.domain.models import Backend
from dbbench.domain.tables import CTI_ENTITIES, CTI_PROVISIONING, TENANT_CLOSURE, TENANTS
from dbbench.errors import DataAccessError
from dbbench.infrastructure.contracts import Session
from dbbench.query_builder import insert_query
from dbbench.utils.logging import get_logger

if TYPE_CHECKING:
    from dbbench.infrastructure.randomizer import Randomizer

log = get_logger(__name__)

MAX_NESTING_LEVEL = 8
# One in BARRIER_ODDS ancestry links is access-restricted.
BARRIER_ODDS = 10


@dataclass(frozen=True)
class _Tenant:
    id: int
    uuid: str
    level: int
    ancestors: Tuple[int, ...]


class TenantsCache:
    def __init__(self, backend: Backend) -> None:
        self.backend = backend
        self._lock = threading.Lock()
        self._tenants: List[_Tenant] = []
        self._by_id: Dict[int, _Tenant] = {}
        self._ctis: List[str] = []
        self._last_tenant_id = 0
        self._last_cti_id = 0
        self.loaded = False

    @property
    def tenant_count(self) -> int:
        with self._lock:
            return len(self._tenants)

    @property
    def cti_count(self) -> int:
        with self._lock:
            return len(self._ctis)

    def reset(self) -> None:
        """Forget everything; the backing tables are assumed empty."""
        with self._lock:
            self._tenants.clear()
            self._by_id.clear()
            self._ctis.clear()
            self._last_tenant_id = 0
            self._last_cti_id = 0
            self.loaded = True

    def load(self, session: Session) -> None:
        """Populate the cache from existing hierarchy tables."""
        tenant_rows = session.query_rows(f"SELECT id, uuid, nesting_level FROM {TENANTS.name}")
        closure_rows = session.query_rows(
            f"SELECT parent_id, child_id FROM {TENANT_CLOSURE.name} WHERE parent_id <> child_id"
        )
        cti_rows = session.query_rows(f"SELECT id, uuid FROM {CTI_ENTITIES.name}")

        ancestors: Dict[int, List[int]] = {}
        for parent_id, child_id in closure_rows:
            ancestors.setdefault(int(child_id), []).append(int(parent_id))

        with self._lock:
            self._tenants = [
                _Tenant(int(tid), str(tuuid), int(level), tuple(ancestors.get(int(tid), ())))
                for tid, tuuid, level in tenant_rows
            ]
            self._by_id = {t.id: t for t in self._tenants}
            self._ctis = [str(cuuid) for _, cuuid in cti_rows]
            self._last_tenant_id = max(self._by_id, default=0)
            self._last_cti_id = max((int(cid) for cid, _ in cti_rows), default=0)
            self.loaded = True
        log.info(
            "Tenants cache loaded",
            extra={"tenants": len(self._tenants), "cti_entities": len(self._ctis)},
        )

    def create_tenant(self, rz: "Randomizer", tx: Session) -> str:
        """Insert a tenant under a random existing parent; returns its UUID."""
        with self._lock:
            self._last_tenant_id += 1
            tenant_id = self._last_tenant_id
            candidates = [t for t in self._tenants if t.level < MAX_NESTING_LEVEL]
            parent = rz.choice(candidates) if candidates else None

        tenant_uuid = rz.new_uuid()
        level = parent.level + 1 if parent else 0
        ancestors = (parent.id,) + parent.ancestors if parent else ()

        tx.execute(
            insert_query(self.backend, TENANTS.name, TENANTS.column_names),
            (tenant_id, tenant_uuid, rz.word(), parent.id if parent else None, level, False),
        )
        closure = [(tenant_id, tenant_id, 0)]
        closure.extend(
            (ancestor, tenant_id, 1 if rz.int_below(BARRIER_ODDS) == 0 else 0)
            for ancestor in ancestors
        )
        tx.execute_many(
            insert_query(self.backend, TENANT_CLOSURE.name, TENANT_CLOSURE.column_names), closure
        )

        tenant = _Tenant(tenant_id, tenant_uuid, level, ancestors)
        with self._lock:
            self._tenants.append(tenant)
            self._by_id[tenant_id] = tenant
        return tenant_uuid

    def create_cti_entity(self, rz: "Randomizer", tx: Session) -> str:
        """Insert a CTI entity and, when tenants exist, one provisioning row."""
        with self._lock:
            self._last_cti_id += 1
            cti_id = self._last_cti_id
            tenant = rz.choice(self._tenants) if self._tenants else None

        cti_uuid = rz.new_uuid()
        tx.execute(
            insert_query(self.backend, CTI_ENTITIES.name, CTI_ENTITIES.column_names),
            (cti_id, cti_uuid, f"cti.a.p.{rz.word()}.v1.0", rz.int_below(2)),
        )
        if tenant is not None:
            tx.execute(
                insert_query(self.backend, CTI_PROVISIONING.name, CTI_PROVISIONING.column_names),
                (tenant.id, cti_uuid, rz.int_below(2)),
            )

        with self._lock:
            self._ctis.append(cti_uuid)
        return cti_uuid

    def random_tenant_uuid(self, rz: "Randomizer") -> str:
        with self._lock:
            if not self._tenants:
                raise DataAccessError("no tenants available; run 'insert-tenant' first")
            return rz.choice(self._tenants).uuid

    def random_cti_uuid(self, rz: "Randomizer") -> str:
        with self._lock:
            if not self._ctis:
                raise DataAccessError("no CTI entities available; run 'insert-cti' first")
            return rz.choice(self._ctis)


__all__ = ["TenantsCache"]
