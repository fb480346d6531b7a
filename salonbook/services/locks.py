"""
Serialization boundaries for check-then-write decisions.

Quota checks and slot conflict checks read the database and then insert a
row that depends on what they read. Two requests racing through the same
check must not both pass, so each decision runs inside one of the context
managers below and the caller commits before leaving the block.

Two layers are combined:
- an in-process mutex keyed on the decision tuple, which is enough when a
  salon's writes are served by a single process (and is what makes SQLite
  behave in tests);
- a ``SELECT ... FOR UPDATE`` on the parent row (tenant or staff), which
  serializes writers across processes on PostgreSQL. Dialects without row
  locks (SQLite) ignore the clause.
"""
import logging
import threading
import weakref
from contextlib import contextmanager
from typing import Hashable, Optional

from salonbook.exceptions import NotFoundError, UnknownStaffError
from salonbook.models import Tenant, Staff

logger = logging.getLogger(__name__)

_registry_lock = threading.Lock()
# Entries vanish once no thread holds or waits on the lock
_keyed_locks: "weakref.WeakValueDictionary[Hashable, threading.Lock]" = weakref.WeakValueDictionary()


def _lock_for(key: Hashable) -> threading.Lock:
    with _registry_lock:
        lock = _keyed_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _keyed_locks[key] = lock
        return lock


@contextmanager
def keyed_lock(key: Hashable):
    """Hold the process-wide mutex for ``key``."""
    lock = _lock_for(key)
    with lock:
        yield


def lock_tenant_row(session, tenant_id: int) -> Tenant:
    tenant = session.query(Tenant).filter(Tenant.id == tenant_id).with_for_update().one_or_none()
    if tenant is None:
        raise NotFoundError(f"Salon {tenant_id} not found")
    return tenant


@contextmanager
def quota_lock(session, tenant_id: int, kind: str):
    """
    Serialize creates of one resource kind for one salon.

    Yields the locked Tenant row.
    """
    with keyed_lock(('quota', tenant_id, kind)):
        yield lock_tenant_row(session, tenant_id)


@contextmanager
def slot_lock(session, tenant_id: int, staff_id: Optional[int]):
    """
    Serialize calendar writes for one staff member.

    Unassigned bookings share the salon-wide key and lock the tenant row.
    Yields the locked Staff row, or None for the unassigned calendar.
    """
    with keyed_lock(('slot', tenant_id, staff_id)):
        if staff_id is None:
            lock_tenant_row(session, tenant_id)
            yield None
            return

        staff = session.query(Staff).filter(
            Staff.id == staff_id,
            Staff.tenant_id == tenant_id
        ).with_for_update().one_or_none()
        if staff is None:
            raise UnknownStaffError(staff_id)
        yield staff


@contextmanager
def staff_lock(session, tenant_id: int, staff_id: int):
    """
    Serialize writes to one staff member's record and service set.

    Yields the locked Staff row.
    """
    with keyed_lock(('staff', tenant_id, staff_id)):
        staff = session.query(Staff).filter(
            Staff.id == staff_id,
            Staff.tenant_id == tenant_id
        ).with_for_update().one_or_none()
        if staff is None:
            raise UnknownStaffError(staff_id)
        yield staff
