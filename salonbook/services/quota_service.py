"""
Quota ledger: plan ceilings for staff and services.

Counts are derived from live rows every time a decision is taken. Every row
counts, active or not: deactivating a staff member or hiding a service from
the menu does not give back an allowance, only a plan upgrade does.

A salon without a subscription in force (no subscription, no plan, expired
or canceled) gets a ceiling of zero.
"""
import enum
import logging
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from salonbook.exceptions import QuotaExceededError
from salonbook.metrics import quota_rejections_total
from salonbook.models import Plan, Service, Staff, Subscription
from salonbook.services.cache_service import cached, invalidate

logger = logging.getLogger(__name__)

USAGE_CACHE_MODULE = 'usage'


class ResourceKind(str, enum.Enum):
    """Resource kinds bounded by a plan."""
    STAFF = 'staff'
    SERVICE = 'service'


_MODEL_FOR_KIND = {
    ResourceKind.STAFF.value: Staff,
    ResourceKind.SERVICE.value: Service,
}


def _kind_value(kind) -> str:
    value = kind.value if isinstance(kind, ResourceKind) else str(kind)
    if value not in _MODEL_FOR_KIND:
        raise ValueError(f"Unknown resource kind: {kind}")
    return value


def get_active_plan(session: Session, tenant_id: int) -> Optional[Plan]:
    """
    Plan of the subscription currently in force for a salon.

    Returns:
        Plan or None when the salon has no subscription in force
    """
    subscription = session.query(Subscription).filter_by(tenant_id=tenant_id).first()
    if not subscription or not subscription.plan_id:
        return None
    if not subscription.is_in_force():
        return None
    return subscription.plan


def get_limit(session: Session, tenant_id: int, kind) -> int:
    """Ceiling for a kind; zero when no plan is in force."""
    plan = get_active_plan(session, tenant_id)
    if plan is None:
        return 0
    return plan.limit_for(_kind_value(kind))


def count_current(session: Session, tenant_id: int, kind) -> int:
    """Number of existing rows of a kind for a salon, regardless of active flag."""
    model = _MODEL_FOR_KIND[_kind_value(kind)]
    return session.query(func.count(model.id)).filter(model.tenant_id == tenant_id).scalar() or 0


def can_add(session: Session, tenant_id: int, kind) -> bool:
    """May the salon add one more row of this kind?"""
    return count_current(session, tenant_id, kind) < get_limit(session, tenant_id, kind)


def ensure_can_add(session: Session, tenant_id: int, kind) -> None:
    """
    Raise QuotaExceededError when the ceiling is reached.

    Must run inside ``quota_lock`` and in the same transaction as the insert
    it guards.
    """
    kind_value = _kind_value(kind)
    limit = get_limit(session, tenant_id, kind_value)
    current = count_current(session, tenant_id, kind_value)
    if current >= limit:
        quota_rejections_total.labels(resource_kind=kind_value).inc()
        logger.info(f"[QUOTA] Tenant {tenant_id} at {kind_value} ceiling ({current}/{limit})")
        raise QuotaExceededError(kind_value, limit, current)


def _compute_usage(session: Session, tenant_id: int) -> Dict[str, Any]:
    plan = get_active_plan(session, tenant_id)
    max_staff = plan.max_staff if plan else 0
    max_services = plan.max_services if plan else 0
    current_staff = count_current(session, tenant_id, ResourceKind.STAFF)
    current_services = count_current(session, tenant_id, ResourceKind.SERVICE)
    return {
        'plan': plan.code if plan else None,
        'plan_name': plan.name if plan else None,
        'max_staff': max_staff,
        'current_staff_count': current_staff,
        'can_add_staff': current_staff < max_staff,
        'max_services': max_services,
        'current_service_count': current_services,
        'can_add_service': current_services < max_services,
    }


def get_usage(session: Session, tenant_id: int) -> Dict[str, Any]:
    """
    Plan usage summary shown next to the "add staff"/"add service" buttons.

    Cached briefly; never used for the create decision itself.
    """
    return cached(
        tenant_id, USAGE_CACHE_MODULE, 'summary',
        lambda: _compute_usage(session, tenant_id)
    )


def invalidate_usage(tenant_id: int) -> None:
    invalidate(tenant_id, USAGE_CACHE_MODULE)
