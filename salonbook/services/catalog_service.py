"""Service catalog: the treatments a salon offers."""
import logging
from typing import List

from sqlalchemy.orm import Session

from salonbook.exceptions import SaasError, UnknownServiceError
from salonbook.models import Service
from salonbook.schemas import ServiceInput
from salonbook.services import quota_service
from salonbook.services.locks import quota_lock
from salonbook.services.quota_service import ResourceKind

logger = logging.getLogger(__name__)


def list_services(session: Session, tenant_id: int, include_inactive: bool = False) -> List[Service]:
    query = session.query(Service).filter(Service.tenant_id == tenant_id)
    if not include_inactive:
        query = query.filter(Service.is_active.is_(True))
    return query.order_by(Service.category, Service.name, Service.id).all()


def get_service(session: Session, tenant_id: int, service_id: int) -> Service:
    """Load a service of this salon or raise UnknownServiceError."""
    service = session.query(Service).filter(
        Service.id == service_id,
        Service.tenant_id == tenant_id
    ).first()
    if not service:
        raise UnknownServiceError(service_id)
    return service


def create_service(session: Session, tenant_id: int, data: ServiceInput) -> Service:
    """
    Add a service to the menu, gated by the plan's service ceiling.

    Raises:
        QuotaExceededError: If the salon already has as many services as
            its plan allows
    """
    try:
        with quota_lock(session, tenant_id, ResourceKind.SERVICE.value):
            quota_service.ensure_can_add(session, tenant_id, ResourceKind.SERVICE)

            service = Service(
                tenant_id=tenant_id,
                name=data.name,
                description=data.description,
                price=data.price,
                duration_minutes=data.duration_minutes,
                category=data.category,
                is_active=True if data.is_active is None else data.is_active,
            )
            session.add(service)
            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[CATALOG] Error creating service for tenant {tenant_id}")
        raise

    quota_service.invalidate_usage(tenant_id)
    logger.info(f"[CATALOG] Created service {service.id} '{service.name}' for tenant {tenant_id}")
    return service


def update_service(session: Session, tenant_id: int, service_id: int, data: ServiceInput) -> Service:
    """
    Update a service. Existing bookings keep the duration copied at
    creation time.
    """
    try:
        service = get_service(session, tenant_id, service_id)
        for attr in ('name', 'description', 'price', 'duration_minutes', 'category', 'is_active'):
            value = getattr(data, attr)
            if value is not None:
                setattr(service, attr, value)
        session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[CATALOG] Error updating service {service_id}")
        raise

    quota_service.invalidate_usage(tenant_id)
    return service
