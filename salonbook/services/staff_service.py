"""
Staff directory: staff members and the services each may perform.

Service assignments are always written as a full replacement of the staff
member's set, in the same transaction as whatever else the caller changes.
A failure anywhere rolls the whole unit back, so readers never see an empty
or half-written set.
"""
import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from salonbook.exceptions import (
    SaasError, TenantNotApprovedError, UnknownServiceError, UnknownStaffError, ValidationError
)
from salonbook.models import Booking, BookingStatus, Service, Staff, StaffService
from salonbook.schemas import StaffInput
from salonbook.services import quota_service
from salonbook.services.cache_service import cached, invalidate
from salonbook.services.locks import quota_lock, staff_lock
from salonbook.services.quota_service import ResourceKind

logger = logging.getLogger(__name__)

STAFF_CACHE_MODULE = 'staff'
RECENT_SERVICES_LIMIT = 10
CENT = Decimal('0.01')


def list_for_salon(session: Session, tenant_id: int, include_inactive: bool = False) -> List[Staff]:
    """All staff of a salon, optionally without the inactive ones."""
    query = session.query(Staff).filter(Staff.tenant_id == tenant_id)
    if not include_inactive:
        query = query.filter(Staff.is_active.is_(True))
    return query.order_by(Staff.display_name, Staff.id).all()


def list_for_salon_cached(session: Session, tenant_id: int, include_inactive: bool = False) -> List[Dict[str, Any]]:
    """Serialized directory listing through the shared cache."""
    key = 'all' if include_inactive else 'active'
    return cached(
        tenant_id, STAFF_CACHE_MODULE, key,
        lambda: [s.to_dict() for s in list_for_salon(session, tenant_id, include_inactive)]
    )


def get_staff(session: Session, tenant_id: int, staff_id: int) -> Staff:
    """Load a staff member of this salon or raise UnknownStaffError."""
    staff = session.query(Staff).filter(
        Staff.id == staff_id,
        Staff.tenant_id == tenant_id
    ).first()
    if not staff:
        raise UnknownStaffError(staff_id)
    return staff


def is_qualified(session: Session, staff_id: int, service_id: int) -> bool:
    """Is the service in the staff member's assignment set?"""
    return session.query(StaffService.id).filter(
        StaffService.staff_id == staff_id,
        StaffService.service_id == service_id
    ).first() is not None


def _validate_service_ids(session: Session, tenant_id: int, service_ids: Iterable[int]) -> List[int]:
    """Every id must name a service of this salon."""
    service_ids = list(dict.fromkeys(service_ids))
    if not service_ids:
        return []
    found = {
        row[0] for row in session.query(Service.id).filter(
            Service.id.in_(service_ids),
            Service.tenant_id == tenant_id
        ).all()
    }
    for service_id in service_ids:
        if service_id not in found:
            raise UnknownServiceError(service_id)
    return service_ids


def _replace_assignments(session: Session, staff: Staff, service_ids: List[int]) -> None:
    """Delete the current set and insert the new one. Caller owns the transaction."""
    session.query(StaffService).filter(
        StaffService.staff_id == staff.id
    ).delete(synchronize_session='fetch')
    session.expire(staff, ['assignments'])

    session.add_all([StaffService(staff_id=staff.id, service_id=sid) for sid in service_ids])
    session.flush()


def _invalidate_directory(tenant_id: int) -> None:
    invalidate(tenant_id, STAFF_CACHE_MODULE)
    quota_service.invalidate_usage(tenant_id)


def assign_services(session: Session, tenant_id: int, staff_id: int, service_ids: List[int]) -> List[int]:
    """
    Replace a staff member's service set with exactly ``service_ids``.

    All-or-nothing: an unknown id, or a store failure between the delete and
    the insert, leaves the previous set in place. Concurrent syncs of the
    same staff member run one after the other under the staff row lock.

    Returns:
        list: The assigned service ids, sorted
    """
    try:
        with staff_lock(session, tenant_id, staff_id) as staff:
            service_ids = _validate_service_ids(session, tenant_id, service_ids)
            _replace_assignments(session, staff, service_ids)
            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[STAFF] Service sync failed for staff {staff_id}")
        raise

    _invalidate_directory(tenant_id)
    logger.info(f"[STAFF] Staff {staff_id} now assigned services {sorted(service_ids)}")
    return sorted(service_ids)


def create_staff(session: Session, tenant_id: int, data: StaffInput) -> Staff:
    """
    Add a staff member, gated by salon approval and the plan's staff ceiling.

    The count, the insert and the initial service assignments commit
    together inside the quota lock.
    """
    try:
        with quota_lock(session, tenant_id, ResourceKind.STAFF.value) as tenant:
            if not tenant.is_approved:
                raise TenantNotApprovedError(tenant_id, tenant.approval_status)

            quota_service.ensure_can_add(session, tenant_id, ResourceKind.STAFF)
            service_ids = _validate_service_ids(session, tenant_id, data.service_ids or [])

            staff = Staff(
                tenant_id=tenant_id,
                display_name=data.display_name,
                email=data.email,
                phone=data.phone,
                avatar_url=data.avatar_url,
                specializations=', '.join(data.specializations) if data.specializations else None,
                role=data.role or 'staff',
                commission_percentage=data.commission_percentage or 0,
                is_active=True if data.is_active is None else data.is_active,
            )
            if data.password:
                staff.set_password(data.password)
            session.add(staff)
            session.flush()

            if service_ids:
                _replace_assignments(session, staff, service_ids)

            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[STAFF] Error creating staff for tenant {tenant_id}")
        raise

    _invalidate_directory(tenant_id)
    logger.info(f"[STAFF] Created staff {staff.id} for tenant {tenant_id}")
    return staff


def update_staff(session: Session, tenant_id: int, staff_id: int, data: StaffInput) -> Staff:
    """
    Update staff fields and, when ``service_ids`` is given, replace the
    assignment set in the same transaction.
    """
    try:
        with staff_lock(session, tenant_id, staff_id) as staff:
            for attr in ('display_name', 'email', 'phone', 'avatar_url', 'role',
                         'commission_percentage', 'is_active'):
                value = getattr(data, attr)
                if value is not None:
                    setattr(staff, attr, value)
            if data.specializations is not None:
                staff.specializations = ', '.join(data.specializations) or None
            if data.password:
                staff.set_password(data.password)

            if data.service_ids is not None:
                service_ids = _validate_service_ids(session, tenant_id, data.service_ids)
                _replace_assignments(session, staff, service_ids)

            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[STAFF] Error updating staff {staff_id}")
        raise

    _invalidate_directory(tenant_id)
    return staff


def _month_bounds(month: int, year: int):
    if not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12", field='month')
    if not 1 <= year <= 9999:
        raise ValidationError("year is out of range", field='year')
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def profile_stats(session: Session, tenant_id: int, staff_id: int,
                  month: Optional[int] = None, year: Optional[int] = None) -> Dict[str, Any]:
    """
    Monthly work summary for a staff member's profile page.

    Only completed bookings count. Revenue is the menu price of each booked
    service (manual entries carry no price) and earnings are that revenue
    at the staff member's commission rate.

    Args:
        session: Database session
        tenant_id: Salon the staff member works at
        staff_id: Staff member
        month: 1-12, defaults to the current month
        year: Defaults to the current year

    Returns:
        dict: Totals for the month plus the most recent completed services
    """
    staff = get_staff(session, tenant_id, staff_id)
    today = date.today()
    month = today.month if month is None else month
    year = today.year if year is None else year
    first_day, last_day = _month_bounds(month, year)

    bookings = session.query(Booking).filter(
        Booking.tenant_id == tenant_id,
        Booking.staff_id == staff_id,
        Booking.status == BookingStatus.COMPLETED.value,
        Booking.booking_date >= first_day,
        Booking.booking_date <= last_day
    ).order_by(Booking.booking_date.desc(), Booking.booking_time.desc(), Booking.id.desc()).all()

    rate = Decimal(staff.commission_percentage or 0) / Decimal(100)
    revenue = Decimal('0.00')
    recent = []
    customers = set()
    for booking in bookings:
        price = booking.service.price if booking.service is not None else Decimal('0.00')
        revenue += price
        # Walk-ins have no account; their name stands in for identity
        customers.add(('user', booking.user_id) if booking.user_id else ('walk_in', booking.full_name))
        if len(recent) < RECENT_SERVICES_LIMIT:
            recent.append({
                'booking_id': booking.id,
                'full_name': booking.full_name,
                'service_name': booking.service_name,
                'booking_date': booking.booking_date.isoformat(),
                'price': price,
                'commission': (price * rate).quantize(CENT),
            })

    minutes = sum(b.duration_minutes for b in bookings)
    return {
        'staff_id': staff.id,
        'month': month,
        'year': year,
        'commission_percentage': staff.commission_percentage,
        'completed_bookings': len(bookings),
        'customers': len(customers),
        'days_worked': len({b.booking_date for b in bookings}),
        'total_hours': round(minutes / 60, 2),
        'revenue': revenue.quantize(CENT),
        'earnings': (revenue * rate).quantize(CENT),
        'recent_customers': recent,
    }
