"""
Scheduling conflict checks.

A booking occupies the half-open interval [start, start + duration), so an
appointment ending at 10:30 does not collide with one starting at 10:30.
Intervals are compared as full datetimes: a booking running past midnight
is checked against the following day's calendar too.

Only bookings of the same staff member are compared. Unassigned bookings
(no staff) are compared with other unassigned bookings only.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from salonbook.models import BLOCKING_STATUSES, Booking, Service, Staff, StaffService
from salonbook.schemas import check_duration

logger = logging.getLogger(__name__)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test."""
    return a_start < b_end and b_start < a_end


def find_conflicts(session: Session, tenant_id: int, staff_id: Optional[int],
                   booking_date: date, booking_time: time, duration_minutes: int,
                   exclude_booking_id: Optional[int] = None) -> List[Booking]:
    """
    Blocking bookings that overlap the requested slot.

    Args:
        staff_id: Staff member whose calendar is checked; None checks the
            unassigned calendar
        exclude_booking_id: Booking being moved or re-confirmed, ignored

    Returns:
        list: Overlapping bookings ordered by start
    """
    start = datetime.combine(booking_date, booking_time)
    end = start + timedelta(minutes=duration_minutes)

    # Durations are capped at one day, so only neighbouring dates can reach in
    query = session.query(Booking).filter(
        Booking.tenant_id == tenant_id,
        Booking.status.in_(BLOCKING_STATUSES),
        Booking.booking_date >= booking_date - timedelta(days=1),
        Booking.booking_date <= booking_date + timedelta(days=1),
    )
    if staff_id is None:
        query = query.filter(Booking.staff_id.is_(None))
    else:
        query = query.filter(Booking.staff_id == staff_id)
    if exclude_booking_id is not None:
        query = query.filter(Booking.id != exclude_booking_id)

    conflicts = [
        b for b in query.all()
        if intervals_overlap(start, end, b.starts_at, b.ends_at)
    ]
    conflicts.sort(key=lambda b: b.starts_at)
    return conflicts


def has_conflict(session: Session, tenant_id: int, staff_id: Optional[int],
                 booking_date: date, booking_time: time, duration_minutes: int,
                 exclude_booking_id: Optional[int] = None) -> bool:
    return bool(find_conflicts(
        session, tenant_id, staff_id, booking_date, booking_time, duration_minutes,
        exclude_booking_id=exclude_booking_id
    ))


def available_specialists(session: Session, tenant_id: int, service_id: Optional[int] = None,
                          booking_date: Optional[date] = None, booking_time: Optional[time] = None,
                          duration_minutes: Optional[int] = None) -> List[Staff]:
    """
    Active staff who can take a booking.

    Filters by qualification when ``service_id`` is given and by calendar
    availability when both date and time are given. Advisory only: the
    booking write re-checks under the slot lock.
    """
    check_duration(duration_minutes)
    query = session.query(Staff).filter(
        Staff.tenant_id == tenant_id,
        Staff.is_active.is_(True)
    )
    if service_id is not None:
        query = query.join(StaffService, StaffService.staff_id == Staff.id).filter(
            StaffService.service_id == service_id
        )
    staff_members = query.order_by(Staff.display_name, Staff.id).all()

    if booking_date is None or booking_time is None:
        return staff_members

    if duration_minutes is None:
        duration_minutes = _service_duration(session, tenant_id, service_id) or 30

    return [
        s for s in staff_members
        if not has_conflict(session, tenant_id, s.id, booking_date, booking_time, duration_minutes)
    ]


def _service_duration(session: Session, tenant_id: int, service_id: Optional[int]) -> Optional[int]:
    if service_id is None:
        return None
    service = session.query(Service).filter(
        Service.id == service_id,
        Service.tenant_id == tenant_id
    ).first()
    return service.duration_minutes if service else None
