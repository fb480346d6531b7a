"""
Booking lifecycle - Multi-Tenant.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled
    completed, cancelled: terminal

Every write that can put a booking on a calendar (create, confirm, staff
change, reschedule) re-runs the conflict check inside the slot lock of the
target calendar and commits before the lock is released.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from salonbook.decorators.retry import retry_transient
from salonbook.exceptions import (
    BusinessLogicError, InvalidTransitionError, NotFoundError, SaasError, SlotConflictError,
    StaffNotQualifiedError, TenantNotApprovedError, UnauthorizedError, ValidationError
)
from salonbook.metrics import booking_transitions_total, bookings_created_total, slot_conflicts_total
from salonbook.models import AppUser, Booking, BookingOrigin, BookingStatus, Service, Staff, Tenant
from salonbook.schemas import BookingInput
from salonbook.services import catalog_service, schedule_service, staff_service
from salonbook.services.locks import slot_lock

logger = logging.getLogger(__name__)


@dataclass
class Actor:
    """Who is asking for a change; authentication happens elsewhere."""
    role: str
    user_id: Optional[int] = None

    CUSTOMER = 'customer'

    @property
    def is_customer(self) -> bool:
        return self.role == self.CUSTOMER


def _now() -> datetime:
    return datetime.now(timezone.utc)


def get_booking(session: Session, tenant_id: int, booking_id: int, for_update: bool = False) -> Booking:
    """Load a booking of this salon or raise NotFoundError."""
    query = session.query(Booking).filter(
        Booking.id == booking_id,
        Booking.tenant_id == tenant_id
    )
    if for_update:
        query = query.with_for_update()
    booking = query.first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    return booking


def list_bookings(session: Session, tenant_id: int, user_id: Optional[int] = None,
                  staff_id: Optional[int] = None, status: Optional[str] = None,
                  booking_date: Optional[date] = None, start_date: Optional[date] = None,
                  end_date: Optional[date] = None) -> List[Booking]:
    """Bookings of a salon, newest appointment first."""
    query = session.query(Booking).filter(Booking.tenant_id == tenant_id)
    if user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    if staff_id is not None:
        query = query.filter(Booking.staff_id == staff_id)
    if status:
        query = query.filter(Booking.status == status)
    if booking_date:
        query = query.filter(Booking.booking_date == booking_date)
    if start_date:
        query = query.filter(Booking.booking_date >= start_date)
    if end_date:
        query = query.filter(Booking.booking_date <= end_date)
    return query.order_by(
        Booking.booking_date.desc(),
        Booking.booking_time.desc(),
        Booking.id.desc()
    ).all()


def _require_approved(session: Session, tenant_id: int) -> Tenant:
    tenant = session.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise NotFoundError(f"Salon {tenant_id} not found")
    if not tenant.is_approved:
        raise TenantNotApprovedError(tenant_id, tenant.approval_status)
    return tenant


def _resolve_service(session: Session, tenant_id: int, data: BookingInput) -> Tuple[Optional[Service], int]:
    """Service row (None for manual entries) and the duration to book."""
    if data.is_manual:
        # Free-form entries are for the salon's own calendar keeping
        if data.origin != BookingOrigin.STAFF_ENTERED.value:
            raise ValidationError("Choose a service from the salon's menu", field='service_id')
        return None, data.manual_duration_minutes

    service = catalog_service.get_service(session, tenant_id, data.service_id)
    if not service.is_active and data.origin == BookingOrigin.CUSTOMER.value:
        raise ValidationError(f"Service '{service.name}' is not currently offered", field='service_id')
    # Copied so later menu edits do not move existing appointments
    return service, service.duration_minutes


def _resolve_staff(session: Session, tenant_id: int, staff_id: Optional[int],
                   service_id: Optional[int], enforce_qualification: bool) -> Optional[Staff]:
    if staff_id is None:
        return None
    staff = staff_service.get_staff(session, tenant_id, staff_id)
    if not staff.is_active:
        raise ValidationError(f"{staff.display_name} is not taking bookings", field='staff_id')
    if enforce_qualification and service_id is not None:
        if not staff_service.is_qualified(session, staff_id, service_id):
            raise StaffNotQualifiedError(staff_id, service_id)
    return staff


def _ensure_slot_free(session: Session, tenant_id: int, staff_id: Optional[int], booking_date: date,
                      booking_time: time, duration_minutes: int, exclude_booking_id: Optional[int] = None) -> None:
    """Must be called inside ``slot_lock`` for ``staff_id``."""
    conflicts = schedule_service.find_conflicts(
        session, tenant_id, staff_id, booking_date, booking_time, duration_minutes,
        exclude_booking_id=exclude_booking_id
    )
    if conflicts:
        slot_conflicts_total.inc()
        logger.info(
            f"[BOOKING] Slot {booking_date} {booking_time} for staff {staff_id} "
            f"overlaps bookings {[b.id for b in conflicts]}"
        )
        raise SlotConflictError([b.id for b in conflicts])


def _fill_contact(session: Session, booking: Booking, data: BookingInput) -> None:
    """Contact snapshot: explicit payload values win over the account's."""
    if data.user_id is not None:
        user = session.query(AppUser).filter(AppUser.id == data.user_id).first()
        if not user:
            raise NotFoundError(f"Customer {data.user_id} not found")
        booking.full_name = data.full_name or user.full_name
        booking.phone = data.phone or user.phone
        booking.email = data.email or user.email
    else:
        if not data.full_name:
            raise ValidationError("full_name is required for walk-in bookings", field='full_name')
        booking.full_name = data.full_name
        booking.phone = data.phone
        booking.email = data.email


@retry_transient
def create_booking(session: Session, tenant_id: int, data: BookingInput,
                   enforce_qualification: bool = True) -> Booking:
    """
    Create a booking.

    Customer bookings start as pending and wait for the salon to confirm;
    bookings entered by staff start confirmed.

    Args:
        session: Database session
        tenant_id: Salon taking the booking
        data: Validated payload
        enforce_qualification: Reject staff not assigned the service

    Returns:
        Booking: The committed booking

    Raises:
        TenantNotApprovedError: Salon has not been approved
        UnknownServiceError / UnknownStaffError: Reference outside the salon
        StaffNotQualifiedError: Staff does not perform the service
        SlotConflictError: Overlaps an existing booking of the same calendar
    """
    try:
        _require_approved(session, tenant_id)
        service, duration = _resolve_service(session, tenant_id, data)
        _resolve_staff(session, tenant_id, data.staff_id,
                       service.id if service else None, enforce_qualification)

        now = _now()
        staff_entered = data.origin == BookingOrigin.STAFF_ENTERED.value
        booking = Booking(
            tenant_id=tenant_id,
            service_id=service.id if service else None,
            staff_id=data.staff_id,
            user_id=data.user_id,
            service_name_manual=data.service_name_manual if service is None else None,
            booking_date=data.booking_date,
            booking_time=data.booking_time,
            duration_minutes=duration,
            status=BookingStatus.CONFIRMED.value if staff_entered else BookingStatus.PENDING.value,
            origin=data.origin,
            notes=data.notes,
            status_changed_at=now,
            confirmed_at=now if staff_entered else None,
        )
        _fill_contact(session, booking, data)

        with slot_lock(session, tenant_id, data.staff_id):
            _ensure_slot_free(session, tenant_id, data.staff_id, data.booking_date,
                              data.booking_time, duration)
            session.add(booking)
            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[BOOKING] Error creating booking for tenant {tenant_id}")
        raise

    bookings_created_total.labels(origin=booking.origin, status=booking.status).inc()
    logger.info(
        f"[BOOKING] Created booking {booking.id} ({booking.status}) for tenant {tenant_id} "
        f"at {booking.booking_date} {booking.booking_time}, staff {booking.staff_id}"
    )
    return booking


def _stamp_status(booking: Booking, target_status: str) -> None:
    now = _now()
    booking.status = target_status
    booking.status_changed_at = now
    if target_status == BookingStatus.CONFIRMED.value:
        booking.confirmed_at = now
    elif target_status == BookingStatus.CANCELLED.value:
        booking.cancelled_at = now
    elif target_status == BookingStatus.COMPLETED.value:
        booking.completed_at = now


@retry_transient
def transition_booking(session: Session, tenant_id: int, booking_id: int, target_status: str,
                       actor: Optional[Actor] = None, staff_id: Optional[int] = None,
                       enforce_qualification: bool = True) -> Booking:
    """
    Move a booking to ``target_status``, optionally assigning staff.

    Customers may only cancel their own bookings. Confirming, or changing
    staff on a booking that stays active, re-checks the target calendar.

    Raises:
        InvalidTransitionError: The move is not in the transition table
        UnauthorizedError: A customer asked for anything but cancelling
            their own booking
    """
    try:
        booking = get_booking(session, tenant_id, booking_id, for_update=True)
        previous_status = booking.status

        if actor is not None and actor.is_customer:
            if booking.user_id is None or booking.user_id != actor.user_id:
                raise UnauthorizedError("You can only change your own bookings")
            if target_status != BookingStatus.CANCELLED.value or staff_id is not None:
                raise UnauthorizedError("Customers can only cancel bookings")

        if not booking.can_transition_to(target_status):
            logger.warning(
                f"[BOOKING] Rejected transition {previous_status} -> {target_status} for booking {booking_id}"
            )
            raise InvalidTransitionError(previous_status, target_status)

        staff_changed = staff_id is not None and staff_id != booking.staff_id
        if staff_changed:
            _resolve_staff(session, tenant_id, staff_id, booking.service_id, enforce_qualification)
            booking.staff_id = staff_id

        needs_slot = target_status == BookingStatus.CONFIRMED.value or (
            staff_changed and target_status != BookingStatus.CANCELLED.value
        )
        if needs_slot:
            with slot_lock(session, tenant_id, booking.staff_id):
                _ensure_slot_free(session, tenant_id, booking.staff_id, booking.booking_date,
                                  booking.booking_time, booking.duration_minutes,
                                  exclude_booking_id=booking.id)
                _stamp_status(booking, target_status)
                session.commit()
        else:
            _stamp_status(booking, target_status)
            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[BOOKING] Error updating booking {booking_id}")
        raise

    booking_transitions_total.labels(from_status=previous_status, to_status=target_status).inc()
    logger.info(f"[BOOKING] Booking {booking_id}: {previous_status} -> {target_status}")
    return booking


def _ensure_not_terminal(booking: Booking) -> None:
    if booking.is_terminal:
        raise BusinessLogicError(
            f"Booking {booking.id} is {booking.status} and can no longer be changed",
            status_code=409,
            payload={'current_status': booking.status}
        )


@retry_transient
def assign_staff(session: Session, tenant_id: int, booking_id: int, staff_id: Optional[int],
                 enforce_qualification: bool = True) -> Booking:
    """Assign, reassign or (with None) unassign the staff member of an active booking."""
    try:
        booking = get_booking(session, tenant_id, booking_id, for_update=True)
        _ensure_not_terminal(booking)
        _resolve_staff(session, tenant_id, staff_id, booking.service_id, enforce_qualification)

        with slot_lock(session, tenant_id, staff_id):
            _ensure_slot_free(session, tenant_id, staff_id, booking.booking_date,
                              booking.booking_time, booking.duration_minutes,
                              exclude_booking_id=booking.id)
            booking.staff_id = staff_id
            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[BOOKING] Error assigning staff to booking {booking_id}")
        raise

    logger.info(f"[BOOKING] Booking {booking_id} assigned to staff {staff_id}")
    return booking


@retry_transient
def reschedule_booking(session: Session, tenant_id: int, booking_id: int,
                       booking_date: date, booking_time: time) -> Booking:
    """Move an active booking to another date/time on the same calendar."""
    try:
        booking = get_booking(session, tenant_id, booking_id, for_update=True)
        _ensure_not_terminal(booking)

        with slot_lock(session, tenant_id, booking.staff_id):
            _ensure_slot_free(session, tenant_id, booking.staff_id, booking_date,
                              booking_time, booking.duration_minutes,
                              exclude_booking_id=booking.id)
            booking.booking_date = booking_date
            booking.booking_time = booking_time
            session.commit()
    except SaasError:
        session.rollback()
        raise
    except Exception:
        session.rollback()
        logger.exception(f"[BOOKING] Error rescheduling booking {booking_id}")
        raise

    logger.info(f"[BOOKING] Booking {booking_id} moved to {booking_date} {booking_time}")
    return booking
