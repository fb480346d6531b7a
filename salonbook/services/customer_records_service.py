"""
Salon CRM records: customer profiles and treatment notes.

Both are create-or-replace on their natural key: (user, salon) for
profiles, booking for treatment records. A treatment record without a
booking is always a new row.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salonbook.exceptions import NotFoundError, SaasError, ValidationError
from salonbook.models import AppUser, Booking, CustomerSalonProfile, TreatmentRecord
from salonbook.schemas import ProfileInput, TreatmentInput

logger = logging.getLogger(__name__)


def get_profile(session: Session, tenant_id: int, user_id: int) -> Optional[CustomerSalonProfile]:
    return session.query(CustomerSalonProfile).filter_by(
        user_id=user_id,
        tenant_id=tenant_id
    ).first()


def _write_profile(session: Session, tenant_id: int, user_id: int, data: ProfileInput) -> CustomerSalonProfile:
    profile = get_profile(session, tenant_id, user_id)
    if profile is None:
        profile = CustomerSalonProfile(user_id=user_id, tenant_id=tenant_id)
        session.add(profile)
    for key, value in data.values.items():
        setattr(profile, key, value)
    session.commit()
    return profile


def upsert_profile(session: Session, tenant_id: int, user_id: int, data: ProfileInput) -> CustomerSalonProfile:
    """
    Create or replace the salon's profile of a customer.

    Every profile field is replaced; omitted fields are cleared.

    Raises:
        NotFoundError: If the customer account does not exist
    """
    if not session.query(AppUser.id).filter(AppUser.id == user_id).first():
        raise NotFoundError(f"Customer {user_id} not found")

    try:
        return _write_profile(session, tenant_id, user_id, data)
    except IntegrityError:
        # Another request created the row first; replace it instead
        session.rollback()
        try:
            return _write_profile(session, tenant_id, user_id, data)
        except Exception:
            session.rollback()
            logger.exception(f"[CRM] Error saving profile for user {user_id} in tenant {tenant_id}")
            raise
    except Exception:
        session.rollback()
        logger.exception(f"[CRM] Error saving profile for user {user_id} in tenant {tenant_id}")
        raise


def get_treatment_for_booking(session: Session, tenant_id: int, booking_id: int) -> Optional[TreatmentRecord]:
    return session.query(TreatmentRecord).filter_by(
        booking_id=booking_id,
        tenant_id=tenant_id
    ).first()


def _booking_owner(session: Session, tenant_id: int, booking_id: int) -> Booking:
    booking = session.query(Booking).filter(
        Booking.id == booking_id,
        Booking.tenant_id == tenant_id
    ).first()
    if not booking:
        raise NotFoundError(f"Booking {booking_id} not found")
    if booking.user_id is None:
        raise ValidationError("Booking has no customer account to attach notes to", field='booking_id')
    return booking


def _write_treatment(session: Session, tenant_id: int, data: TreatmentInput) -> TreatmentRecord:
    record = None
    if data.booking_id is not None:
        # User and salon always come from the booking
        booking = _booking_owner(session, tenant_id, data.booking_id)
        user_id = booking.user_id
        record = get_treatment_for_booking(session, tenant_id, booking.id)
    else:
        user_id = data.user_id
        if not session.query(AppUser.id).filter(AppUser.id == user_id).first():
            raise NotFoundError(f"Customer {user_id} not found")

    if record is None:
        record = TreatmentRecord(booking_id=data.booking_id, user_id=user_id, tenant_id=tenant_id)
        session.add(record)
    for key, value in data.values.items():
        setattr(record, key, value)
    session.commit()
    return record


def upsert_treatment_record(session: Session, tenant_id: int, data: TreatmentInput) -> TreatmentRecord:
    """
    Save treatment notes.

    With a booking id the record for that booking is created or replaced;
    without one a new record is always inserted for ``data.user_id``.
    """
    try:
        return _write_treatment(session, tenant_id, data)
    except SaasError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        if data.booking_id is None:
            logger.exception(f"[CRM] Error saving treatment record in tenant {tenant_id}")
            raise
        # Another request created the booking's record first; replace it instead
        logger.warning(f"[CRM] Treatment record for booking {data.booking_id} written concurrently, retrying")
        try:
            return _write_treatment(session, tenant_id, data)
        except Exception:
            session.rollback()
            logger.exception(f"[CRM] Error saving treatment record for booking {data.booking_id} in tenant {tenant_id}")
            raise
    except Exception:
        session.rollback()
        logger.exception(f"[CRM] Error saving treatment record in tenant {tenant_id}")
        raise


def list_treatments(session: Session, user_id: int, tenant_id: Optional[int] = None) -> List[TreatmentRecord]:
    """
    Treatment history of a customer, newest first.

    Ordered by the booking date when the record has a booking, else by the
    record date, else by creation time.
    """
    query = session.query(TreatmentRecord).filter(TreatmentRecord.user_id == user_id)
    if tenant_id is not None:
        query = query.filter(TreatmentRecord.tenant_id == tenant_id)
    records = query.all()

    def sort_key(record):
        when = None
        if record.booking is not None:
            when = record.booking.booking_date
        elif record.record_date is not None:
            when = record.record_date
        elif record.created_at is not None:
            when = record.created_at.date()
        return (when.toordinal() if when else 0, record.id)

    return sorted(records, key=sort_key, reverse=True)
