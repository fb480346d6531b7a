"""
Customer view for a salon: one merged record per customer.

Customers often sign up with just an email, so their contact details are
stitched together from three places, in priority order:

    1. the account itself (AppUser)
    2. the customer's most recent booking at this salon
    3. the salon's CRM profile for the customer

A value from a higher source is never replaced by a lower one; lower
sources only fill gaps. Read-only.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from salonbook.exceptions import NotFoundError
from salonbook.models import AppUser, Booking, CustomerSalonProfile

SOURCE_ACCOUNT = 'account'
SOURCE_BOOKING = 'booking'
SOURCE_PROFILE = 'profile'

CONTACT_FIELDS = ('full_name', 'phone', 'email', 'avatar_url')
PROFILE_EXTRA_FIELDS = ('date_of_birth', 'skin_type', 'skin_issues', 'allergy_records')


@dataclass
class CustomerView:
    user_id: int
    tenant_id: int
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    date_of_birth: Optional[date] = None
    skin_type: Optional[str] = None
    skin_issues: Optional[str] = None
    allergy_records: Optional[str] = None
    booking_count: int = 0
    last_booking_id: Optional[int] = None
    sources: Dict[str, str] = field(default_factory=dict)

    def fill(self, source_name: str, source: Any, fields) -> None:
        """Copy non-empty values from ``source`` into fields still empty."""
        if source is None:
            return
        for name in fields:
            if getattr(self, name) not in (None, ''):
                continue
            value = getattr(source, name, None)
            if value in (None, ''):
                continue
            setattr(self, name, value)
            self.sources[name] = source_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'tenant_id': self.tenant_id,
            'full_name': self.full_name,
            'phone': self.phone,
            'email': self.email,
            'avatar_url': self.avatar_url,
            'date_of_birth': self.date_of_birth.isoformat() if self.date_of_birth else None,
            'skin_type': self.skin_type,
            'skin_issues': self.skin_issues,
            'allergy_records': self.allergy_records,
            'booking_count': self.booking_count,
            'last_booking_id': self.last_booking_id,
            'sources': dict(self.sources),
        }


def resolve(session: Session, tenant_id: int, user_id: int) -> CustomerView:
    """
    Merged view of a customer as seen by one salon.

    Only customers known to the salon (a booking or a CRM profile there)
    can be resolved; anyone else on the platform reads as not found.

    Raises:
        NotFoundError: If the account does not exist or is not a customer of the salon
    """
    user = session.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise NotFoundError(f"Customer {user_id} not found")

    latest_booking = session.query(Booking).filter(
        Booking.tenant_id == tenant_id,
        Booking.user_id == user_id
    ).order_by(Booking.created_at.desc(), Booking.id.desc()).first()

    profile = session.query(CustomerSalonProfile).filter_by(
        user_id=user_id,
        tenant_id=tenant_id
    ).first()

    if latest_booking is None and profile is None:
        raise NotFoundError(f"Customer {user_id} not found")

    view = CustomerView(user_id=user.id, tenant_id=tenant_id)
    view.fill(SOURCE_ACCOUNT, user, CONTACT_FIELDS)
    view.fill(SOURCE_BOOKING, latest_booking, CONTACT_FIELDS)
    view.fill(SOURCE_PROFILE, profile, CONTACT_FIELDS + PROFILE_EXTRA_FIELDS)

    view.booking_count = session.query(func.count(Booking.id)).filter(
        Booking.tenant_id == tenant_id,
        Booking.user_id == user_id
    ).scalar() or 0
    view.last_booking_id = latest_booking.id if latest_booking else None
    return view
