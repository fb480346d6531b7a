"""Booking model."""
import enum
from datetime import datetime, timedelta
from sqlalchemy import (
    Column, BigInteger, String, Integer, Date, Time, Text, DateTime, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


class BookingStatus(str, enum.Enum):
    """Booking lifecycle states."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    CANCELLED = 'cancelled'
    COMPLETED = 'completed'


class BookingOrigin(str, enum.Enum):
    """Who entered the booking."""
    CUSTOMER = 'customer'
    STAFF_ENTERED = 'staff_entered'


# Allowed moves; completed and cancelled are terminal
BOOKING_TRANSITIONS = {
    BookingStatus.PENDING.value: {BookingStatus.CONFIRMED.value, BookingStatus.CANCELLED.value},
    BookingStatus.CONFIRMED.value: {BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value},
    BookingStatus.COMPLETED.value: set(),
    BookingStatus.CANCELLED.value: set(),
}

# Statuses that hold a slot on the calendar
BLOCKING_STATUSES = (
    BookingStatus.PENDING.value,
    BookingStatus.CONFIRMED.value,
    BookingStatus.COMPLETED.value,
)


class Booking(Base):
    """
    Appointment at a salon.

    A booking either references a Service (duration copied at creation) or is
    a manual/legacy entry carrying its own service name and duration.
    Bookings are never deleted: cancellation is a status.
    """

    __tablename__ = 'booking'

    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    service_id = Column(BigInteger, ForeignKey('service.id'), nullable=True)
    staff_id = Column(BigInteger, ForeignKey('staff.id'), nullable=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)

    # Manual/legacy entries
    service_name_manual = Column(String(200), nullable=True)

    # Contact snapshot taken when the booking was made
    full_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)

    booking_date = Column(Date, nullable=False)
    booking_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    origin = Column(String(20), nullable=False, default=BookingOrigin.CUSTOMER.value)
    notes = Column(Text, nullable=True)

    status_changed_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    service = relationship('Service')
    staff = relationship('Staff')
    user = relationship('AppUser')

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'confirmed', 'cancelled', 'completed')", name='check_booking_status'),
        CheckConstraint("origin IN ('customer', 'staff_entered')", name='check_booking_origin'),
        CheckConstraint('duration_minutes > 0', name='check_booking_duration'),
        Index('ix_booking_tenant_staff_date', 'tenant_id', 'staff_id', 'booking_date'),
        Index('ix_booking_tenant_user', 'tenant_id', 'user_id'),
    )

    @property
    def starts_at(self):
        return datetime.combine(self.booking_date, self.booking_time)

    @property
    def ends_at(self):
        return self.starts_at + timedelta(minutes=self.duration_minutes)

    @property
    def is_terminal(self):
        return not BOOKING_TRANSITIONS.get(self.status)

    @property
    def is_blocking(self):
        """Cancelled bookings free their slot; everything else holds it."""
        return self.status in BLOCKING_STATUSES

    def can_transition_to(self, target_status):
        return target_status in BOOKING_TRANSITIONS.get(self.status, set())

    @property
    def service_name(self):
        if self.service is not None:
            return self.service.name
        return self.service_name_manual

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'service_id': self.service_id,
            'service_name': self.service_name,
            'staff_id': self.staff_id,
            'user_id': self.user_id,
            'full_name': self.full_name,
            'phone': self.phone,
            'email': self.email,
            'booking_date': self.booking_date.isoformat(),
            'booking_time': self.booking_time.strftime('%H:%M'),
            'duration_minutes': self.duration_minutes,
            'status': self.status,
            'origin': self.origin,
            'notes': self.notes,
            'status_changed_at': self.status_changed_at.isoformat() if self.status_changed_at else None,
        }

    def __repr__(self):
        return f"<Booking(id={self.id}, staff_id={self.staff_id}, at={self.booking_date} {self.booking_time}, status={self.status})>"
