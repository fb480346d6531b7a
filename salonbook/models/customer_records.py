"""Salon-scoped CRM data: customer profiles and treatment records."""
from sqlalchemy import Column, BigInteger, String, Date, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


class CustomerSalonProfile(Base):
    """
    What a salon knows about one of its customers.

    At most one row per (user, tenant).
    """

    __tablename__ = 'customer_salon_profiles'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)

    full_name = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    avatar_url = Column(String(500), nullable=True)

    date_of_birth = Column(Date, nullable=True)
    skin_type = Column(String(100), nullable=True)
    skin_issues = Column(Text, nullable=True)
    allergy_records = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship('AppUser')
    tenant = relationship('Tenant')

    __table_args__ = (
        UniqueConstraint('user_id', 'tenant_id', name='uq_customer_salon_profile'),
    )

    def to_dict(self):
        return {
            'id': self.id,
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
        }

    def __repr__(self):
        return f"<CustomerSalonProfile(user_id={self.user_id}, tenant_id={self.tenant_id})>"


class TreatmentRecord(Base):
    """Clinical notes for a treatment, optionally tied to a booking."""

    __tablename__ = 'treatment_records'

    id = Column(IdType, primary_key=True, autoincrement=True)
    booking_id = Column(BigInteger, ForeignKey('booking.id'), nullable=True, unique=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)

    service_name_manual = Column(String(200), nullable=True)
    record_date = Column(Date, nullable=True)
    treatment_details = Column(Text, nullable=True)
    products_used = Column(Text, nullable=True)
    skin_reaction = Column(Text, nullable=True)
    improvement_notes = Column(Text, nullable=True)
    recommended_next_treatment = Column(Text, nullable=True)
    post_treatment_instructions = Column(Text, nullable=True)
    follow_up_reminder_date = Column(Date, nullable=True)
    marketing_notes = Column(Text, nullable=True)
    before_photo_url = Column(String(500), nullable=True)
    after_photo_url = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    booking = relationship('Booking')

    def to_dict(self):
        booking = self.booking
        return {
            'id': self.id,
            'booking_id': self.booking_id,
            'user_id': self.user_id,
            'tenant_id': self.tenant_id,
            'service_name': booking.service_name if booking else self.service_name_manual,
            'booking_date': booking.booking_date.isoformat() if booking else None,
            'record_date': self.record_date.isoformat() if self.record_date else None,
            'treatment_details': self.treatment_details,
            'products_used': self.products_used,
            'skin_reaction': self.skin_reaction,
            'improvement_notes': self.improvement_notes,
            'recommended_next_treatment': self.recommended_next_treatment,
            'post_treatment_instructions': self.post_treatment_instructions,
            'follow_up_reminder_date': self.follow_up_reminder_date.isoformat() if self.follow_up_reminder_date else None,
            'marketing_notes': self.marketing_notes,
            'before_photo_url': self.before_photo_url,
            'after_photo_url': self.after_photo_url,
        }

    def __repr__(self):
        return f"<TreatmentRecord(id={self.id}, booking_id={self.booking_id}, user_id={self.user_id})>"
