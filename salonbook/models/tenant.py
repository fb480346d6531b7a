"""Tenant model - represents each salon using the platform."""
import enum
from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


class ApprovalStatus(str, enum.Enum):
    """Platform review state of a salon."""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class Tenant(Base):
    """Tenant model - each salon."""

    __tablename__ = 'tenant'

    id = Column(IdType, primary_key=True, autoincrement=True)
    slug = Column(String(80), nullable=False, unique=True)  # URL-safe identifier
    name = Column(String(200), nullable=False)  # Display name
    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)
    active = Column(Boolean, nullable=False, default=True)
    is_suspended = Column(Boolean, nullable=False, default=False)  # Admin can suspend tenant access
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    user_tenants = relationship('UserTenant', back_populates='tenant')

    __table_args__ = (
        CheckConstraint("approval_status IN ('pending', 'approved', 'rejected')", name='check_approval_status'),
    )

    def __repr__(self):
        return f"<Tenant(id={self.id}, slug='{self.slug}', approval='{self.approval_status}')>"

    @property
    def is_approved(self):
        """Only approved salons may take bookings or add staff."""
        return self.approval_status == ApprovalStatus.APPROVED.value
