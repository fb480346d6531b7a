"""Staff model and the staff/service assignment edge."""
from sqlalchemy import (
    Column, BigInteger, String, Integer, Boolean, Text, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from werkzeug.security import generate_password_hash, check_password_hash
from salonbook.database import Base, IdType


class Staff(Base):
    """Staff member of a salon."""

    __tablename__ = 'staff'

    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    display_name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    specializations = Column(Text, nullable=True)  # comma separated
    role = Column(String(20), nullable=False, default='staff')
    commission_percentage = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    password_hash = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')
    assignments = relationship('StaffService', back_populates='staff', cascade='all, delete-orphan')

    __table_args__ = (
        CheckConstraint('commission_percentage >= 0 AND commission_percentage <= 100', name='check_commission_range'),
        CheckConstraint("role IN ('staff', 'manager')", name='check_staff_role'),
    )

    def set_password(self, password):
        """Set login credential for the staff portal."""
        self.password_hash = generate_password_hash(password, method='scrypt')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def service_ids(self):
        return sorted(a.service_id for a in self.assignments)

    @property
    def specialization_list(self):
        if not self.specializations:
            return []
        return [s.strip() for s in self.specializations.split(',') if s.strip()]

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'user_id': self.user_id,
            'display_name': self.display_name,
            'email': self.email,
            'phone': self.phone,
            'avatar_url': self.avatar_url,
            'specializations': self.specialization_list,
            'role': self.role,
            'commission_percentage': self.commission_percentage,
            'is_active': self.is_active,
            'has_login': self.password_hash is not None,
            'service_ids': self.service_ids,
        }

    def __repr__(self):
        return f"<Staff(id={self.id}, tenant_id={self.tenant_id}, name='{self.display_name}', active={self.is_active})>"


class StaffService(Base):
    """Which services a staff member is qualified to perform."""

    __tablename__ = 'staff_services'

    id = Column(IdType, primary_key=True, autoincrement=True)
    staff_id = Column(BigInteger, ForeignKey('staff.id', ondelete='CASCADE'), nullable=False, index=True)
    service_id = Column(BigInteger, ForeignKey('service.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    staff = relationship('Staff', back_populates='assignments')
    service = relationship('Service')

    __table_args__ = (
        UniqueConstraint('staff_id', 'service_id', name='uq_staff_service'),
    )

    def __repr__(self):
        return f"<StaffService(staff_id={self.staff_id}, service_id={self.service_id})>"
