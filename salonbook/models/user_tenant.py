"""UserTenant model - many-to-many relationship between users and salons with roles."""
import enum
from sqlalchemy import Column, BigInteger, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


class UserRole(enum.Enum):
    """User roles within a salon."""
    OWNER = 'OWNER'
    MANAGER = 'MANAGER'
    STAFF = 'STAFF'


class UserTenant(Base):
    """UserTenant model - links users to salons with roles."""

    __tablename__ = 'user_tenant'

    id = Column(IdType, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=False)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False)
    role = Column(String(20), nullable=False, default='STAFF')  # OWNER, MANAGER, STAFF
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    user = relationship('AppUser', back_populates='user_tenants')
    tenant = relationship('Tenant', back_populates='user_tenants')

    __table_args__ = (
        UniqueConstraint('user_id', 'tenant_id', name='uq_user_tenant'),
    )

    def __repr__(self):
        return f"<UserTenant(user_id={self.user_id}, tenant_id={self.tenant_id}, role='{self.role}')>"

    def is_owner(self):
        """Check if user is owner of salon."""
        return self.role == UserRole.OWNER.value

    def is_manager(self):
        """Check if user is manager or owner."""
        return self.role in [UserRole.OWNER.value, UserRole.MANAGER.value]
