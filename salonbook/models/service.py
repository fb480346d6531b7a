"""Service model - a treatment on the salon menu."""
from sqlalchemy import Column, BigInteger, String, Integer, Numeric, Boolean, Text, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


class Service(Base):
    """Service offered by a salon."""

    __tablename__ = 'service'

    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id'), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Integer, nullable=False)
    category = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    tenant = relationship('Tenant')

    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='check_service_duration'),
        CheckConstraint('price >= 0', name='check_service_price'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tenant_id': self.tenant_id,
            'name': self.name,
            'description': self.description,
            'price': float(self.price) if self.price is not None else None,
            'duration_minutes': self.duration_minutes,
            'category': self.category,
            'is_active': self.is_active,
        }

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', duration={self.duration_minutes})>"
