"""
Plan model for subscription ceilings.

A plan is an immutable set of resource ceilings. Salons on the same plan
share the same limits; the current counts are never stored here, they are
derived from live rows when a decision is taken.
"""
from sqlalchemy import Column, String, Numeric, Boolean, Integer, Text, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


class Plan(Base):
    """
    Subscription plan definition.

    Relationship: One-to-Many with Subscription
    """
    __tablename__ = 'plans'

    id = Column(IdType, primary_key=True, autoincrement=True)

    # Plan Information
    name = Column(String(100), nullable=False)
    code = Column(String(50), nullable=False, unique=True)
    description = Column(Text)

    # Pricing
    price = Column(Numeric(10, 2), nullable=False, default=0)
    currency = Column(String(3), default='MYR')

    # Ceilings
    max_staff = Column(Integer, nullable=False, default=0)
    max_services = Column(Integer, nullable=False, default=0)

    # Status
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # Relationships
    subscriptions = relationship('Subscription', back_populates='plan')

    __table_args__ = (
        CheckConstraint('max_staff >= 0', name='check_max_staff'),
        CheckConstraint('max_services >= 0', name='check_max_services'),
    )

    def __repr__(self):
        return f'<Plan id={self.id} code={self.code} staff={self.max_staff} services={self.max_services}>'

    def limit_for(self, kind):
        """
        Ceiling for a resource kind.

        Args:
            kind (str): 'staff' or 'service'

        Returns:
            int: Maximum number of rows allowed
        """
        if kind == 'staff':
            return self.max_staff or 0
        if kind == 'service':
            return self.max_services or 0
        raise ValueError(f"Unknown resource kind: {kind}")
