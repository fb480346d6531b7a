"""
Subscription model linking a salon to its plan.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship, backref
from sqlalchemy.sql import func
from salonbook.database import Base, IdType


def _as_utc(value):
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Subscription(Base):
    """
    Salon subscription plan and billing status.

    Relationship: One-to-One with Tenant
    """
    __tablename__ = 'tenant_subscriptions'

    id = Column(IdType, primary_key=True, autoincrement=True)
    tenant_id = Column(BigInteger, ForeignKey('tenant.id', ondelete='CASCADE'), nullable=False, unique=True)
    plan_id = Column(BigInteger, ForeignKey('plans.id'), nullable=True)

    status = Column(String(20), nullable=False, default='trial')
    current_period_end = Column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    # Use backref to avoid circular import in Tenant model
    tenant = relationship('Tenant', backref=backref('subscription', uselist=False))
    plan = relationship('Plan', back_populates='subscriptions')

    # Table constraints
    __table_args__ = (
        CheckConstraint("status IN ('trial', 'active', 'past_due', 'canceled')", name='check_status'),
    )

    def __repr__(self):
        return f'<Subscription tenant_id={self.tenant_id} plan_id={self.plan_id} status={self.status}>'

    @property
    def is_trial(self):
        """Check if subscription is in trial period."""
        return self.status == 'trial'

    @property
    def is_active(self):
        """Check if subscription status is active (trial or paid)."""
        return self.status in ('trial', 'active')

    def is_in_force(self, now=None):
        """Active status and the current period has not ended."""
        if not self.is_active:
            return False
        if self.current_period_end is None:
            return True
        now = now or datetime.now(timezone.utc)
        return _as_utc(self.current_period_end) > _as_utc(now)
