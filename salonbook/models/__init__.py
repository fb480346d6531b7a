"""Models package - exports all SQLAlchemy models."""
# SaaS Core Models
from salonbook.models.app_user import AppUser
from salonbook.models.tenant import Tenant, ApprovalStatus
from salonbook.models.user_tenant import UserTenant, UserRole
from salonbook.models.plan import Plan
from salonbook.models.subscription import Subscription

# Salon Models
from salonbook.models.service import Service
from salonbook.models.staff import Staff, StaffService
from salonbook.models.booking import (
    Booking, BookingStatus, BookingOrigin, BOOKING_TRANSITIONS, BLOCKING_STATUSES
)
from salonbook.models.customer_records import CustomerSalonProfile, TreatmentRecord

__all__ = [
    # SaaS Core
    'Tenant', 'ApprovalStatus', 'AppUser', 'UserTenant', 'UserRole',
    'Plan', 'Subscription',
    # Salon
    'Service', 'Staff', 'StaffService',
    'Booking', 'BookingStatus', 'BookingOrigin', 'BOOKING_TRANSITIONS', 'BLOCKING_STATUSES',
    'CustomerSalonProfile', 'TreatmentRecord',
]
