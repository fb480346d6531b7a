import pytest
import uuid
from datetime import date, time
from decimal import Decimal

from salonbook import create_app
from salonbook import database
from salonbook.database import Base, create_all, get_session
from salonbook.models import (
    Tenant, AppUser, UserTenant, Plan, Subscription, Service, Staff, StaffService,
    Booking, ApprovalStatus
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestingConfig')
    with app.app_context():
        create_all()
    return app


@pytest.fixture(scope='function')
def session(app):
    """
    Database session inside an app context.

    Requests made by the test client reuse this context, so they share the
    session with the test. Tables are rebuilt after every test.
    """
    with app.app_context():
        db = get_session()
        yield db
        db.rollback()
        db.remove()
        Base.metadata.drop_all(bind=database.engine)
        create_all()


@pytest.fixture(scope='function')
def client(app, session):
    """Create test client."""
    return app.test_client()


def _suffix():
    return str(uuid.uuid4())[:8]


@pytest.fixture
def make_tenant(session):
    def _make(approved=True, name=None):
        suffix = _suffix()
        tenant = Tenant(
            slug=f'salon-{suffix}',
            name=name or f'Salon {suffix}',
            approval_status=ApprovalStatus.APPROVED.value if approved else ApprovalStatus.PENDING.value,
            active=True
        )
        session.add(tenant)
        session.commit()
        return tenant
    return _make


@pytest.fixture
def make_plan(session):
    def _make(max_staff=3, max_services=5, code=None):
        plan = Plan(
            code=code or f'plan-{_suffix()}',
            name='Test Plan',
            price=Decimal('10.00'),
            max_staff=max_staff,
            max_services=max_services
        )
        session.add(plan)
        session.commit()
        return plan
    return _make


@pytest.fixture
def subscribe(session):
    def _subscribe(tenant, plan, status='active', current_period_end=None):
        subscription = Subscription(
            tenant_id=tenant.id,
            plan_id=plan.id,
            status=status,
            current_period_end=current_period_end
        )
        session.add(subscription)
        session.commit()
        return subscription
    return _subscribe


@pytest.fixture
def make_user(session):
    def _make(full_name=None, phone=None, email=None, tenant=None, role=None):
        user = AppUser(
            email=email or f'user-{_suffix()}@test.com',
            full_name=full_name,
            phone=phone,
            active=True
        )
        user.set_password('password123')
        session.add(user)
        session.flush()
        if tenant is not None and role is not None:
            session.add(UserTenant(user_id=user.id, tenant_id=tenant.id, role=role, active=True))
        session.commit()
        return user
    return _make


@pytest.fixture
def make_service(session):
    def _make(tenant, name='Facial', duration_minutes=30, is_active=True):
        service = Service(
            tenant_id=tenant.id,
            name=name,
            price=Decimal('50.00'),
            duration_minutes=duration_minutes,
            is_active=is_active
        )
        session.add(service)
        session.commit()
        return service
    return _make


@pytest.fixture
def make_staff(session):
    def _make(tenant, display_name='Aisha', services=(), is_active=True):
        staff = Staff(tenant_id=tenant.id, display_name=display_name, is_active=is_active)
        session.add(staff)
        session.flush()
        for service in services:
            session.add(StaffService(staff_id=staff.id, service_id=service.id))
        session.commit()
        return staff
    return _make


@pytest.fixture
def make_booking(session):
    """Insert a booking row directly, bypassing the lifecycle checks."""
    def _make(tenant, staff=None, service=None, user=None, booking_date=date(2030, 1, 15),
              booking_time=time(10, 0), duration_minutes=30, status='pending', full_name='Walk In'):
        booking = Booking(
            tenant_id=tenant.id,
            staff_id=staff.id if staff else None,
            service_id=service.id if service else None,
            service_name_manual=None if service else 'Manual service',
            user_id=user.id if user else None,
            full_name=full_name,
            booking_date=booking_date,
            booking_time=booking_time,
            duration_minutes=duration_minutes,
            status=status,
            origin='customer'
        )
        session.add(booking)
        session.commit()
        return booking
    return _make


@pytest.fixture
def tenant(make_tenant, make_plan, subscribe):
    """Approved salon on a plan with room for 3 staff and 5 services."""
    salon = make_tenant()
    subscribe(salon, make_plan(max_staff=3, max_services=5))
    return salon


@pytest.fixture
def login(client):
    """Put a user (and optionally a salon) in the client's session."""
    def _login(user, tenant=None):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
            if tenant is not None:
                sess['tenant_id'] = tenant.id
        return client
    return _login
