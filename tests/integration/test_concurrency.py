"""
Concurrent writers racing through the quota and slot checks.

Each thread gets its own session on a shared file-backed SQLite database,
the way separate requests would.
"""

import threading
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from salonbook.database import Base, build_engine
from salonbook.exceptions import QuotaExceededError, SlotConflictError
from salonbook.models import Tenant, Plan, Subscription, Service, Staff, StaffService, Booking, ApprovalStatus
from salonbook.schemas import BookingInput, ServiceInput, StaffInput
from salonbook.services import booking_service, catalog_service, staff_service


@pytest.fixture
def race_db(tmp_path):
    """Engine plus a seeded salon allowing 3 staff, with one qualified staff member."""
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    session = factory()
    tenant = Tenant(slug='race-salon', name='Race Salon', approval_status=ApprovalStatus.APPROVED.value)
    plan = Plan(code='race', name='Race', price=Decimal('0'), max_staff=3, max_services=5)
    session.add_all([tenant, plan])
    session.flush()
    session.add(Subscription(tenant_id=tenant.id, plan_id=plan.id, status='active'))
    service = Service(tenant_id=tenant.id, name='Facial', price=Decimal('50'), duration_minutes=30)
    staff = Staff(tenant_id=tenant.id, display_name='Aisha')
    session.add_all([service, staff])
    session.flush()
    session.add(StaffService(staff_id=staff.id, service_id=service.id))
    session.commit()
    ids = {'tenant': tenant.id, 'service': service.id, 'staff': staff.id}
    session.close()

    yield factory, ids
    engine.dispose()


def _race(factory, count, action):
    """Run ``action(session, n)`` in ``count`` threads released together."""
    barrier = threading.Barrier(count)
    outcomes = []
    outcomes_lock = threading.Lock()

    def worker(n):
        session = factory()
        try:
            barrier.wait()
            try:
                action(session, n)
                outcome = 'ok'
            except (QuotaExceededError, SlotConflictError) as e:
                outcome = type(e).__name__
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return outcomes


class TestConcurrentWriters:

    def test_staff_ceiling_holds_under_race(self, race_db):
        """Test that 8 simultaneous adds against a 3-staff plan with 1 used leave exactly 3."""
        factory, ids = race_db

        def add_staff(session, n):
            staff_service.create_staff(session, ids['tenant'], StaffInput.from_dict({'display_name': f'Racer {n}'}))

        outcomes = _race(factory, 8, add_staff)

        assert outcomes.count('ok') == 2
        assert outcomes.count('QuotaExceededError') == 6

        session = factory()
        assert session.query(Staff).filter_by(tenant_id=ids['tenant']).count() == 3
        session.close()

    def test_one_booking_wins_a_slot(self, race_db):
        factory, ids = race_db

        def book(session, n):
            booking_service.create_booking(session, ids['tenant'], BookingInput.from_dict({
                'service_id': ids['service'],
                'staff_id': ids['staff'],
                'booking_date': '2030-01-15',
                'booking_time': '10:00',
                'origin': 'staff_entered',
                'full_name': f'Walk In {n}',
            }))

        outcomes = _race(factory, 6, book)

        assert outcomes.count('ok') == 1
        assert outcomes.count('SlotConflictError') == 5

        session = factory()
        assert session.query(Booking).filter_by(staff_id=ids['staff']).count() == 1
        session.close()

    def test_service_ceiling_holds_under_race(self, race_db):
        """Test that 8 simultaneous adds against a 5-service plan with 1 used leave exactly 5."""
        factory, ids = race_db

        def add_service(session, n):
            catalog_service.create_service(session, ids['tenant'], ServiceInput.from_dict({
                'name': f'Svc {n}', 'duration_minutes': 30
            }))

        outcomes = _race(factory, 8, add_service)

        assert outcomes.count('ok') == 4
        assert outcomes.count('QuotaExceededError') == 4

        session = factory()
        assert session.query(Service).filter_by(tenant_id=ids['tenant']).count() == 5
        session.close()

    def test_assignment_sync_is_all_or_nothing(self, race_db):
        """Test that racing replacements of one staff member's services leave exactly one writer's set."""
        factory, ids = race_db
        session = factory()
        extras = [Service(tenant_id=ids['tenant'], name=f'Extra {n}', price=Decimal('20'), duration_minutes=30)
                  for n in range(3)]
        session.add_all(extras)
        session.commit()
        extra_ids = [s.id for s in extras]
        session.close()
        candidates = [{ids['service'], extra_ids[n % 3]} for n in range(6)]

        def assign(session, n):
            staff_service.assign_services(session, ids['tenant'], ids['staff'], sorted(candidates[n]))

        outcomes = _race(factory, 6, assign)

        assert outcomes == ['ok'] * 6

        session = factory()
        assigned = {row.service_id for row in session.query(StaffService).filter_by(staff_id=ids['staff'])}
        session.close()
        assert assigned in candidates
