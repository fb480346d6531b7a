"""
Unit tests for scheduling conflict checks.
"""

from datetime import date, datetime, time

import pytest

from salonbook.exceptions import ValidationError
from salonbook.services import schedule_service

DAY = date(2030, 1, 15)


class TestIntervalOverlap:

    def test_back_to_back_is_free(self):
        assert not schedule_service.intervals_overlap(
            datetime(2030, 1, 15, 10, 0), datetime(2030, 1, 15, 10, 30),
            datetime(2030, 1, 15, 10, 30), datetime(2030, 1, 15, 11, 0),
        )

    def test_partial_overlap(self):
        assert schedule_service.intervals_overlap(
            datetime(2030, 1, 15, 10, 0), datetime(2030, 1, 15, 10, 30),
            datetime(2030, 1, 15, 10, 15), datetime(2030, 1, 15, 10, 45),
        )

    def test_containment(self):
        assert schedule_service.intervals_overlap(
            datetime(2030, 1, 15, 9, 0), datetime(2030, 1, 15, 12, 0),
            datetime(2030, 1, 15, 10, 0), datetime(2030, 1, 15, 10, 30),
        )


class TestHasConflict:

    def test_around_existing_booking(self, session, tenant, make_staff, make_booking):
        """Test 10:00-10:30 against starts at 9:30, 9:45, 10:15 and 10:30."""
        staff = make_staff(tenant)
        make_booking(tenant, staff=staff, booking_time=time(10, 0), duration_minutes=30)

        def check(start):
            return schedule_service.has_conflict(session, tenant.id, staff.id, DAY, start, 30)

        assert check(time(9, 30)) is False
        assert check(time(9, 45)) is True
        assert check(time(10, 15)) is True
        assert check(time(10, 30)) is False

    def test_cancelled_bookings_do_not_block(self, session, tenant, make_staff, make_booking):
        staff = make_staff(tenant)
        make_booking(tenant, staff=staff, status='cancelled')

        assert not schedule_service.has_conflict(session, tenant.id, staff.id, DAY, time(10, 0), 30)

    def test_completed_bookings_block(self, session, tenant, make_staff, make_booking):
        staff = make_staff(tenant)
        make_booking(tenant, staff=staff, status='completed')

        assert schedule_service.has_conflict(session, tenant.id, staff.id, DAY, time(10, 0), 30)

    def test_other_staff_calendar_is_independent(self, session, tenant, make_staff, make_booking):
        busy = make_staff(tenant, 'Busy')
        free = make_staff(tenant, 'Free')
        make_booking(tenant, staff=busy)

        assert not schedule_service.has_conflict(session, tenant.id, free.id, DAY, time(10, 0), 30)

    def test_unassigned_only_against_unassigned(self, session, tenant, make_staff, make_booking):
        staff = make_staff(tenant)
        make_booking(tenant, staff=staff)

        assert not schedule_service.has_conflict(session, tenant.id, None, DAY, time(10, 0), 30)

        make_booking(tenant, staff=None)
        assert schedule_service.has_conflict(session, tenant.id, None, DAY, time(10, 0), 30)

    def test_other_salon_ignored(self, session, tenant, make_tenant, make_booking):
        make_booking(make_tenant(), staff=None)
        assert not schedule_service.has_conflict(session, tenant.id, None, DAY, time(10, 0), 30)

    def test_booking_past_midnight_blocks_next_morning(self, session, tenant, make_staff, make_booking):
        staff = make_staff(tenant)
        make_booking(tenant, staff=staff, booking_time=time(23, 30), duration_minutes=60)

        next_day = date(2030, 1, 16)
        assert schedule_service.has_conflict(session, tenant.id, staff.id, next_day, time(0, 0), 30)
        assert not schedule_service.has_conflict(session, tenant.id, staff.id, next_day, time(0, 30), 30)

    def test_exclude_self(self, session, tenant, make_staff, make_booking):
        staff = make_staff(tenant)
        booking = make_booking(tenant, staff=staff)

        assert not schedule_service.has_conflict(
            session, tenant.id, staff.id, DAY, time(10, 0), 30, exclude_booking_id=booking.id
        )

    def test_find_conflicts_returns_bookings(self, session, tenant, make_staff, make_booking):
        staff = make_staff(tenant)
        first = make_booking(tenant, staff=staff, booking_time=time(10, 0))
        second = make_booking(tenant, staff=staff, booking_time=time(10, 30))

        conflicts = schedule_service.find_conflicts(session, tenant.id, staff.id, DAY, time(10, 15), 30)

        assert [b.id for b in conflicts] == [first.id, second.id]


class TestAvailableSpecialists:

    def test_filters_by_qualification(self, session, tenant, make_staff, make_service):
        facial = make_service(tenant, 'Facial')
        make_staff(tenant, 'Nails only')
        qualified = make_staff(tenant, 'Facialist', services=[facial])

        result = schedule_service.available_specialists(session, tenant.id, service_id=facial.id)

        assert [s.id for s in result] == [qualified.id]

    def test_filters_busy_and_inactive(self, session, tenant, make_staff, make_service, make_booking):
        facial = make_service(tenant, 'Facial', duration_minutes=60)
        busy = make_staff(tenant, 'Busy', services=[facial])
        free = make_staff(tenant, 'Free', services=[facial])
        make_staff(tenant, 'Away', services=[facial], is_active=False)
        make_booking(tenant, staff=busy, booking_time=time(10, 30))

        result = schedule_service.available_specialists(
            session, tenant.id, service_id=facial.id, booking_date=DAY, booking_time=time(10, 0)
        )

        assert [s.id for s in result] == [free.id]

    @pytest.mark.parametrize('minutes', [0, -30, 1441])
    def test_rejects_out_of_range_duration(self, session, tenant, make_staff, minutes):
        make_staff(tenant, 'Aisha')

        with pytest.raises(ValidationError) as exc:
            schedule_service.available_specialists(
                session, tenant.id, booking_date=DAY, booking_time=time(10, 0), duration_minutes=minutes
            )

        assert exc.value.payload['field'] == 'duration_minutes'
