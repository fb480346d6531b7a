"""
Integration tests for the JSON API.
"""

import pytest
from datetime import date, time


@pytest.fixture
def salon(tenant, make_service, make_staff, make_user):
    """Approved salon with one service, one qualified staff member, an owner and a customer."""
    facial = make_service(tenant, 'Facial', duration_minutes=30)
    staff = make_staff(tenant, 'Aisha', services=[facial])
    owner = make_user(full_name='Owner', tenant=tenant, role='OWNER')
    customer = make_user(full_name='Nur Aina', phone='0123')
    return {
        'tenant': tenant, 'facial': facial, 'staff': staff,
        'owner': owner, 'customer': customer,
    }


def _slot(salon, time='10:00'):
    return {
        'service_id': salon['facial'].id,
        'staff_id': salon['staff'].id,
        'booking_date': '2030-01-15',
        'booking_time': time,
    }


class TestBookingFlow:

    def test_customer_books_and_owner_confirms(self, client, login, salon):
        """Test the full pending -> confirmed -> completed path over HTTP."""
        login(salon['customer'], salon['tenant'])
        resp = client.post('/api/bookings', json=_slot(salon))

        assert resp.status_code == 201
        booking = resp.get_json()['booking']
        assert booking['status'] == 'pending'
        assert booking['user_id'] == salon['customer'].id
        assert booking['full_name'] == 'Nur Aina'
        assert booking['origin'] == 'customer'

        login(salon['owner'], salon['tenant'])
        resp = client.patch(f"/api/bookings/{booking['id']}", json={'status': 'confirmed'})
        assert resp.status_code == 200
        assert resp.get_json()['booking']['status'] == 'confirmed'

        resp = client.patch(f"/api/bookings/{booking['id']}", json={'status': 'completed'})
        assert resp.get_json()['booking']['status'] == 'completed'

    def test_customer_cannot_book_for_someone_else(self, client, login, salon, make_user):
        other = make_user()
        login(salon['customer'], salon['tenant'])

        payload = dict(_slot(salon), user_id=other.id, origin='staff_entered')
        resp = client.post('/api/bookings', json=payload)

        body = resp.get_json()['booking']
        assert body['user_id'] == salon['customer'].id
        assert body['status'] == 'pending'

    def test_staff_entry_is_confirmed(self, client, login, salon):
        login(salon['owner'], salon['tenant'])
        payload = dict(_slot(salon), full_name='Walk In')

        resp = client.post('/api/bookings', json=payload)

        assert resp.status_code == 201
        assert resp.get_json()['booking']['status'] == 'confirmed'

    def test_overlap_returns_409(self, client, login, salon):
        login(salon['customer'], salon['tenant'])
        first = client.post('/api/bookings', json=_slot(salon)).get_json()['booking']

        resp = client.post('/api/bookings', json=_slot(salon, '10:15'))

        assert resp.status_code == 409
        body = resp.get_json()
        assert body['error'] == 'SlotConflict'
        assert body['conflicting_booking_ids'] == [first['id']]

        assert client.post('/api/bookings', json=_slot(salon, '10:30')).status_code == 201

    def test_customer_can_only_cancel(self, client, login, salon):
        login(salon['customer'], salon['tenant'])
        booking = client.post('/api/bookings', json=_slot(salon)).get_json()['booking']

        resp = client.patch(f"/api/bookings/{booking['id']}", json={'status': 'confirmed'})
        assert resp.status_code == 403

        resp = client.patch(f"/api/bookings/{booking['id']}", json={'booking_time': '11:00', 'booking_date': '2030-01-15'})
        assert resp.status_code == 403

        resp = client.patch(f"/api/bookings/{booking['id']}", json={'status': 'cancelled'})
        assert resp.status_code == 200
        assert resp.get_json()['booking']['status'] == 'cancelled'

    def test_invalid_transition_returns_409(self, client, login, salon, make_booking):
        booking = make_booking(salon['tenant'], staff=salon['staff'], service=salon['facial'], status='cancelled')
        login(salon['owner'], salon['tenant'])

        resp = client.patch(f'/api/bookings/{booking.id}', json={'status': 'confirmed'})

        assert resp.status_code == 409
        assert resp.get_json()['error'] == 'InvalidTransition'

    def test_reschedule_and_reassign(self, client, login, salon, make_booking):
        booking = make_booking(salon['tenant'], service=salon['facial'])
        login(salon['owner'], salon['tenant'])

        resp = client.patch(f'/api/bookings/{booking.id}', json={'staff_id': salon['staff'].id})
        assert resp.status_code == 200
        assert resp.get_json()['booking']['staff_id'] == salon['staff'].id

        resp = client.patch(f'/api/bookings/{booking.id}', json={'booking_date': '2030-01-16', 'booking_time': '09:00'})
        assert resp.status_code == 200
        assert resp.get_json()['booking']['booking_time'] == '09:00'

    def test_validation_error(self, client, login, salon):
        login(salon['customer'], salon['tenant'])
        resp = client.post('/api/bookings', json={'service_id': salon['facial'].id, 'booking_time': '10:00'})

        assert resp.status_code == 400
        body = resp.get_json()
        assert body['error'] == 'Validation'
        assert body['field'] == 'booking_date'

    def test_customer_cannot_block_a_day_with_manual_entry(self, client, login, salon):
        login(salon['customer'], salon['tenant'])
        resp = client.post('/api/bookings', json={
            'staff_id': salon['staff'].id, 'service_name_manual': 'x', 'duration_minutes': 1440,
            'booking_date': '2030-01-15', 'booking_time': '00:00', 'origin': 'staff_entered',
        })

        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'service_id'
        assert client.post('/api/bookings', json=_slot(salon, '15:00')).status_code == 201

    def test_customer_sees_only_own_bookings(self, client, login, salon, make_user, make_booking):
        make_booking(salon['tenant'], user=make_user())
        mine = make_booking(salon['tenant'], user=salon['customer'], booking_time=time(12, 0))
        login(salon['customer'], salon['tenant'])

        resp = client.get('/api/bookings?user_id=999')

        assert [b['id'] for b in resp.get_json()['bookings']] == [mine.id]

    def test_requires_login(self, client):
        resp = client.get('/api/bookings')
        assert resp.status_code == 403
        assert resp.get_json()['error'] == 'Unauthorized'

    def test_pending_salon_cannot_take_bookings(self, client, login, make_tenant, make_service, make_user):
        salon = make_tenant(approved=False)
        facial = make_service(salon)
        owner = make_user(tenant=salon, role='OWNER')
        login(owner, salon)

        resp = client.post('/api/bookings', json={
            'service_id': facial.id, 'booking_date': '2030-01-15', 'booking_time': '10:00', 'full_name': 'Walk In'
        })

        assert resp.status_code == 403
        assert resp.get_json()['error'] == 'TenantNotApproved'


class TestStaffRoutes:

    def test_quota_returns_402(self, client, login, salon, make_staff):
        make_staff(salon['tenant'], 'Two')
        make_staff(salon['tenant'], 'Three')
        login(salon['owner'], salon['tenant'])

        resp = client.post('/api/staff', json={'display_name': 'Four'})

        assert resp.status_code == 402
        body = resp.get_json()
        assert body['error'] == 'QuotaExceeded'
        assert body['limit'] == 3
        assert body['current'] == 3

    def test_create_staff(self, client, login, salon):
        login(salon['owner'], salon['tenant'])
        resp = client.post('/api/staff', json={'display_name': 'Mei', 'service_ids': [salon['facial'].id]})

        assert resp.status_code == 201
        assert resp.get_json()['staff']['service_ids'] == [salon['facial'].id]

    def test_staff_role_cannot_create_staff(self, client, login, salon, make_user):
        member = make_user(tenant=salon['tenant'], role='STAFF')
        login(member, salon['tenant'])

        assert client.post('/api/staff', json={'display_name': 'Mei'}).status_code == 403
        assert client.get('/api/staff').status_code == 200

    def test_assign_services(self, client, login, salon, make_service):
        peel = make_service(salon['tenant'], 'Peel')
        login(salon['owner'], salon['tenant'])

        resp = client.post(f"/api/staff/{salon['staff'].id}/services", json={'service_ids': [peel.id]})

        assert resp.status_code == 200
        assert resp.get_json()['service_ids'] == [peel.id]

        resp = client.post(f"/api/staff/{salon['staff'].id}/services", json={'service_ids': [peel.id, 5555]})
        assert resp.status_code == 404
        assert resp.get_json()['error'] == 'UnknownService'

    def test_available_specialists_open_to_customers(self, client, login, salon):
        login(salon['customer'], salon['tenant'])
        resp = client.get(
            f"/api/staff/available-specialists?service_id={salon['facial'].id}&date=2030-01-15&time=10:00"
        )

        assert resp.status_code == 200
        assert [s['id'] for s in resp.get_json()['staff']] == [salon['staff'].id]

    def test_available_specialists_rejects_empty_duration(self, client, login, salon, make_booking):
        make_booking(salon['tenant'], staff=salon['staff'], service=salon['facial'])
        login(salon['customer'], salon['tenant'])

        resp = client.get('/api/staff/available-specialists?date=2030-01-15&time=10:00&duration_minutes=0')

        assert resp.status_code == 400
        assert resp.get_json()['field'] == 'duration_minutes'

    def test_profile_stats(self, client, login, salon, session, make_booking):
        salon['staff'].commission_percentage = 10
        session.commit()
        make_booking(salon['tenant'], staff=salon['staff'], service=salon['facial'],
                     status='completed', booking_date=date(2030, 1, 15))
        login(salon['owner'], salon['tenant'])

        resp = client.get(f"/api/staff/{salon['staff'].id}/profile-stats?month=1&year=2030")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body['stats']['completed_bookings'] == 1
        assert body['stats']['earnings'] == '5.00'
        assert len(body['recent_customers']) == 1

    def test_usage(self, client, login, salon):
        login(salon['owner'], salon['tenant'])
        resp = client.get('/api/subscription/usage')

        assert resp.status_code == 200
        usage = resp.get_json()['usage']
        assert usage['current_staff_count'] == 1
        assert usage['max_staff'] == 3


class TestCustomerRoutes:

    def test_customer_card_for_staff_only(self, client, login, salon, make_booking):
        make_booking(salon['tenant'], user=salon['customer'])
        login(salon['customer'], salon['tenant'])
        assert client.get(f"/api/customers/{salon['customer'].id}").status_code == 403

        login(salon['owner'], salon['tenant'])
        resp = client.get(f"/api/customers/{salon['customer'].id}")
        assert resp.status_code == 200
        assert resp.get_json()['customer']['full_name'] == 'Nur Aina'

    def test_profile_written_by_staff_read_by_customer(self, client, login, salon):
        login(salon['owner'], salon['tenant'])
        resp = client.put(f"/api/customer_records/{salon['customer'].id}/profile", json={'skin_type': 'Oily'})
        assert resp.status_code == 200

        login(salon['customer'], salon['tenant'])
        resp = client.get(f"/api/customer_records/{salon['customer'].id}/profile")
        assert resp.get_json()['profile']['skin_type'] == 'Oily'

        resp = client.put(f"/api/customer_records/{salon['customer'].id}/profile", json={'skin_type': 'Dry'})
        assert resp.status_code == 403


class TestOperations:

    def test_metrics_endpoint(self, client, login, salon):
        login(salon['customer'], salon['tenant'])
        client.post('/api/bookings', json=_slot(salon))

        resp = client.get('/metrics')

        assert resp.status_code == 200
        assert b'bookings_created_total' in resp.data

    def test_login_flow(self, client, salon):
        resp = client.post('/api/auth/login', json={'email': salon['owner'].email, 'password': 'password123'})

        assert resp.status_code == 200
        assert resp.get_json()['tenant_id'] == salon['tenant'].id
        assert client.get('/api/staff').status_code == 200

    def test_login_rejects_bad_password(self, client, salon):
        resp = client.post('/api/auth/login', json={'email': salon['owner'].email, 'password': 'nope'})
        assert resp.status_code == 403
