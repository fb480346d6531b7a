"""
Unit tests for plan ceilings.
"""

import pytest
from datetime import datetime, timedelta, timezone

from salonbook.exceptions import QuotaExceededError
from salonbook.schemas import ServiceInput, StaffInput
from salonbook.services import catalog_service, quota_service, staff_service
from salonbook.services.quota_service import ResourceKind


class TestCounting:

    def test_inactive_rows_count(self, session, tenant, make_staff, make_service):
        """Test that deactivated staff and hidden services still use up the plan."""
        make_staff(tenant, 'A')
        make_staff(tenant, 'B', is_active=False)
        make_service(tenant, is_active=False)

        assert quota_service.count_current(session, tenant.id, ResourceKind.STAFF) == 2
        assert quota_service.count_current(session, tenant.id, 'service') == 1

    def test_counts_are_per_salon(self, session, tenant, make_tenant, make_staff):
        other = make_tenant()
        make_staff(other, 'Elsewhere')

        assert quota_service.count_current(session, tenant.id, ResourceKind.STAFF) == 0

    def test_unknown_kind(self, session, tenant):
        with pytest.raises(ValueError):
            quota_service.count_current(session, tenant.id, 'rooms')


class TestCeilings:

    def test_can_add_below_limit(self, session, tenant, make_staff):
        make_staff(tenant, 'A')
        make_staff(tenant, 'B')
        assert quota_service.can_add(session, tenant.id, ResourceKind.STAFF) is True

    def test_cannot_add_at_limit(self, session, tenant, make_staff):
        for name in ('A', 'B', 'C'):
            make_staff(tenant, name)
        assert quota_service.can_add(session, tenant.id, ResourceKind.STAFF) is False

    def test_no_subscription_means_zero(self, session, make_tenant):
        """Test that a salon without a plan gets no allowance at all."""
        salon = make_tenant()
        assert quota_service.get_limit(session, salon.id, ResourceKind.STAFF) == 0
        assert quota_service.can_add(session, salon.id, ResourceKind.SERVICE) is False

    def test_expired_subscription_means_zero(self, session, make_tenant, make_plan, subscribe):
        salon = make_tenant()
        ended = datetime.now(timezone.utc) - timedelta(days=2)
        subscribe(salon, make_plan(max_staff=10), current_period_end=ended)
        assert quota_service.get_limit(session, salon.id, ResourceKind.STAFF) == 0

    def test_canceled_subscription_means_zero(self, session, make_tenant, make_plan, subscribe):
        salon = make_tenant()
        subscribe(salon, make_plan(max_staff=10), status='canceled')
        assert quota_service.get_active_plan(session, salon.id) is None

    def test_ensure_can_add_raises(self, session, tenant, make_service):
        for i in range(5):
            make_service(tenant, name=f'Service {i}')

        with pytest.raises(QuotaExceededError) as exc:
            quota_service.ensure_can_add(session, tenant.id, ResourceKind.SERVICE)
        assert exc.value.status_code == 402
        assert exc.value.payload == {'resource_kind': 'service', 'limit': 5, 'current': 5}


class TestGatedCreates:

    def test_deactivating_does_not_free_a_slot(self, session, make_tenant, make_plan, subscribe):
        """Test max_staff=2: third create fails, and still fails after deactivating one."""
        salon = make_tenant()
        subscribe(salon, make_plan(max_staff=2))
        first = staff_service.create_staff(session, salon.id, StaffInput.from_dict({'display_name': 'One'}))
        staff_service.create_staff(session, salon.id, StaffInput.from_dict({'display_name': 'Two'}))

        with pytest.raises(QuotaExceededError):
            staff_service.create_staff(session, salon.id, StaffInput.from_dict({'display_name': 'Three'}))

        staff_service.update_staff(session, salon.id, first.id, StaffInput.from_dict({'is_active': False}, partial=True))

        with pytest.raises(QuotaExceededError):
            staff_service.create_staff(session, salon.id, StaffInput.from_dict({'display_name': 'Four'}))
        assert quota_service.count_current(session, salon.id, ResourceKind.STAFF) == 2

    def test_service_create_is_gated(self, session, make_tenant, make_plan, subscribe):
        salon = make_tenant()
        subscribe(salon, make_plan(max_services=1))
        payload = {'name': 'Facial', 'duration_minutes': 30}
        catalog_service.create_service(session, salon.id, ServiceInput.from_dict(payload))

        with pytest.raises(QuotaExceededError):
            catalog_service.create_service(session, salon.id, ServiceInput.from_dict(payload))


class TestUsage:

    def test_usage_summary(self, session, tenant, make_staff, make_service):
        make_staff(tenant, 'A')
        make_service(tenant)

        usage = quota_service.get_usage(session, tenant.id)

        assert usage['max_staff'] == 3
        assert usage['current_staff_count'] == 1
        assert usage['can_add_staff'] is True
        assert usage['max_services'] == 5
        assert usage['current_service_count'] == 1
        assert usage['plan'] is not None

    def test_usage_without_plan(self, session, make_tenant):
        usage = quota_service.get_usage(session, make_tenant().id)
        assert usage['plan'] is None
        assert usage['can_add_staff'] is False
