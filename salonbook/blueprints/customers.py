"""Customer view and salon CRM endpoints."""
from flask import Blueprint, jsonify, g

from salonbook.blueprints import json_body
from salonbook.database import get_session
from salonbook.exceptions import UnauthorizedError
from salonbook.middleware import is_customer, require_login, require_tenant, require_role
from salonbook.schemas import ProfileInput, TreatmentInput
from salonbook.services import customer_records_service, customer_service

customers_bp = Blueprint('customers', __name__, url_prefix='/api')


def _ensure_self_or_staff(user_id):
    """Customers may read their own records; staff may read any in the salon."""
    if is_customer() and user_id != g.user_id:
        raise UnauthorizedError("You can only view your own records")


@customers_bp.route('/customers/<int:user_id>', methods=['GET'])
@require_login
@require_tenant
@require_role('STAFF')
def customer_detail(user_id):
    """Merged contact card for the salon's customer list."""
    view = customer_service.resolve(get_session(), g.tenant_id, user_id)
    return jsonify({'customer': view.to_dict()})


@customers_bp.route('/customer_records/<int:user_id>/profile', methods=['GET'])
@require_login
@require_tenant
def get_profile(user_id):
    _ensure_self_or_staff(user_id)
    profile = customer_records_service.get_profile(get_session(), g.tenant_id, user_id)
    return jsonify({'profile': profile.to_dict() if profile else None})


@customers_bp.route('/customer_records/<int:user_id>/profile', methods=['PUT'])
@require_login
@require_tenant
@require_role('STAFF')
def save_profile(user_id):
    data = ProfileInput.from_dict(json_body())
    profile = customer_records_service.upsert_profile(get_session(), g.tenant_id, user_id, data)
    return jsonify({'status': 'success', 'profile': profile.to_dict()})


@customers_bp.route('/customer_records/treatments', methods=['POST'])
@require_login
@require_tenant
@require_role('STAFF')
def save_treatment():
    data = TreatmentInput.from_dict(json_body())
    record = customer_records_service.upsert_treatment_record(get_session(), g.tenant_id, data)
    return jsonify({'status': 'success', 'record': record.to_dict()})


@customers_bp.route('/customer_records/treatments/<int:booking_id>', methods=['GET'])
@require_login
@require_tenant
def get_treatment(booking_id):
    record = customer_records_service.get_treatment_for_booking(get_session(), g.tenant_id, booking_id)
    if record is not None:
        _ensure_self_or_staff(record.user_id)
    return jsonify({'record': record.to_dict() if record else None})


@customers_bp.route('/customer_records/<int:user_id>/treatments', methods=['GET'])
@require_login
@require_tenant
def list_treatments(user_id):
    _ensure_self_or_staff(user_id)
    records = customer_records_service.list_treatments(get_session(), user_id, tenant_id=g.tenant_id)
    return jsonify({'treatments': [r.to_dict() for r in records]})
