"""Staff directory endpoints."""
from flask import Blueprint, jsonify, request, g

from salonbook.blueprints import json_body
from salonbook.database import get_session
from salonbook.exceptions import ValidationError
from salonbook.middleware import require_login, require_tenant, require_role
from salonbook.schemas import StaffInput, parse_date, parse_int, parse_time
from salonbook.services import schedule_service, staff_service

staff_bp = Blueprint('staff', __name__, url_prefix='/api/staff')


@staff_bp.route('', methods=['GET'])
@require_login
@require_tenant
@require_role('STAFF')
def list_staff():
    include_inactive = request.args.get('include_inactive', 'false').lower() == 'true'
    staff = staff_service.list_for_salon_cached(get_session(), g.tenant_id, include_inactive)
    return jsonify({'staff': staff})


@staff_bp.route('', methods=['POST'])
@require_login
@require_tenant
@require_role('MANAGER')
def create_staff():
    data = StaffInput.from_dict(json_body())
    staff = staff_service.create_staff(get_session(), g.tenant_id, data)
    return jsonify({'status': 'success', 'staff': staff.to_dict()}), 201


@staff_bp.route('/available-specialists', methods=['GET'])
@require_login
@require_tenant
def available_specialists():
    """Who can take a given service at a given time. Open to customers."""
    args = request.args
    booking_date = parse_date(args['date'], 'date') if args.get('date') else None
    booking_time = parse_time(args['time'], 'time') if args.get('time') else None

    staff = schedule_service.available_specialists(
        get_session(), g.tenant_id,
        service_id=parse_int(args, 'service_id'),
        booking_date=booking_date,
        booking_time=booking_time,
        duration_minutes=parse_int(args, 'duration_minutes'),
    )
    return jsonify({'staff': [
        {'id': s.id, 'display_name': s.display_name, 'avatar_url': s.avatar_url,
         'specializations': s.specialization_list}
        for s in staff
    ]})


@staff_bp.route('/<int:staff_id>', methods=['GET'])
@require_login
@require_tenant
@require_role('STAFF')
def get_staff(staff_id):
    staff = staff_service.get_staff(get_session(), g.tenant_id, staff_id)
    return jsonify({'staff': staff.to_dict()})


@staff_bp.route('/<int:staff_id>', methods=['PATCH'])
@require_login
@require_tenant
@require_role('MANAGER')
def update_staff(staff_id):
    data = StaffInput.from_dict(json_body(), partial=True)
    staff = staff_service.update_staff(get_session(), g.tenant_id, staff_id, data)
    return jsonify({'status': 'success', 'staff': staff.to_dict()})


@staff_bp.route('/<int:staff_id>/services', methods=['POST'])
@require_login
@require_tenant
@require_role('MANAGER')
def assign_services(staff_id):
    """Replace the services this staff member performs."""
    payload = json_body()
    if 'service_ids' not in payload:
        raise ValidationError("service_ids is required", field='service_ids')
    data = StaffInput.from_dict(payload, partial=True)

    service_ids = staff_service.assign_services(get_session(), g.tenant_id, staff_id, data.service_ids or [])
    return jsonify({'status': 'success', 'service_ids': service_ids})


@staff_bp.route('/<int:staff_id>/profile-stats', methods=['GET'])
@require_login
@require_tenant
@require_role('STAFF')
def profile_stats(staff_id):
    """Completed work and commission earnings for one month."""
    stats = staff_service.profile_stats(
        get_session(), g.tenant_id, staff_id,
        month=parse_int(request.args, 'month'),
        year=parse_int(request.args, 'year'),
    )
    recent = stats.pop('recent_customers')
    return jsonify({'stats': stats, 'recent_customers': recent})
