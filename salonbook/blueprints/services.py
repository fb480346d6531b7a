"""Service catalog endpoints."""
from flask import Blueprint, jsonify, request, g

from salonbook.blueprints import json_body
from salonbook.database import get_session
from salonbook.middleware import is_customer, require_login, require_tenant, require_role
from salonbook.schemas import ServiceInput
from salonbook.services import catalog_service

services_bp = Blueprint('services', __name__, url_prefix='/api/services')


@services_bp.route('', methods=['GET'])
@require_login
@require_tenant
def list_services():
    # Customers only ever see the live menu
    include_inactive = (
        not is_customer()
        and request.args.get('include_inactive', 'false').lower() == 'true'
    )
    services = catalog_service.list_services(get_session(), g.tenant_id, include_inactive)
    return jsonify({'services': [s.to_dict() for s in services]})


@services_bp.route('', methods=['POST'])
@require_login
@require_tenant
@require_role('MANAGER')
def create_service():
    data = ServiceInput.from_dict(json_body())
    service = catalog_service.create_service(get_session(), g.tenant_id, data)
    return jsonify({'status': 'success', 'service': service.to_dict()}), 201


@services_bp.route('/<int:service_id>', methods=['PATCH'])
@require_login
@require_tenant
@require_role('MANAGER')
def update_service(service_id):
    data = ServiceInput.from_dict(json_body(), partial=True)
    service = catalog_service.update_service(get_session(), g.tenant_id, service_id, data)
    return jsonify({'status': 'success', 'service': service.to_dict()})
