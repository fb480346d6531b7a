"""Plan usage for the dashboard."""
from flask import Blueprint, jsonify, g

from salonbook.database import get_session
from salonbook.middleware import require_login, require_tenant, require_role
from salonbook.services import quota_service

subscription_bp = Blueprint('subscription', __name__, url_prefix='/api/subscription')


@subscription_bp.route('/usage', methods=['GET'])
@require_login
@require_tenant
@require_role('STAFF')
def usage():
    """Plan limits and current counts, e.g. "Staff: 2 / 3"."""
    return jsonify({'usage': quota_service.get_usage(get_session(), g.tenant_id)})
