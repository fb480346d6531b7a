"""Session login for the dashboard and the booking site."""
from flask import Blueprint, jsonify, session, g, current_app
from flask_wtf.csrf import generate_csrf

from salonbook.blueprints import json_body
from salonbook.database import get_session
from salonbook.exceptions import NotFoundError, UnauthorizedError, ValidationError
from salonbook.middleware import require_login
from salonbook.models import AppUser, Tenant, UserTenant

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    payload = json_body()
    email = (payload.get('email') or '').strip().lower()
    password = payload.get('password') or ''
    if not email or not password:
        raise ValidationError("email and password are required", field='email')

    db_session = get_session()
    user = db_session.query(AppUser).filter_by(email=email, active=True).first()
    if not user or not user.check_password(password):
        current_app.logger.info(f"[AUTH] Failed login for {email}")
        raise UnauthorizedError("Invalid email or password")

    session.clear()
    session['user_id'] = user.id

    # Members of exactly one salon land straight in it
    memberships = db_session.query(UserTenant).filter_by(user_id=user.id, active=True).all()
    if len(memberships) == 1:
        session['tenant_id'] = memberships[0].tenant_id

    return jsonify({
        'status': 'success',
        'user_id': user.id,
        'tenant_id': session.get('tenant_id'),
        'salons': [m.tenant_id for m in memberships],
    })


@auth_bp.route('/select-salon', methods=['POST'])
@require_login
def select_salon():
    """Pick the salon to work in or book at."""
    payload = json_body()
    slug = (payload.get('slug') or '').strip()
    tenant_id = payload.get('tenant_id')

    db_session = get_session()
    query = db_session.query(Tenant).filter_by(active=True, is_suspended=False)
    tenant = query.filter_by(slug=slug).first() if slug else query.filter_by(id=tenant_id).first()
    if not tenant:
        raise NotFoundError("Salon not found")

    session['tenant_id'] = tenant.id
    return jsonify({'status': 'success', 'tenant_id': tenant.id, 'user_id': g.user_id})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'status': 'success'})


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token for the X-CSRFToken header on state-changing requests."""
    return jsonify({'csrf_token': generate_csrf()})
