"""Middleware for authentication and salon context."""
from functools import wraps

from flask import session, g, current_app

from salonbook.database import get_session
from salonbook.exceptions import UnauthorizedError
from salonbook.models import AppUser, Tenant, UserTenant

CUSTOMER_ROLE = 'CUSTOMER'

# Roles hierarchy: OWNER > MANAGER > STAFF > CUSTOMER
ROLE_HIERARCHY = {'OWNER': 3, 'MANAGER': 2, 'STAFF': 1, CUSTOMER_ROLE: 0}


def load_user_and_tenant():
    """
    Load current user and salon into g (Flask's per-request global).

    Sets g.user, g.user_id, g.tenant_id and g.user_role. Members of the
    salon get their membership role; any other signed-in account browsing
    the salon is a customer.
    """
    g.user = None
    g.user_id = None
    g.tenant_id = None
    g.user_role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    db_session = get_session()
    user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
    if not user:
        session.pop('user_id', None)
        return

    g.user = user
    g.user_id = user.id

    tenant_id = session.get('tenant_id')
    if not tenant_id:
        return

    tenant = db_session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant or tenant.is_suspended or not tenant.active:
        current_app.logger.info(f"[AUTH] Salon {tenant_id} unavailable for user {user.id}")
        session.pop('tenant_id', None)
        return

    user_tenant = db_session.query(UserTenant).filter_by(
        user_id=user.id,
        tenant_id=tenant_id,
        active=True
    ).first()

    g.tenant_id = tenant.id
    g.user_role = user_tenant.role if user_tenant else CUSTOMER_ROLE


def is_customer():
    return g.get('user_role') == CUSTOMER_ROLE


def require_login(f):
    """Decorator: Require user to be logged in."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError('You must be signed in')
        return f(*args, **kwargs)
    return decorated_function


def require_tenant(f):
    """
    Decorator: Require a salon to be selected.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('tenant_id') is None:
            raise UnauthorizedError('Select a salon first')
        return f(*args, **kwargs)
    return decorated_function


def require_role(min_role='STAFF'):
    """
    Decorator: Require minimum role for the salon.

    Must be used AFTER require_login and require_tenant.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_level = ROLE_HIERARCHY.get(g.get('user_role'), -1)
            required_level = ROLE_HIERARCHY.get(min_role, 1)
            if user_level < required_level:
                raise UnauthorizedError(f'{min_role} role or higher required')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
