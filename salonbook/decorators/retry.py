"""
Bounded retry for transient store failures.

Only lock timeouts, deadlocks and dropped connections (surfaced by
SQLAlchemy as ``OperationalError``) are retried. Conflict and quota checks
are safe to re-run, so a retried call repeats them from scratch.
"""
import logging
from functools import wraps

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 2  # first try plus one immediate retry


def _attempts():
    if has_app_context():
        return max(1, int(current_app.config.get('STORE_RETRY_ATTEMPTS', DEFAULT_ATTEMPTS)))
    return DEFAULT_ATTEMPTS


def retry_transient(f):
    """
    Retry a service call once when the store reports a transient error.

    The wrapped function must take the SQLAlchemy session as its first
    positional argument (or as ``session=``); it is rolled back before the
    retry so the second attempt starts a fresh transaction.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        session = kwargs.get('session') if 'session' in kwargs else args[0]
        attempts = _attempts()
        for attempt in range(1, attempts + 1):
            try:
                return f(*args, **kwargs)
            except OperationalError as e:
                session.rollback()
                if attempt >= attempts:
                    logger.error(f"[STORE] {f.__name__} failed after {attempt} attempts: {e}")
                    raise
                logger.warning(f"[STORE] Transient error in {f.__name__}, retrying ({attempt}/{attempts}): {e}")
    return decorated_function
