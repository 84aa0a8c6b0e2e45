"""Caller identity helpers.

Sign-in itself is handled upstream; it leaves ``user_id`` in the Flask session.
"""

import hmac
import logging

from flask import current_app, request, session

from errors import NotFound, Unauthorized

logger = logging.getLogger(__name__)


def current_user():
    """Return the signed-in User or None."""
    store = current_app.extensions['job_store']
    return store.get_user(session.get('user_id'))


def require_user():
    """Signed-in User, or raise Unauthorized."""
    user = current_user()
    if user is None:
        raise Unauthorized('Unauthorized')
    return user


def require_industry(user) -> str:
    if not user.industry:
        raise NotFound('User not onboarded: no industry selected')
    return user.industry


def is_admin_request() -> bool:
    """Admin endpoints accept the token as ?token= or an X-Admin-Token header."""
    token = request.args.get('token', '') or request.headers.get('X-Admin-Token', '')
    expected = current_app.config['ADMIN_TOKEN']
    if not token or not hmac.compare_digest(token, expected):
        logger.warning('Rejected admin request from %s', request.remote_addr)
        return False
    return True
