"""
JWT session tokens and the route decorators built on them.

Tokens are HS256-signed with ``JWT_SECRET`` and carry a ``jti`` so that
signing out can revoke a single token.
"""
import logging
import uuid
from datetime import datetime, timezone
from functools import wraps

import jwt
from flask import current_app, g, request

from roadside import db
from roadside.errors import AuthenticationError, PermissionDenied
from roadside.models import User, RevokedToken

logger = logging.getLogger(__name__)


def generate_token(user):
    """Generate JWT token for user"""
    now = datetime.now(timezone.utc)
    payload = {
        'user_id': user.id,
        'role': user.role,
        'jti': uuid.uuid4().hex,
        'iat': now,
        'exp': now + current_app.config['JWT_EXPIRES'],
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET'], algorithm='HS256')


def decode_token(token):
    """Return the token's payload, or None if it is invalid, expired or revoked"""
    try:
        payload = jwt.decode(token, current_app.config['JWT_SECRET'], algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None

    jti = payload.get('jti')
    if jti and RevokedToken.query.filter_by(jti=jti).first():
        return None
    return payload


def revoke_token(token):
    """Add the token's jti to the revocation list; returns False for unusable tokens"""
    payload = decode_token(token)
    if not payload or not payload.get('jti'):
        return False
    db.session.add(RevokedToken(jti=payload['jti'], user_id=payload.get('user_id')))
    return True


def bearer_token():
    header = request.headers.get('Authorization', '')
    if header.startswith('Bearer '):
        return header[len('Bearer '):].strip()
    return ''


def _load_user(token):
    payload = decode_token(token) if token else None
    if not payload:
        return None
    return db.session.get(User, payload.get('user_id'))


def require_auth(f):
    """Decorator to require authentication"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_user(bearer_token())
        if not user:
            raise AuthenticationError('Unauthorized', redirect='/auth')
        g.current_user = user
        return f(user_id=user.id, *args, **kwargs)
    return decorated_function


def optional_auth(f):
    """Decorator that passes user_id if authenticated, None for guests."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = _load_user(bearer_token())
        g.current_user = user
        return f(user_id=user.id if user else None, *args, **kwargs)
    return decorated_function


def require_role(*roles):
    """
    Require one of ``roles``.

    A signed-in user with another role is sent back to their own
    dashboard through the ``redirect`` key of the 403 body.
    """
    def decorator(f):
        @wraps(f)
        @require_auth
        def wrapper(user_id, *args, **kwargs):
            user = g.current_user
            if user.role not in roles:
                logger.info('User %s (%s) denied access to %s', user_id, user.role, request.path)
                raise PermissionDenied(
                    f'{" or ".join(r.capitalize() for r in roles)} access required',
                    redirect=user.default_view,
                )
            return f(user_id=user_id, *args, **kwargs)
        return wrapper
    return decorator


require_admin = require_role('admin')
require_provider = require_role('provider')
