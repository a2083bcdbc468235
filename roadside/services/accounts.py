"""
Accounts: sign-up, sign-in, sign-out and the admin-only account operations.
"""
import logging

from roadside import db
from roadside.auth import generate_token, revoke_token
from roadside.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from roadside.models import User, Profile, Rating, ServiceRequest
from roadside.models.base import utcnow
from roadside.models.user import ROLES
from roadside.tracking.location_watch import watches
from roadside.utils import validate_email, validate_password, validate_phone, normalize_phone
from .lifecycle import ensure_admin

logger = logging.getLogger(__name__)

SELF_SERVICE_ROLES = ('customer', 'provider')

PROFILE_FIELDS = ('full_name', 'phone_number', 'location', 'bio', 'avatar_url', 'years_experience')


def _new_account(email, password, full_name, phone_number=None, role='customer'):
    email = (email or '').lower().strip()
    full_name = (full_name or '').strip()

    if not validate_email(email):
        raise ValidationError('A valid email is required')
    password_error = validate_password(password)
    if password_error:
        raise ValidationError(password_error)
    if not full_name:
        raise ValidationError('full_name is required')
    if phone_number and not validate_phone(phone_number):
        raise ValidationError('Invalid phone_number')
    if role not in ROLES:
        raise ValidationError(f'Invalid role. Must be one of: {", ".join(ROLES)}')

    if User.query.filter_by(email=email).first():
        raise ConflictError('An account with this email already exists')

    user = User(email=email, role=role)
    user.set_password(password)
    user.profile = Profile(
        full_name=full_name,
        email=email,
        phone_number=normalize_phone(phone_number) or None,
    )
    db.session.add(user)
    db.session.flush()
    return user


def sign_up(email, password, full_name, phone_number=None, role='customer'):
    """Self-service registration as a customer or provider. Returns ``(user, token)``."""
    role = role or 'customer'
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(f'Invalid role. Must be one of: {", ".join(SELF_SERVICE_ROLES)}')
    user = _new_account(email, password, full_name, phone_number, role)
    user.last_login_at = utcnow()
    logger.info('New %s account %s', role, user.email)
    return user, generate_token(user)


def sign_in(email, password):
    email = (email or '').lower().strip()
    if not email or not password:
        raise ValidationError('Email and password required')

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        raise AuthenticationError('Invalid email or password')

    user.last_login_at = utcnow()
    return user, generate_token(user)


def sign_out(token):
    if not revoke_token(token):
        raise AuthenticationError('Unauthorized')
    return True


def current_session(user):
    return {
        'user': user.to_dict(),
        'role': user.role,
        'default_view': user.default_view,
    }


def create_user_account(admin, email, password, full_name, phone_number=None, role='customer'):
    """Admin-created account in any role."""
    ensure_admin(admin)
    user = _new_account(email, password, full_name, phone_number, role)
    logger.info('Admin %s created %s account %s', admin.id, role, user.email)
    return user


def delete_user(admin, user_id):
    ensure_admin(admin)
    if user_id == admin.id:
        raise ValidationError('You cannot delete your own account')
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    if ServiceRequest.query.filter_by(provider_id=user.id).first():
        raise ConflictError('Provider has service requests. Reassign them before deleting the account.')

    ServiceRequest.query.filter_by(customer_id=user.id).update(
        {ServiceRequest.customer_id: None}, synchronize_session='fetch'
    )
    Rating.query.filter_by(customer_id=user.id).delete(synchronize_session='fetch')
    watches.close(user.id)
    db.session.delete(user)
    logger.warning('Admin %s deleted user %s (%s)', admin.id, user.email, user.role)
    return user_id


def change_role(admin, user_id, role):
    ensure_admin(admin)
    if role not in ROLES:
        raise ValidationError(f'Invalid role. Must be one of: {", ".join(ROLES)}')
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError('User not found')
    if user.id == admin.id and role != 'admin':
        raise ValidationError('You cannot remove your own admin role')

    previous = user.role
    user.role = role
    if previous == 'provider' and role != 'provider' and user.profile:
        watches.close(user.id)
        user.profile.is_available = False
        user.profile.clear_location()
    logger.info('Admin %s changed role of %s: %s -> %s', admin.id, user.email, previous, role)
    return user


def update_profile(actor, user_id, data):
    """Users edit their own profile; admins edit anyone's."""
    if actor.id != user_id and not actor.is_admin():
        raise PermissionDenied('You can only edit your own profile', redirect=actor.default_view)
    user = db.session.get(User, user_id)
    if not user or not user.profile:
        raise NotFoundError('Profile not found')

    data = data or {}
    profile = user.profile
    if 'full_name' in data and not (data.get('full_name') or '').strip():
        raise ValidationError('full_name cannot be empty')
    if data.get('phone_number') and not validate_phone(data['phone_number']):
        raise ValidationError('Invalid phone_number')
    if data.get('years_experience') is not None:
        try:
            data['years_experience'] = int(data['years_experience'])
        except (TypeError, ValueError):
            raise ValidationError('years_experience must be an integer')

    for field in PROFILE_FIELDS:
        if field in data:
            value = data[field]
            if field == 'phone_number':
                value = normalize_phone(value) or None
            setattr(profile, field, value)
    return profile


def list_users(role=None):
    query = User.query
    if role:
        if role not in ROLES:
            raise ValidationError(f'Invalid role. Must be one of: {", ".join(ROLES)}')
        query = query.filter_by(role=role)
    return query.order_by(User.created_at.desc())
