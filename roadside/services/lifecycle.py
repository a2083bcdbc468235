"""
Service-request lifecycle.

Status moves are validated here, inside the write, against the
transition table below; callers never set ``status`` directly.

    pending -> assigned                  admin (assign_provider)
    assigned -> accepted | denied        assigned provider
    accepted -> en_route                 assigned provider
    en_route -> in_progress              assigned provider
    in_progress -> completed             assigned provider
    pending | assigned | accepted
        -> cancelled                     owning customer or guest
    any non-terminal -> cancelled        admin
    any -> any                           admin (override_status)
"""
import logging

from flask import current_app

from roadside import db
from roadside.errors import (
    ConflictError,
    InvalidTransition,
    NotFoundError,
    PermissionDenied,
    ValidationError,
    BackendError,
)
from roadside.models import Service, ServiceRequest, User
from roadside.models.base import utcnow
from roadside.models.service_request import (
    SERVICE_TYPES,
    STATUSES,
    PROVIDER_STATUSES,
    TRACKED_STATUSES,
    generate_tracking_code,
)
from roadside.utils import (
    validate_coordinates,
    validate_phone,
    validate_uuid,
    normalize_phone,
    phones_match,
    parse_decimal,
)

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = ('completed', 'cancelled')

PROVIDER_TRANSITIONS = {
    'assigned': ('accepted', 'denied'),
    'accepted': ('en_route',),
    'en_route': ('in_progress',),
    'in_progress': ('completed',),
}

CUSTOMER_CANCELLABLE = ('pending', 'assigned', 'accepted')

# States from which an admin may (re)assign a provider
ASSIGNABLE = ('pending', 'assigned', 'accepted', 'denied')

TRACKING_PAGE = '/track-rescue'

_TRACKING_CODE_ATTEMPTS = 5

_VEHICLE_FIELDS = ('vehicle_make', 'vehicle_model', 'vehicle_year', 'vehicle_plate', 'vehicle_image_url')


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def lookup_request(key):
    """Find a request by id or by tracking code (case-insensitive)."""
    if not key:
        return None
    key = str(key).strip()
    if validate_uuid(key):
        return db.session.get(ServiceRequest, key)
    return ServiceRequest.query.filter_by(tracking_code=key.upper()).first()


def get_request(key):
    service_request = lookup_request(key)
    if not service_request:
        raise NotFoundError('Service request not found', redirect=TRACKING_PAGE)
    return service_request


def check_version(service_request, expected_version):
    if expected_version is None:
        return
    try:
        expected_version = int(expected_version)
    except (TypeError, ValueError):
        raise ValidationError('expected_version must be an integer')
    if expected_version != service_request.version:
        raise ConflictError(
            'This request was changed by someone else. Reload and try again.',
            current_version=service_request.version,
        )


def ensure_admin(actor):
    if actor is None or not actor.is_admin():
        raise PermissionDenied('Admin access required',
                               redirect=actor.default_view if actor else '/auth')


def _unique_tracking_code():
    length = current_app.config.get('TRACKING_CODE_LENGTH', 8)
    for _ in range(_TRACKING_CODE_ATTEMPTS):
        code = generate_tracking_code(length)
        if not ServiceRequest.query.filter_by(tracking_code=code).first():
            return code
    raise BackendError('Could not allocate a tracking code. Please try again.')


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def create_request(actor, data):
    """
    Open a new request in ``pending``.

    ``actor`` is the signed-in customer, or None for a guest, who must then
    leave a phone number to track the request by.
    """
    data = data or {}

    if actor is not None and not actor.is_customer():
        raise PermissionDenied('Only customers can request service', redirect=actor.default_view)

    service_type = (data.get('service_type') or '').strip()
    location = (data.get('location') or '').strip()
    if not service_type or not location:
        raise ValidationError('service_type and location are required')
    if service_type not in SERVICE_TYPES:
        raise ValidationError(f'Invalid service_type. Must be one of: {", ".join(SERVICE_TYPES)}')
    offered = Service.query.filter_by(slug=service_type).first()
    if offered is not None and not offered.is_active:
        raise ValidationError(f'{offered.name} is not available right now')

    phone = data.get('phone_number')
    if actor is None:
        if not validate_phone(phone):
            raise ValidationError('A valid phone_number is required to request service without an account')
    elif phone and not validate_phone(phone):
        raise ValidationError('Invalid phone_number')
    if not phone and actor is not None and actor.profile:
        phone = actor.profile.phone_number

    fuel_type = data.get('fuel_type')
    fuel_amount = data.get('fuel_amount')
    if service_type != 'fuel_delivery' and (fuel_type or fuel_amount is not None):
        raise ValidationError('fuel_type and fuel_amount only apply to fuel_delivery requests')
    if fuel_amount is not None:
        fuel_amount = parse_decimal(fuel_amount)
        if fuel_amount is None or fuel_amount <= 0:
            raise ValidationError('fuel_amount must be a positive number')

    lat = data.get('customer_lat')
    lng = data.get('customer_lng')
    if lat is not None or lng is not None:
        if not validate_coordinates(lat, lng):
            raise ValidationError('customer_lat and customer_lng must be valid coordinates')
        lat, lng = float(lat), float(lng)

    service_request = ServiceRequest(
        tracking_code=_unique_tracking_code(),
        customer_id=actor.id if actor else None,
        phone_number=normalize_phone(phone) or None,
        service_type=service_type,
        description=data.get('description'),
        location=location,
        fuel_type=fuel_type,
        fuel_amount=fuel_amount,
        customer_lat=lat,
        customer_lng=lng,
        status='pending',
    )
    for field in _VEHICLE_FIELDS:
        value = data.get(field)
        if value is not None:
            setattr(service_request, field, str(value))

    db.session.add(service_request)
    db.session.flush()
    logger.info('Created %s request %s (%s)', service_type, service_request.tracking_code,
                'guest' if actor is None else actor.id)
    return service_request


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------

def assign_provider(request_id, provider_id, admin, expected_version=None):
    """Assign or reassign a provider. Reassignment resets ``assigned_at``."""
    ensure_admin(admin)
    service_request = get_request(request_id)
    check_version(service_request, expected_version)

    if service_request.status not in ASSIGNABLE:
        raise InvalidTransition(service_request.status, 'assigned')

    provider = db.session.get(User, provider_id) if provider_id else None
    if not provider or not provider.is_provider():
        raise NotFoundError('Provider not found')

    if current_app.config.get('ASSIGN_REQUIRE_AVAILABLE'):
        if not provider.profile or not provider.profile.is_available:
            raise ConflictError('Provider is not available')

    previous = service_request.provider_id
    service_request.provider_id = provider.id
    service_request.assigned_by = admin.id
    service_request.assigned_at = utcnow()
    service_request.status = 'assigned'
    if previous and previous != provider.id:
        service_request.provider_lat = None
        service_request.provider_lng = None
        logger.info('Request %s reassigned from %s to %s by %s',
                    service_request.tracking_code, previous, provider.id, admin.id)
    else:
        logger.info('Request %s assigned to %s by %s',
                    service_request.tracking_code, provider.id, admin.id)
    return service_request


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

def advance_status(request_id, target, actor, expected_version=None):
    """Move a request one step along the provider's path, or cancel it."""
    if target not in STATUSES:
        raise ValidationError(f'Invalid status. Must be one of: {", ".join(STATUSES)}')
    if target == 'cancelled':
        return cancel_request(request_id, actor, expected_version=expected_version)

    service_request = get_request(request_id)
    check_version(service_request, expected_version)

    current = service_request.status
    if target not in PROVIDER_TRANSITIONS.get(current, ()):
        raise InvalidTransition(current, target)

    if actor is None or not actor.is_provider() or service_request.provider_id != actor.id:
        raise PermissionDenied('Only the assigned provider can update this request',
                               redirect=actor.default_view if actor else '/auth')

    service_request.status = target
    if target == 'completed':
        service_request.completed_at = utcnow()

    logger.info('Request %s moved %s -> %s by %s',
                service_request.tracking_code, current, target, actor.id)
    return service_request


def cancel_request(request_id, actor=None, phone_number=None, expected_version=None):
    """
    Cancel a request.

    Admins may cancel anything not yet terminal; the owning customer, or a
    guest who supplies the phone number on the request, only before work
    is under way.
    """
    service_request = get_request(request_id)
    check_version(service_request, expected_version)
    current = service_request.status

    if current in TERMINAL_STATUSES:
        raise InvalidTransition(current, 'cancelled')

    if actor is not None and actor.is_admin():
        pass
    elif actor is not None:
        if not actor.is_customer() or service_request.customer_id != actor.id:
            raise PermissionDenied('You cannot cancel this request', redirect=actor.default_view)
        if current not in CUSTOMER_CANCELLABLE:
            raise InvalidTransition(current, 'cancelled')
    else:
        if not phones_match(service_request.phone_number, phone_number):
            raise PermissionDenied('Phone number does not match this request', redirect=TRACKING_PAGE)
        if current not in CUSTOMER_CANCELLABLE:
            raise InvalidTransition(current, 'cancelled')

    service_request.status = 'cancelled'
    logger.info('Request %s cancelled from %s by %s', service_request.tracking_code, current,
                actor.id if actor else 'guest')
    return service_request


def override_status(request_id, status, admin, reason=None, expected_version=None):
    """
    Administrative override: set any status from any status.

    Bypasses the transition table but still keeps a provider on every
    status past ``pending``, and clears it when forced back to ``pending``.
    """
    ensure_admin(admin)
    if status not in STATUSES:
        raise ValidationError(f'Invalid status. Must be one of: {", ".join(STATUSES)}')

    service_request = get_request(request_id)
    check_version(service_request, expected_version)
    previous = service_request.status

    if status == 'pending':
        service_request.provider_id = None
        service_request.assigned_at = None
        service_request.assigned_by = None
        service_request.provider_lat = None
        service_request.provider_lng = None
    elif status in PROVIDER_STATUSES and not service_request.provider_id:
        raise ValidationError(f"Assign a provider before setting status '{status}'")

    service_request.status = status
    if status == 'completed':
        service_request.completed_at = service_request.completed_at or utcnow()
    else:
        service_request.completed_at = None

    logger.warning('Admin %s overrode request %s status %s -> %s (%s)',
                   admin.id, service_request.tracking_code, previous, status, reason or 'no reason given')
    return service_request


def delete_request(request_id, admin, expected_version=None):
    """Hard delete, taking the transaction and ratings with it."""
    ensure_admin(admin)
    service_request = get_request(request_id)
    check_version(service_request, expected_version)
    request_id = service_request.id
    db.session.delete(service_request)
    logger.warning('Admin %s deleted request %s', admin.id, service_request.tracking_code)
    return request_id


# ---------------------------------------------------------------------------
# Provider location on active requests
# ---------------------------------------------------------------------------

def active_requests_for(provider_id):
    return (
        ServiceRequest.query
        .filter(
            ServiceRequest.provider_id == provider_id,
            ServiceRequest.status.in_(TRACKED_STATUSES),
        )
        .all()
    )
