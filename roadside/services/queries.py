"""Read side of service requests: listings, detail, public tracking"""
import re

from sqlalchemy import func

from roadside import db
from roadside.errors import PermissionDenied, ValidationError
from roadside.models import ServiceRequest, Rating
from roadside.models.service_request import STATUSES
from roadside.utils.helpers import PHONE_MATCH_DIGITS, phones_match
from .lifecycle import get_request

GUEST_LOOKUP_LIMIT = 20


def list_requests(user, status=None):
    """Requests visible to ``user``: their own, those assigned to them, or all for admins."""
    query = ServiceRequest.query
    if user.is_admin():
        pass
    elif user.is_provider():
        query = query.filter(ServiceRequest.provider_id == user.id)
    else:
        query = query.filter(ServiceRequest.customer_id == user.id)

    if status:
        statuses = [s.strip() for s in status.split(',') if s.strip()]
        unknown = [s for s in statuses if s not in STATUSES]
        if unknown:
            raise ValidationError(f'Invalid status filter: {", ".join(unknown)}')
        query = query.filter(ServiceRequest.status.in_(statuses))

    return query.order_by(ServiceRequest.created_at.desc())


def can_view(user, service_request):
    if user.is_admin():
        return True
    if user.is_provider():
        return service_request.provider_id == user.id
    return service_request.customer_id == user.id


def request_detail(user, key):
    """Full detail for a party to the request; 404 redirects to the tracking page."""
    service_request = get_request(key)
    if not can_view(user, service_request):
        raise PermissionDenied('You do not have access to this request', redirect=user.default_view)
    return service_request


def public_tracking(code):
    """Status view for anyone holding the tracking code."""
    return get_request(code).to_public_dict()


def guest_requests_by_phone(phone):
    """Guest requests left under ``phone``, matched on the trailing digits.

    Requests opened from an account are tracked by signing in and never
    appear here.
    """
    digits = re.sub(r'\D', '', phone or '')
    if len(digits) < PHONE_MATCH_DIGITS:
        raise ValidationError('A valid phone number is required')

    candidates = (
        ServiceRequest.query
        .filter(ServiceRequest.customer_id.is_(None))
        .filter(ServiceRequest.phone_number.like(f'%{digits[-PHONE_MATCH_DIGITS:]}'))
        .order_by(ServiceRequest.created_at.desc())
        .limit(GUEST_LOOKUP_LIMIT)
        .all()
    )
    return [r for r in candidates if phones_match(r.phone_number, digits)]


def provider_rating_summary(provider_id):
    average, count = (
        db.session.query(func.avg(Rating.rating), func.count(Rating.id))
        .filter(Rating.provider_id == provider_id)
        .one()
    )
    return {
        'provider_id': provider_id,
        'average_rating': round(float(average), 2) if average is not None else None,
        'rating_count': count,
    }
