"""
Ratings.

One rating per (request, customer). A second submission for the same
pair updates the existing row: the insert is attempted inside a
savepoint and a unique-constraint violation falls back to an update.
"""
import logging

from sqlalchemy.exc import IntegrityError

from roadside import db
from roadside.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDenied,
    ValidationError,
)
from roadside.models import Rating
from .lifecycle import ensure_admin, get_request

logger = logging.getLogger(__name__)


def _validate_rating(rating):
    if isinstance(rating, bool) or (isinstance(rating, float) and not rating.is_integer()):
        raise ValidationError('rating must be an integer')
    try:
        value = int(rating)
    except (TypeError, ValueError):
        raise ValidationError('rating must be an integer')
    if value < 1 or value > 5:
        raise ValidationError('rating must be between 1 and 5')
    return value


def submit_rating(request_id, customer, rating, review=None):
    """Rate the provider of a completed request. Returns ``(rating, created)``."""
    if customer is None:
        raise AuthenticationError('Sign in to rate your provider', redirect='/auth')
    value = _validate_rating(rating)

    service_request = get_request(request_id)
    if service_request.customer_id != customer.id:
        raise PermissionDenied('You can only rate your own requests', redirect=customer.default_view)
    if service_request.status != 'completed' or not service_request.provider_id:
        raise ConflictError('Ratings can only be submitted for completed requests')

    try:
        with db.session.begin_nested():
            row = Rating(
                service_request_id=service_request.id,
                customer_id=customer.id,
                provider_id=service_request.provider_id,
                rating=value,
                review=review,
            )
            db.session.add(row)
        created = True
    except IntegrityError:
        row = Rating.query.filter_by(
            service_request_id=service_request.id,
            customer_id=customer.id,
        ).one()
        row.rating = value
        row.review = review
        created = False

    logger.info('%s rating %s for request %s by %s', 'New' if created else 'Updated',
                value, service_request.tracking_code, customer.id)
    return row, created


def ratings_for_request(request_id):
    service_request = get_request(request_id)
    return Rating.query.filter_by(service_request_id=service_request.id).all()


def featured_ratings(limit=6):
    """Reviews picked for the landing page"""
    return (
        Rating.query
        .filter(Rating.featured.is_(True))
        .order_by(Rating.created_at.desc())
        .limit(limit)
        .all()
    )


def set_featured(rating_id, featured, admin):
    ensure_admin(admin)
    row = db.session.get(Rating, rating_id)
    if not row:
        raise NotFoundError('Rating not found')
    row.featured = bool(featured)
    return row
