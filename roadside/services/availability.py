"""
Provider availability and live location.

Going online opens a location watch for the provider; every position
pushed through it is written to the provider's profile and to each of
their active requests. Going offline, disconnecting or a failed write
stops the watch.
"""
import logging

from roadside import db
from roadside.commands import on_rollback
from roadside.errors import ConflictError, PermissionDenied, ValidationError
from roadside.models import Profile, User
from roadside.tracking.location_watch import watches
from roadside.utils import validate_coordinates
from .lifecycle import active_requests_for

logger = logging.getLogger(__name__)


def _ensure_provider(user):
    if user is None or not user.is_provider():
        raise PermissionDenied('Provider access required',
                               redirect=user.default_view if user else '/auth')
    if not user.profile:
        raise ValidationError('Complete your profile before going online')
    return user.profile


def _coordinates(lat, lng):
    if not validate_coordinates(lat, lng):
        raise ValidationError('lat and lng must be valid coordinates')
    return float(lat), float(lng)


def store_position(provider_id, lat, lng):
    """Write a provider position to their profile and active requests."""
    profile = Profile.query.filter_by(user_id=provider_id).first()
    if profile is None:
        raise ValidationError('Provider profile not found')
    profile.set_location(lat, lng)

    active = active_requests_for(provider_id)
    for service_request in active:
        service_request.provider_lat = lat
        service_request.provider_lng = lng
    db.session.flush()
    return len(active)


def go_online(provider, lat, lng):
    """Mark the provider available at (lat, lng) and open their location watch."""
    profile = _ensure_provider(provider)
    lat, lng = _coordinates(lat, lng)

    provider_id = provider.id
    watch = watches.open(
        provider_id,
        on_position=lambda la, ln: store_position(provider_id, la, ln),
    )
    # A failed commit must not leave the watch running
    on_rollback(watch.stop)
    try:
        profile.is_available = True
        watch.push(lat, lng)
    except Exception:
        watch.stop()
        raise

    logger.info('Provider %s is online at (%.5f, %.5f)', provider_id, lat, lng)
    return profile


def push_location(provider, lat, lng):
    """Feed a position into the provider's running watch. Returns the number of requests updated."""
    _ensure_provider(provider)
    lat, lng = _coordinates(lat, lng)

    watch = watches.get(provider.id)
    if watch is None:
        raise ConflictError('You are offline. Go online to share your location.')
    return watch.push(lat, lng)


def go_offline(provider):
    """Stop the watch and forget the provider's position."""
    profile = _ensure_provider(provider)
    watches.close(provider.id)
    profile.is_available = False
    profile.clear_location()
    logger.info('Provider %s is offline', provider.id)
    return profile


def release_provider(provider_id):
    """Take a provider offline after their connection dropped."""
    provider = db.session.get(User, provider_id)
    if provider is None or not provider.is_provider():
        watches.close(provider_id)
        return None
    return go_offline(provider)


def load_availability(profile):
    """
    Availability as shown to the provider.

    A profile marked available without coordinates is repaired to
    unavailable, and the caller is told to capture a location again.
    """
    if profile.is_available and not profile.has_location:
        logger.warning('Profile %s was available without a location; marking unavailable', profile.id)
        profile.is_available = False
        return {
            'is_available': False,
            'location_required': True,
            'watching': False,
            'current_lat': None,
            'current_lng': None,
        }
    return {
        'is_available': profile.is_available,
        'location_required': False,
        'watching': profile.user_id in watches,
        'current_lat': profile.current_lat,
        'current_lng': profile.current_lng,
    }
