"""Available providers near a point"""
from flask import current_app
from sqlalchemy import func

from roadside import db
from roadside.models import User, Profile, Rating
from .geo import haversine_km


def _provider_ratings(provider_ids):
    if not provider_ids:
        return {}
    rows = (
        db.session.query(Rating.provider_id, func.avg(Rating.rating), func.count(Rating.id))
        .filter(Rating.provider_id.in_(provider_ids))
        .group_by(Rating.provider_id)
        .all()
    )
    return {
        provider_id: (round(float(avg), 2), count)
        for provider_id, avg, count in rows
    }


def _available_profiles():
    return (
        Profile.query
        .join(User, User.id == Profile.user_id)
        .filter(
            User.role == 'provider',
            Profile.is_available.is_(True),
            Profile.current_lat.isnot(None),
            Profile.current_lng.isnot(None),
        )
        .all()
    )


def _ranked(lat, lng):
    ranked = []
    for profile in _available_profiles():
        distance = haversine_km(lat, lng, profile.current_lat, profile.current_lng)
        ranked.append((distance, profile))
    ranked.sort(key=lambda item: item[0])
    return ranked


def _serialize(ranked):
    ratings = _provider_ratings([profile.user_id for _, profile in ranked])
    providers = []
    for distance, profile in ranked:
        average, count = ratings.get(profile.user_id, (None, 0))
        providers.append({
            'id': profile.user_id,
            'full_name': profile.full_name,
            'phone_number': profile.phone_number,
            'current_lat': profile.current_lat,
            'current_lng': profile.current_lng,
            'distance_km': round(distance, 2),
            'average_rating': average,
            'rating_count': count,
        })
    return providers


def find_nearby_providers(lat, lng, radius_km=None, limit=None):
    """Available providers within ``radius_km`` (``NEARBY_PROVIDER_RADIUS_KM`` by default), closest first."""
    if radius_km is None:
        radius_km = current_app.config.get('NEARBY_PROVIDER_RADIUS_KM', 5.0)
    ranked = [item for item in _ranked(lat, lng) if item[0] <= radius_km]
    if limit:
        ranked = ranked[:limit]
    return _serialize(ranked)


def find_closest_provider(lat, lng):
    """The closest available provider at any distance, or None."""
    ranked = _ranked(lat, lng)
    if not ranked:
        return None
    return _serialize(ranked[:1])[0]
