"""Great-circle distance helpers"""
from math import radians, cos, sin, asin, sqrt

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1, lng1, lat2, lng2):
    """Distance in kilometres between two (lat, lng) points."""
    lat1, lng1, lat2, lng2 = map(radians, [lat1, lng1, lat2, lng2])
    dlat = lat2 - lat1
    dlng = lng2 - lng1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    # Clamp rounding noise so identical points give exactly 0
    a = min(max(a, 0.0), 1.0)
    return 2 * EARTH_RADIUS_KM * asin(sqrt(a))


def distance_between(a, b):
    """
    Distance between two ``(lat, lng)`` pairs.

    Returns None when either point or any coordinate is missing; an
    unknown distance is never reported as zero.
    """
    if a is None or b is None:
        return None
    lat1, lng1 = a
    lat2, lng2 = b
    if None in (lat1, lng1, lat2, lng2):
        return None
    return haversine_km(float(lat1), float(lng1), float(lat2), float(lng2))


def request_distance(row):
    """Provider-to-customer distance for a service request row (dict)."""
    return distance_between(
        (row.get('provider_lat'), row.get('provider_lng')),
        (row.get('customer_lat'), row.get('customer_lng')),
    )
