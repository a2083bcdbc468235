"""Live tracking: distance, proximity alerts, ETA and provider location watches"""
from .geo import haversine_km, distance_between, request_distance
from .proximity import ProximityNotifier, Alert
from .eta import EtaEstimator
from .dispatcher import NotificationDispatcher
from .session import TrackingSession
from .location_watch import LocationWatch, WatchRegistry, WatchClosed, watches
from .nearby import find_nearby_providers, find_closest_provider

__all__ = [
    'haversine_km',
    'distance_between',
    'request_distance',
    'ProximityNotifier',
    'Alert',
    'EtaEstimator',
    'NotificationDispatcher',
    'TrackingSession',
    'LocationWatch',
    'WatchRegistry',
    'WatchClosed',
    'watches',
    'find_nearby_providers',
    'find_closest_provider',
]
