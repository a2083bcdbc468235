"""
Server side of one open tracking view.
"""
import logging
import time

from roadside.realtime import RowCache
from .dispatcher import NotificationDispatcher
from .eta import EtaEstimator
from .geo import request_distance
from .proximity import ProximityNotifier

logger = logging.getLogger(__name__)

# Request fields pushed to the tracking client
SNAPSHOT_FIELDS = (
    'id', 'tracking_code', 'status', 'service_type', 'location',
    'customer_lat', 'customer_lng', 'provider_lat', 'provider_lng',
    'assigned_at', 'completed_at', 'version',
)


class TrackingSession:
    """
    Follows a single service request on the change feed.

    Every committed change to the request is merged into a local row
    cache, distance and ETA are recomputed, the proximity notifier decides
    which alerts to raise and the dispatcher delivers them. ``close``
    releases the feed subscription exactly once.
    """

    def __init__(self, row, feed, emit, permission='default', clock=time.monotonic):
        self.request_id = row['id']
        self._emit = emit
        self.cache = RowCache()
        self.cache.reset([row])
        self.notifier = ProximityNotifier(self.request_id)
        self.eta = EtaEstimator(clock=clock)
        self.dispatcher = NotificationDispatcher(emit, permission=permission, clock=clock)
        self.closed = False
        self.last_update = None

        # First observation only records the baseline
        self.refresh()
        self.subscription = feed.subscribe(
            'service_requests', self._on_change, row_filter={'id': self.request_id}
        )

    @property
    def row(self):
        return self.cache.get(self.request_id)

    def set_permission(self, permission):
        self.dispatcher.set_permission(permission)

    def _on_change(self, change):
        if self.closed:
            return
        if change.event == 'DELETE':
            self.cache.apply(change)
            self._emit('tracking:update', {'id': self.request_id, 'deleted': True})
            self.close()
            return
        self.cache.apply(change)
        self.refresh()

    def refresh(self):
        row = self.row
        if row is None:
            return None

        distance = request_distance(row)
        speed = eta_minutes = None
        if row.get('provider_lat') is not None and row.get('provider_lng') is not None:
            speed, eta_minutes = self.eta.update(row['provider_lat'], row['provider_lng'], distance)

        alerts = self.notifier.observe(row.get('status'), distance)
        for alert in alerts:
            self.dispatcher.dispatch(alert)

        update = {field: row.get(field) for field in SNAPSHOT_FIELDS}
        update.update({
            'distance_km': round(distance, 3) if distance is not None else None,
            'speed_kmh': round(speed, 1) if speed is not None else None,
            'eta_minutes': round(eta_minutes, 1) if eta_minutes is not None else None,
            'alerts': [alert.to_dict() for alert in alerts],
        })
        self.last_update = update
        self._emit('tracking:update', update)
        return update

    def close(self):
        if self.closed:
            return False
        self.closed = True
        self.subscription.unsubscribe()
        logger.debug('Closed tracking session for %s', self.request_id)
        return True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
