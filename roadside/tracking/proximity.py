"""
Proximity alerting for an open tracking view.

``ProximityNotifier.observe`` is fed the request's status and the current
provider-to-customer distance every time either changes, and returns the
alerts that should go out:

- a one-shot notification whenever the status changes
- an "approaching" notification inside the coarse radius, repeated only
  after the provider has closed another ``MIN_DELTA_KM``, or after they
  left the coarse radius and came back
- a single sound cue the first time the provider is inside the fine
  radius while en route
"""
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

COARSE_RADIUS_KM = 2.0
MIN_DELTA_KM = 0.5
FINE_RADIUS_KM = 0.5

# Float noise allowance when comparing distance drops
_EPSILON = 1e-9

STATUS_MESSAGES = {
    'assigned': ('Provider assigned', 'A provider has been assigned to your request.'),
    'accepted': ('Request accepted', 'Your provider accepted the job and is getting ready.'),
    'en_route': ('Provider on the way', 'Your provider is on the way to your location.'),
    'in_progress': ('Service started', 'Your provider has arrived and started working.'),
    'completed': ('Service completed', 'Your request is complete. Please rate your provider.'),
    'cancelled': ('Request cancelled', 'Your service request has been cancelled.'),
}

# The user has to dismiss these
INTERACTIVE_STATUSES = ('completed', 'cancelled')

APPROACH_STATUSES = ('accepted', 'en_route')


@dataclass
class Alert:
    kind: str  # status, approaching, arrival or sound
    title: str = ''
    body: str = ''
    tag: str = ''
    require_interaction: bool = False
    distance_km: float = None

    def to_dict(self):
        return {
            'kind': self.kind,
            'title': self.title,
            'body': self.body,
            'tag': self.tag,
            'require_interaction': self.require_interaction,
            'distance_km': self.distance_km,
        }


class ProximityNotifier:
    """Per-view alert state: last status, last alerted distance, sound latch."""

    def __init__(self, request_id=None):
        self.request_id = request_id
        self.last_status = None
        self.last_notified_distance = None
        self.sound_played = False
        self._seen_status = False

    def _tag(self, suffix):
        return f'{self.request_id}:{suffix}' if self.request_id else suffix

    def observe(self, status, distance_km):
        alerts = []

        status_changed = self._seen_status and status != self.last_status
        if status_changed:
            alert = self._status_alert(status)
            if alert:
                alerts.append(alert)
            if status == 'in_progress':
                self.sound_played = False
        self.last_status = status
        self._seen_status = True

        if distance_km is None:
            return alerts

        if distance_km > FINE_RADIUS_KM:
            self.sound_played = False
        if distance_km > COARSE_RADIUS_KM:
            # Leaving the coarse radius re-arms the approach alert
            self.last_notified_distance = None

        if FINE_RADIUS_KM < distance_km <= COARSE_RADIUS_KM and status in APPROACH_STATUSES:
            if (self.last_notified_distance is None
                    or self.last_notified_distance - distance_km >= MIN_DELTA_KM - _EPSILON):
                alerts.append(Alert(
                    kind='approaching',
                    title='Provider approaching',
                    body=f'Your provider is {distance_km:.1f} km away.',
                    tag=self._tag('approaching'),
                    distance_km=distance_km,
                ))
                self.last_notified_distance = distance_km

        if distance_km <= FINE_RADIUS_KM and status == 'en_route' and not self.sound_played:
            self.sound_played = True
            alerts.append(Alert(kind='sound', tag=self._tag('sound'), distance_km=distance_km))
            alerts.append(Alert(
                kind='arrival',
                title='Provider arriving',
                body='Your provider is less than 500 m away.',
                tag=self._tag('arriving'),
                require_interaction=True,
                distance_km=distance_km,
            ))

        return alerts

    def _status_alert(self, status):
        message = STATUS_MESSAGES.get(status)
        if not message:
            return None
        title, body = message
        return Alert(
            kind='status',
            title=title,
            body=body,
            tag=self._tag('status'),
            require_interaction=status in INTERACTIVE_STATUSES,
        )
