"""
Delivery of tracking alerts to one client over Socket.IO.
"""
import logging
import time

logger = logging.getLogger(__name__)

PERMISSIONS = ('granted', 'denied', 'default')

SOUND_MIN_INTERVAL_SECONDS = 30


class NotificationDispatcher:
    """
    Sends notifications and sound cues to a single socket.

    Notifications are dropped silently unless the client reported the
    ``granted`` permission. A later notification with the same tag
    replaces the earlier one. Sound cues do not depend on the permission
    but are rate limited.
    """

    def __init__(self, emit, permission='default', clock=time.monotonic):
        self._emit = emit
        self.permission = permission if permission in PERMISSIONS else 'default'
        self.clock = clock
        self.active = {}
        self._last_sound = None

    def set_permission(self, permission):
        if permission not in PERMISSIONS:
            raise ValueError(f'Unknown notification permission: {permission}')
        self.permission = permission

    def send(self, title, body='', tag=None, require_interaction=False):
        if self.permission != 'granted':
            logger.debug('Skipping notification %r: permission %s', title, self.permission)
            return False
        payload = {
            'title': title,
            'body': body,
            'tag': tag,
            'require_interaction': require_interaction,
            'replaces': tag in self.active if tag else False,
        }
        if tag:
            self.active[tag] = payload
        try:
            self._emit('tracking:notification', payload)
        except Exception:
            logger.exception('Failed to deliver notification %r', title)
            return False
        return True

    def play_sound(self, kind='proximity'):
        now = self.clock()
        if self._last_sound is not None and now - self._last_sound < SOUND_MIN_INTERVAL_SECONDS:
            return False
        self._last_sound = now
        try:
            self._emit('tracking:sound', {'sound': kind})
        except Exception:
            logger.exception('Failed to deliver sound cue')
            return False
        return True

    def dispatch(self, alert):
        if alert.kind == 'sound':
            return self.play_sound()
        return self.send(alert.title, alert.body, tag=alert.tag,
                         require_interaction=alert.require_interaction)
