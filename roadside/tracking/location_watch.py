"""
Provider location watches.

A watch is opened when a provider goes online and must be stopped on
every way out: going offline, disconnecting, or a failed update.
"""
import logging
import threading

from roadside.models.base import utcnow

logger = logging.getLogger(__name__)


class WatchClosed(RuntimeError):
    """Position pushed to a watch that is no longer running."""


class LocationWatch:
    def __init__(self, provider_id, on_position, on_stop=None):
        self.provider_id = provider_id
        self._on_position = on_position
        self._on_stop = on_stop
        self.running = False
        self.stopped = False
        self.last_position = None
        self.started_at = None
        self._lock = threading.Lock()

    def start(self):
        if self.stopped:
            raise WatchClosed(f'Watch for {self.provider_id} has already been stopped')
        self.running = True
        self.started_at = utcnow()
        return self

    def push(self, lat, lng):
        """Deliver a position; a failing handler stops the watch."""
        if not self.running:
            raise WatchClosed(f'Watch for {self.provider_id} is not running')
        try:
            result = self._on_position(lat, lng)
        except Exception:
            self.stop()
            raise
        self.last_position = (lat, lng)
        return result

    def stop(self):
        with self._lock:
            if self.stopped:
                return False
            self.stopped = True
            self.running = False
        if self._on_stop:
            try:
                self._on_stop(self)
            except Exception:
                logger.exception('Stop handler failed for provider %s', self.provider_id)
        return True

    def __enter__(self):
        if not self.running:
            self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    def __repr__(self):
        state = 'running' if self.running else 'stopped'
        return f'<LocationWatch {self.provider_id} {state}>'


class WatchRegistry:
    """At most one running watch per provider."""

    def __init__(self):
        self._watches = {}
        self._lock = threading.Lock()

    def open(self, provider_id, on_position, on_stop=None):
        with self._lock:
            previous = self._watches.pop(provider_id, None)
        if previous:
            previous.stop()

        def _release(watch):
            with self._lock:
                if self._watches.get(provider_id) is watch:
                    del self._watches[provider_id]
            if on_stop:
                on_stop(watch)

        watch = LocationWatch(provider_id, on_position, on_stop=_release).start()
        with self._lock:
            self._watches[provider_id] = watch
        return watch

    def get(self, provider_id):
        with self._lock:
            return self._watches.get(provider_id)

    def close(self, provider_id):
        watch = self.get(provider_id)
        if not watch:
            return False
        return watch.stop()

    def close_all(self):
        with self._lock:
            watches = list(self._watches.values())
        for watch in watches:
            watch.stop()

    def __contains__(self, provider_id):
        return self.get(provider_id) is not None

    def __len__(self):
        with self._lock:
            return len(self._watches)


watches = WatchRegistry()
