"""Arrival-time estimate from the provider's recent movement"""
import time
from collections import deque

from .geo import haversine_km

DEFAULT_SPEED_KMH = 40.0
MAX_SAMPLES = 10
# Moves shorter than this are GPS jitter
MIN_MOVE_KM = 0.01
# Samples further apart than this say nothing about current speed
MAX_SAMPLE_GAP_HOURS = 0.05


class EtaEstimator:
    """
    Smoothed speed over the last ``MAX_SAMPLES`` movements.

    Falls back to ``DEFAULT_SPEED_KMH`` until a usable sample exists.
    """

    def __init__(self, clock=time.monotonic, default_speed_kmh=DEFAULT_SPEED_KMH):
        self.clock = clock
        self.default_speed_kmh = default_speed_kmh
        self.samples = deque(maxlen=MAX_SAMPLES)
        self._previous = None

    @property
    def speed_kmh(self):
        if not self.samples:
            return self.default_speed_kmh
        return sum(self.samples) / len(self.samples)

    def update(self, lat, lng, distance_km):
        """
        Record a provider position and return ``(speed_kmh, eta_minutes)``.

        ``eta_minutes`` is None when the distance is unknown.
        """
        now = self.clock()
        if self._previous is not None:
            prev_lat, prev_lng, prev_time = self._previous
            moved = haversine_km(prev_lat, prev_lng, lat, lng)
            elapsed_hours = (now - prev_time) / 3600.0
            if moved > MIN_MOVE_KM and 0 < elapsed_hours < MAX_SAMPLE_GAP_HOURS:
                self.samples.append(moved / elapsed_hours)
        self._previous = (lat, lng, now)

        speed = self.speed_kmh
        if distance_km is None or speed <= 0:
            return speed, None
        return speed, distance_km / speed * 60.0

    def reset(self):
        self.samples.clear()
        self._previous = None
