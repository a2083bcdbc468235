"""
Live tracking tests
Distance, proximity hysteresis, ETA smoothing, notification delivery,
tracking sessions and provider location watches
"""
import math

import pytest

from roadside.realtime import ChangeEvent, ChangeFeed
from roadside.tracking import (
    EtaEstimator,
    LocationWatch,
    NotificationDispatcher,
    ProximityNotifier,
    TrackingSession,
    WatchClosed,
    WatchRegistry,
    distance_between,
    haversine_km,
    request_distance,
)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Recorder:
    """Collects (event, payload) pairs emitted to a client."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.events if name == event]


class TestGeo:

    def test_identical_points_are_zero(self):
        assert haversine_km(5.6037, -0.1870, 5.6037, -0.1870) == 0.0

    def test_one_degree_of_latitude(self):
        assert haversine_km(0, 0, 1, 0) == pytest.approx(111.195, abs=0.01)

    def test_antipodal_points_do_not_fail(self):
        assert haversine_km(0, 0, 0, 180) == pytest.approx(math.pi * 6371.0, rel=1e-9)

    def test_missing_coordinate_is_unknown_not_zero(self):
        assert distance_between((5.6, None), (5.6, -0.18)) is None
        assert distance_between(None, (5.6, -0.18)) is None

    def test_request_distance_uses_both_parties(self):
        row = {'customer_lat': 0.0, 'customer_lng': 0.0, 'provider_lat': 0.0, 'provider_lng': 0.01}
        assert request_distance(row) == pytest.approx(1.112, abs=0.001)
        assert request_distance({'customer_lat': 0.0, 'customer_lng': 0.0}) is None

    def test_distance_shrinks_along_a_line(self):
        customer = (5.60, -0.19)
        points = [(5.60, -0.25), (5.60, -0.22), (5.60, -0.20)]

        distances = [distance_between(point, customer) for point in points]

        assert distances[0] > distances[1] > distances[2] > 0


class TestProximityNotifier:

    def _kinds(self, alerts):
        return [alert.kind for alert in alerts]

    def test_first_status_is_recorded_without_alert(self):
        notifier = ProximityNotifier('req-1')
        assert notifier.observe('en_route', 3.0) == []
        assert notifier.last_status == 'en_route'

    def test_status_change_notifies_once(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('assigned', None)

        alerts = notifier.observe('accepted', None)
        assert self._kinds(alerts) == ['status']
        assert alerts[0].title == 'Request accepted'
        assert notifier.observe('accepted', None) == []

    def test_terminal_status_requires_interaction(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('in_progress', None)
        alert = notifier.observe('completed', None)[0]
        assert alert.require_interaction is True

    def test_approach_hysteresis(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 3.0)

        approaching = []
        for distance in (1.8, 1.6, 1.4, 1.0, 0.9):
            alerts = notifier.observe('en_route', distance)
            approaching += [a.distance_km for a in alerts if a.kind == 'approaching']

        assert approaching == [1.8, 1.0]

    def test_decreasing_distances_alert_at_half_kilometre_steps(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 3.0)

        fired = []
        for distance in (1.8, 1.6, 1.5, 1.0, 0.4):
            for alert in notifier.observe('en_route', distance):
                fired.append((alert.kind, distance))

        assert fired == [
            ('approaching', 1.8),
            ('approaching', 1.0),
            ('sound', 0.4),
            ('arrival', 0.4),
        ]

    def test_leaving_coarse_radius_rearms_approach(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 3.0)

        assert self._kinds(notifier.observe('en_route', 1.8)) == ['approaching']
        assert notifier.observe('en_route', 2.6) == []
        assert notifier.last_notified_distance is None
        assert self._kinds(notifier.observe('en_route', 1.9)) == ['approaching']

    def test_approach_only_while_accepted_or_en_route(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('assigned', 3.0)
        assert notifier.observe('assigned', 1.5) == []

    def test_fine_radius_sound_fires_once(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 1.0)

        first = notifier.observe('en_route', 0.4)
        second = notifier.observe('en_route', 0.3)

        assert self._kinds(first) == ['sound', 'arrival']
        assert first[1].require_interaction is True
        assert second == []

    def test_sound_latch_resets_after_leaving_fine_radius(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 1.0)
        notifier.observe('en_route', 0.4)
        notifier.observe('en_route', 0.8)

        assert 'sound' in self._kinds(notifier.observe('en_route', 0.4))

    def test_no_sound_unless_en_route(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('accepted', 1.0)
        assert 'sound' not in self._kinds(notifier.observe('accepted', 0.2))

    def test_in_progress_resets_latch(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 1.0)
        notifier.observe('en_route', 0.2)
        assert notifier.sound_played is True

        notifier.observe('in_progress', 0.2)
        assert notifier.sound_played is False

    def test_unknown_distance_skips_distance_rules(self):
        notifier = ProximityNotifier('req-1')
        notifier.observe('en_route', 3.0)
        assert notifier.observe('en_route', None) == []
        assert notifier.last_notified_distance is None


class TestEtaEstimator:

    def test_default_speed_before_samples(self):
        eta = EtaEstimator(clock=FakeClock())
        speed, minutes = eta.update(5.60, -0.18, 20.0)
        assert speed == 40.0
        assert minutes == pytest.approx(30.0)

    def test_speed_from_movement(self):
        clock = FakeClock()
        eta = EtaEstimator(clock=clock)
        eta.update(0.0, 0.0, 10.0)
        clock.advance(60)
        # 0.01 degrees of latitude is about 1.112 km in one minute
        speed, minutes = eta.update(0.01, 0.0, 10.0)
        assert speed == pytest.approx(66.7, abs=0.1)
        assert minutes == pytest.approx(10.0 / speed * 60.0)

    def test_jitter_is_ignored(self):
        clock = FakeClock()
        eta = EtaEstimator(clock=clock)
        eta.update(0.0, 0.0, 5.0)
        clock.advance(10)
        speed, _ = eta.update(0.00001, 0.0, 5.0)
        assert speed == 40.0

    def test_stale_samples_are_ignored(self):
        clock = FakeClock()
        eta = EtaEstimator(clock=clock)
        eta.update(0.0, 0.0, 5.0)
        clock.advance(600)
        speed, _ = eta.update(0.05, 0.0, 5.0)
        assert speed == 40.0

    def test_window_keeps_last_ten(self):
        clock = FakeClock()
        eta = EtaEstimator(clock=clock)
        lat = 0.0
        eta.update(lat, 0.0, None)
        for _ in range(15):
            clock.advance(60)
            lat += 0.01
            eta.update(lat, 0.0, None)
        assert len(eta.samples) == 10

    def test_unknown_distance_has_no_eta(self):
        eta = EtaEstimator(clock=FakeClock())
        assert eta.update(0.0, 0.0, None) == (40.0, None)


class TestNotificationDispatcher:

    def test_nothing_sent_without_permission(self):
        recorder = Recorder()
        dispatcher = NotificationDispatcher(recorder, permission='default')
        assert dispatcher.send('Hello') is False
        assert recorder.events == []

    def test_same_tag_replaces(self):
        recorder = Recorder()
        dispatcher = NotificationDispatcher(recorder, permission='granted')
        dispatcher.send('Provider approaching', tag='req-1:approaching')
        dispatcher.send('Provider approaching', tag='req-1:approaching')

        sent = recorder.named('tracking:notification')
        assert [n['replaces'] for n in sent] == [False, True]

    def test_sound_rate_limited(self):
        clock = FakeClock()
        recorder = Recorder()
        dispatcher = NotificationDispatcher(recorder, permission='denied', clock=clock)

        assert dispatcher.play_sound() is True
        clock.advance(10)
        assert dispatcher.play_sound() is False
        clock.advance(25)
        assert dispatcher.play_sound() is True
        assert len(recorder.named('tracking:sound')) == 2

    def test_unknown_permission_rejected(self):
        dispatcher = NotificationDispatcher(Recorder())
        with pytest.raises(ValueError):
            dispatcher.set_permission('maybe')

    def test_emit_failure_is_contained(self):
        def broken(event, payload):
            raise RuntimeError('socket gone')

        dispatcher = NotificationDispatcher(broken, permission='granted')
        assert dispatcher.send('Hello') is False


def _row(**overrides):
    row = {
        'id': 'req-1',
        'tracking_code': 'TRAK2345',
        'status': 'en_route',
        'customer_lat': 0.0,
        'customer_lng': 0.0,
        'provider_lat': 0.0,
        'provider_lng': 0.03,
        'version': 3,
    }
    row.update(overrides)
    return row


class TestTrackingSession:

    def test_baseline_update_on_open(self):
        recorder = Recorder()
        feed = ChangeFeed()
        session = TrackingSession(_row(), feed, recorder, permission='granted', clock=FakeClock())

        updates = recorder.named('tracking:update')
        assert len(updates) == 1
        assert updates[0]['alerts'] == []
        assert updates[0]['distance_km'] == pytest.approx(3.336, abs=0.001)
        assert feed.subscriber_count('service_requests') == 1
        session.close()

    def test_provider_approach_raises_alerts(self):
        clock = FakeClock()
        recorder = Recorder()
        feed = ChangeFeed()
        session = TrackingSession(_row(), feed, recorder, permission='granted', clock=clock)

        clock.advance(60)
        feed.publish(ChangeEvent('service_requests', 'UPDATE',
                                 new=_row(provider_lng=0.015, version=4)))
        clock.advance(60)
        feed.publish(ChangeEvent('service_requests', 'UPDATE',
                                 new=_row(provider_lng=0.003, version=5)))

        notifications = [n['title'] for n in recorder.named('tracking:notification')]
        assert notifications == ['Provider approaching', 'Provider arriving']
        assert len(recorder.named('tracking:sound')) == 1
        assert session.last_update['eta_minutes'] is not None
        session.close()

    def test_other_requests_are_ignored(self):
        recorder = Recorder()
        feed = ChangeFeed()
        session = TrackingSession(_row(), feed, recorder, clock=FakeClock())

        feed.publish(ChangeEvent('service_requests', 'UPDATE', new=_row(id='req-2', status='completed')))

        assert len(recorder.named('tracking:update')) == 1
        session.close()

    def test_delete_closes_session(self):
        recorder = Recorder()
        feed = ChangeFeed()
        session = TrackingSession(_row(), feed, recorder, clock=FakeClock())

        feed.publish(ChangeEvent('service_requests', 'DELETE', old=_row()))

        assert recorder.named('tracking:update')[-1] == {'id': 'req-1', 'deleted': True}
        assert session.closed
        assert feed.subscriber_count() == 0

    def test_close_is_idempotent(self):
        feed = ChangeFeed()
        with TrackingSession(_row(), feed, Recorder(), clock=FakeClock()) as session:
            pass
        assert session.close() is False
        assert feed.subscriber_count() == 0


class TestLocationWatch:

    def test_push_delivers_positions(self):
        positions = []
        watch = LocationWatch('p1', lambda lat, lng: positions.append((lat, lng))).start()
        watch.push(5.6, -0.18)
        assert positions == [(5.6, -0.18)]
        assert watch.last_position == (5.6, -0.18)

    def test_failing_handler_stops_watch(self):
        stopped = []

        def boom(lat, lng):
            raise RuntimeError('write failed')

        watch = LocationWatch('p1', boom, on_stop=stopped.append).start()
        with pytest.raises(RuntimeError):
            watch.push(5.6, -0.18)

        assert stopped == [watch]
        with pytest.raises(WatchClosed):
            watch.push(5.6, -0.18)

    def test_stop_handler_runs_once(self):
        stopped = []
        watch = LocationWatch('p1', lambda lat, lng: None, on_stop=stopped.append).start()
        assert watch.stop() is True
        assert watch.stop() is False
        assert len(stopped) == 1

    def test_stopped_watch_cannot_restart(self):
        watch = LocationWatch('p1', lambda lat, lng: None).start()
        watch.stop()
        with pytest.raises(WatchClosed):
            watch.start()

    def test_registry_keeps_one_watch_per_provider(self):
        registry = WatchRegistry()
        first = registry.open('p1', lambda lat, lng: None)
        second = registry.open('p1', lambda lat, lng: None)

        assert first.stopped
        assert registry.get('p1') is second
        assert len(registry) == 1

    def test_registry_forgets_stopped_watches(self):
        registry = WatchRegistry()
        watch = registry.open('p1', lambda lat, lng: None)
        watch.stop()
        assert 'p1' not in registry
        assert registry.close('p1') is False
