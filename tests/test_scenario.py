"""
End-to-end rescue: a customer requests fuel and follows the provider live
until the job is paid and rated
"""
from roadside import db
from roadside.commands import run
from roadside.extensions import feed
from roadside.models import Rating, ServiceRequest
from roadside.services import availability, lifecycle, payments
from roadside.services.queries import provider_rating_summary
from roadside.tracking import TrackingSession


class Recorder:
    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.events if name == event]


class TestRescueScenario:

    def test_request_to_rating(self, client, admin, customer, provider, customer_headers):
        # Customer runs out of fuel at (5.60, -0.19)
        response = client.post('/api/requests', headers=customer_headers, json={
            'service_type': 'fuel_delivery',
            'location': 'Kaneshie Market, Accra',
            'fuel_type': 'petrol',
            'fuel_amount': 10,
            'customer_lat': 5.60,
            'customer_lng': -0.19,
        })
        assert response.status_code == 201
        created = response.get_json()['request']
        assert created['provider_id'] is None
        assert created['status'] == 'pending'
        request_id = created['id']

        recorder = Recorder()
        row = db.session.get(ServiceRequest, request_id).row_dict()
        session = TrackingSession(row, feed, recorder, permission='granted')

        # Provider is online a few kilometres away
        run(availability.go_online, provider, 5.60, -0.22)

        run(lifecycle.assign_provider, request_id, provider.id, admin)
        run(lifecycle.advance_status, request_id, 'accepted', provider)
        run(lifecycle.advance_status, request_id, 'en_route', provider)

        assert run(availability.push_location, provider, 5.60, -0.20) == 1
        assert session.last_update['distance_km'] > 0.5
        run(availability.push_location, provider, 5.60, -0.192)
        assert session.last_update['distance_km'] < 0.5
        run(availability.push_location, provider, 5.60, -0.191)

        run(lifecycle.advance_status, request_id, 'in_progress', provider)
        run(lifecycle.advance_status, request_id, 'completed', provider)

        titles = [n['title'] for n in recorder.named('tracking:notification')]
        assert titles == [
            'Provider assigned',
            'Request accepted',
            'Provider on the way',
            'Provider approaching',
            'Provider arriving',
            'Service started',
            'Service completed',
        ]
        assert len(recorder.named('tracking:sound')) == 1
        assert session.row['status'] == 'completed'

        session.close()
        run(availability.go_offline, provider)

        transaction = run(payments.record_payment, request_id, '150.00', '70', admin)
        assert transaction.to_dict()['provider_amount'] == 105.0
        assert transaction.to_dict()['platform_amount'] == 45.0

        # Customer rates the job, then changes their mind
        first = client.post('/api/ratings', headers=customer_headers, json={
            'service_request_id': request_id,
            'rating': 5,
            'review': 'great service',
        })
        assert first.status_code == 201

        second = client.post('/api/ratings', headers=customer_headers, json={
            'service_request_id': request_id,
            'rating': 4,
        })
        assert second.status_code == 200
        assert second.get_json()['rating']['id'] == first.get_json()['rating']['id']
        assert second.get_json()['rating']['rating'] == 4

        assert Rating.query.filter_by(service_request_id=request_id).count() == 1
        summary = provider_rating_summary(provider.id)
        assert summary['average_rating'] == 4.0
        assert summary['rating_count'] == 1

        detail = client.get(f'/api/requests/{request_id}', headers=customer_headers).get_json()
        assert detail['request']['transaction']['provider_amount'] == 105.0
        assert detail['request']['transaction']['platform_amount'] == 45.0
