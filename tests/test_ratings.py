"""
Rating tests
One rating per customer per request, updated in place on resubmission
"""
import pytest

from roadside.commands import execute, run
from roadside.errors import AuthenticationError, ConflictError, PermissionDenied, ValidationError
from roadside.models import Rating
from roadside.services import ratings


@pytest.fixture
def completed_request(customer, provider, make_request):
    return make_request(customer, status='completed', provider_id=provider.id)


class TestSubmitRating:

    def test_first_submission_creates(self, client, customer_headers, completed_request, provider):
        response = client.post('/api/ratings', headers=customer_headers, json={
            'service_request_id': completed_request.id,
            'rating': 5,
            'review': 'Arrived in twenty minutes',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['created'] is True
        assert data['rating']['rating'] == 5
        assert data['rating']['provider_id'] == provider.id

    def test_resubmission_updates_existing_row(self, client, customer_headers, completed_request):
        client.post('/api/ratings', headers=customer_headers, json={
            'service_request_id': completed_request.id,
            'rating': 5,
        })
        response = client.post('/api/ratings', headers=customer_headers, json={
            'service_request_id': completed_request.id,
            'rating': 4,
            'review': 'Good, slightly late',
        })

        assert response.status_code == 200
        assert response.get_json()['created'] is False
        rows = Rating.query.filter_by(service_request_id=completed_request.id).all()
        assert len(rows) == 1
        assert rows[0].rating == 4
        assert rows[0].review == 'Good, slightly late'

    def test_only_completed_requests(self, customer, provider, make_request):
        service_request = make_request(customer, status='en_route', provider_id=provider.id)
        result = execute(ratings.submit_rating, service_request.id, customer, 5)
        assert isinstance(result.error, ConflictError)

    def test_only_the_requesting_customer(self, other_customer, completed_request):
        result = execute(ratings.submit_rating, completed_request.id, other_customer, 5)
        assert isinstance(result.error, PermissionDenied)

    def test_guest_must_sign_in(self, completed_request):
        result = execute(ratings.submit_rating, completed_request.id, None, 5)
        assert isinstance(result.error, AuthenticationError)
        assert result.error.extra['redirect'] == '/auth'

    @pytest.mark.parametrize('value', [0, 6, 4.5, 'five', None, True])
    def test_rating_must_be_one_to_five(self, customer, completed_request, value):
        result = execute(ratings.submit_rating, completed_request.id, customer, value)
        assert isinstance(result.error, ValidationError)


class TestReadingRatings:

    def test_provider_summary(self, client, customer, other_customer, provider, make_request):
        first = make_request(customer, status='completed', provider_id=provider.id)
        second = make_request(other_customer, status='completed', provider_id=provider.id)
        run(ratings.submit_rating, first.id, customer, 5)
        run(ratings.submit_rating, second.id, other_customer, 4)

        response = client.get(f'/api/ratings/provider/{provider.id}')

        data = response.get_json()
        assert data['average_rating'] == 4.5
        assert data['rating_count'] == 2

    def test_provider_without_ratings(self, client, provider):
        data = client.get(f'/api/ratings/provider/{provider.id}').get_json()
        assert data['average_rating'] is None
        assert data['rating_count'] == 0

    def test_ratings_for_request_requires_access(self, client, customer, completed_request, headers_for,
                                                 other_customer):
        run(ratings.submit_rating, completed_request.id, customer, 3)

        own = client.get(f'/api/ratings/request/{completed_request.id}', headers=headers_for(customer))
        other = client.get(f'/api/ratings/request/{completed_request.id}',
                           headers=headers_for(other_customer))

        assert len(own.get_json()['ratings']) == 1
        assert other.status_code == 403

    def test_featured_reviews(self, client, admin_headers, customer, completed_request):
        row, _ = run(ratings.submit_rating, completed_request.id, customer, 5, 'Lifesaver')
        assert client.get('/api/ratings/featured').get_json()['ratings'] == []

        response = client.put(f'/api/admin/ratings/{row.id}/featured', headers=admin_headers,
                              json={'featured': True})
        assert response.status_code == 200

        featured = client.get('/api/ratings/featured').get_json()['ratings']
        assert [r['review'] for r in featured] == ['Lifesaver']
