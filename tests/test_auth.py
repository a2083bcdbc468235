"""
Authentication tests
Sign-up, sign-in, sign-out, token handling and role redirects
"""
import json
from datetime import datetime, timedelta, timezone

import jwt

from roadside import db
from roadside.auth import decode_token
from roadside.commands import execute
from roadside.errors import ConflictError
from roadside.models import User


class TestSignUp:
    """Self-service registration"""

    def test_signup_customer_success(self, client):
        response = client.post('/api/auth/signup', json={
            'email': 'New.Customer@Example.com',
            'password': 'SecurePass123',
            'full_name': 'New Customer',
            'phone_number': '024 123 4567',
        })

        assert response.status_code == 201
        data = json.loads(response.data)
        assert data['user']['email'] == 'new.customer@example.com'
        assert data['user']['role'] == 'customer'
        assert data['user']['profile']['full_name'] == 'New Customer'
        assert data['default_view'] == '/dashboard/customer'
        assert 'password_hash' not in data['user']
        assert decode_token(data['token'])['user_id'] == data['user']['id']

    def test_signup_provider_lands_on_provider_dashboard(self, client):
        response = client.post('/api/auth/signup', json={
            'email': 'tow@example.com',
            'password': 'SecurePass123',
            'full_name': 'Tow Truck',
            'role': 'provider',
        })

        assert response.status_code == 201
        assert response.get_json()['default_view'] == '/dashboard/provider'

    def test_signup_cannot_claim_admin(self, client):
        response = client.post('/api/auth/signup', json={
            'email': 'sneaky@example.com',
            'password': 'SecurePass123',
            'full_name': 'Sneaky',
            'role': 'admin',
        })

        assert response.status_code == 400

    def test_signup_duplicate_email(self, client, customer):
        response = client.post('/api/auth/signup', json={
            'email': customer.email,
            'password': 'SecurePass123',
            'full_name': 'Duplicate',
        })

        assert response.status_code == 409
        assert 'already exists' in response.get_json()['error']

    def test_signup_weak_password(self, client):
        response = client.post('/api/auth/signup', json={
            'email': 'weak@example.com',
            'password': '123',
            'full_name': 'Weak Password',
        })

        assert response.status_code == 400
        assert 'password' in response.get_json()['error'].lower()

    def test_signup_invalid_email(self, client):
        response = client.post('/api/auth/signup', json={
            'email': 'not-an-email',
            'password': 'SecurePass123',
            'full_name': 'Invalid Email',
        })

        assert response.status_code == 400


class TestSignIn:
    """Sign-in and the session endpoint"""

    def test_signin_success(self, client, customer):
        response = client.post('/api/auth/signin', json={
            'email': 'AMA@example.com',
            'password': 'Password123',
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['user']['id'] == customer.id
        assert data['default_view'] == '/dashboard/customer'

    def test_signin_wrong_password(self, client, customer):
        response = client.post('/api/auth/signin', json={
            'email': customer.email,
            'password': 'WrongPass999',
        })

        assert response.status_code == 401
        assert response.get_json()['error'] == 'Invalid email or password'

    def test_signin_missing_fields(self, client):
        response = client.post('/api/auth/signin', json={'email': 'ama@example.com'})
        assert response.status_code == 400

    def test_session_returns_role_and_view(self, client, provider, provider_headers):
        response = client.get('/api/auth/session', headers=provider_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['role'] == 'provider'
        assert data['default_view'] == '/dashboard/provider'
        assert data['availability']['is_available'] is False


class TestTokens:
    """JWT validation and revocation"""

    def test_missing_token_redirects_to_auth(self, client):
        response = client.get('/api/auth/session')

        assert response.status_code == 401
        assert response.get_json()['redirect'] == '/auth'

    def test_expired_token_rejected(self, app, client, customer):
        token = jwt.encode({
            'user_id': customer.id,
            'role': customer.role,
            'jti': 'expired-token',
            'exp': datetime.now(timezone.utc) - timedelta(hours=1),
        }, app.config['JWT_SECRET'], algorithm='HS256')

        response = client.get('/api/auth/session', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401

    def test_token_signed_with_other_secret_rejected(self, client, customer):
        token = jwt.encode({
            'user_id': customer.id,
            'jti': 'forged',
            'exp': datetime.now(timezone.utc) + timedelta(hours=1),
        }, 'not-the-secret', algorithm='HS256')

        response = client.get('/api/auth/session', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 401

    def test_signout_revokes_token(self, client, customer_headers):
        response = client.post('/api/auth/signout', headers=customer_headers)
        assert response.status_code == 200

        response = client.get('/api/auth/session', headers=customer_headers)
        assert response.status_code == 401


class TestRoleGuards:
    """Wrong-role access sends the caller to their own dashboard"""

    def test_customer_blocked_from_admin(self, client, customer_headers):
        response = client.get('/api/admin/dashboard', headers=customer_headers)

        assert response.status_code == 403
        assert response.get_json()['redirect'] == '/dashboard/customer'

    def test_admin_blocked_from_provider_routes(self, client, admin_headers):
        response = client.get('/api/provider/availability', headers=admin_headers)

        assert response.status_code == 403
        assert response.get_json()['redirect'] == '/dashboard/admin'


class TestProfile:

    def test_update_own_profile(self, client, customer, customer_headers):
        response = client.put('/api/auth/profile', headers=customer_headers, json={
            'full_name': 'Ama K. Mensah',
            'location': 'East Legon',
        })

        assert response.status_code == 200
        profile = response.get_json()['profile']
        assert profile['full_name'] == 'Ama K. Mensah'
        assert profile['location'] == 'East Legon'
        assert profile['role'] == 'customer'

    def test_empty_name_rejected(self, client, customer_headers):
        response = client.put('/api/auth/profile', headers=customer_headers, json={'full_name': '  '})
        assert response.status_code == 400


class TestDuplicateWrites:
    """Uniqueness violations raised at commit time"""

    def test_unique_violation_becomes_conflict(self, customer):
        def insert_clash():
            clash = User(email=customer.email, role='customer')
            clash.set_password('Password123')
            db.session.add(clash)

        result = execute(insert_clash)

        assert not result.ok
        assert isinstance(result.error, ConflictError)
        assert result.error.status_code == 409
        assert User.query.filter_by(email='ama@example.com').count() == 1
