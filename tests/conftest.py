"""
Pytest configuration and fixtures for the roadside rescue backend tests
"""
import os

import pytest

from roadside import create_app, db
from roadside.auth import generate_token
from roadside.models import Profile, ServiceRequest, User
from roadside.models.service_request import generate_tracking_code
from roadside.tracking.location_watch import watches


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing"""
    os.environ['FLASK_ENV'] = 'testing'
    return create_app('testing')


@pytest.fixture(autouse=True)
def database(app):
    """Fresh schema for every test, inside an application context"""
    with app.app_context():
        db.create_all()
        yield db
        db.session.remove()
        db.drop_all()
    watches.close_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


def _make_user(email, role, full_name, phone=None, lat=None, lng=None, available=False):
    user = User(email=email, role=role)
    user.set_password('Password123')
    user.profile = Profile(
        full_name=full_name,
        email=email,
        phone_number=phone,
        is_available=available,
        current_lat=lat,
        current_lng=lng,
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def customer():
    return _make_user('ama@example.com', 'customer', 'Ama Mensah', phone='+233241234567')


@pytest.fixture
def other_customer():
    return _make_user('esi@example.com', 'customer', 'Esi Owusu', phone='+233241111111')


@pytest.fixture
def provider():
    return _make_user('kofi@example.com', 'provider', 'Kofi Boateng', phone='+233201234567')


@pytest.fixture
def other_provider():
    return _make_user('yaw@example.com', 'provider', 'Yaw Asante', phone='+233501234567')


@pytest.fixture
def admin():
    return _make_user('admin@example.com', 'admin', 'Dispatch Desk')


@pytest.fixture
def make_user():
    """Factory for extra users"""
    return _make_user


def _headers(user):
    return {
        'Authorization': f'Bearer {generate_token(user)}',
        'Content-Type': 'application/json',
    }


@pytest.fixture
def customer_headers(customer):
    return _headers(customer)


@pytest.fixture
def provider_headers(provider):
    return _headers(provider)


@pytest.fixture
def admin_headers(admin):
    return _headers(admin)


@pytest.fixture
def headers_for():
    return _headers


@pytest.fixture
def make_request():
    """Factory for creating service requests directly in the database"""
    def _create_request(customer=None, **kwargs):
        defaults = {
            'tracking_code': generate_tracking_code(),
            'customer_id': customer.id if customer else None,
            'phone_number': '+233241234567',
            'service_type': 'towing',
            'location': 'Ring Road Central, Accra',
            'customer_lat': 5.6037,
            'customer_lng': -0.1870,
            'status': 'pending',
        }
        defaults.update(kwargs)

        service_request = ServiceRequest(**defaults)
        db.session.add(service_request)
        db.session.commit()
        return service_request

    return _create_request
