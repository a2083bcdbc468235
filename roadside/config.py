"""
Configuration settings for different environments
"""
import os
import secrets
import logging
from decimal import Decimal
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _require_in_production(var_name, default):
    """Return env var value. In production, warn loudly if still using default."""
    value = os.environ.get(var_name, "")
    if value:
        return value
    env = os.environ.get("FLASK_ENV", "development")
    if env != "development" and default:
        logging.getLogger(__name__).warning(
            "%s is using an insecure default. Set it via environment variable!", var_name
        )
    return default


def _database_url(default):
    url = os.environ.get('DATABASE_URL') or default
    # Fix postgres:// to postgresql:// for SQLAlchemy 2.x
    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    """Base configuration"""
    SECRET_KEY = _require_in_production('SECRET_KEY', 'dev-only-' + secrets.token_hex(16))

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url('sqlite:///roadside.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Authentication
    JWT_SECRET = _require_in_production('JWT_SECRET', 'dev-only-' + secrets.token_hex(32))
    JWT_EXPIRES = timedelta(days=int(os.environ.get('JWT_EXPIRES_DAYS', 30)))

    # CORS
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')

    API_PREFIX = '/api'

    # Pagination
    ITEMS_PER_PAGE = 20
    MAX_ITEMS_PER_PAGE = 100

    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'

    # Socket.IO (None lets flask-socketio pick eventlet/gevent/threading)
    SOCKETIO_ASYNC_MODE = os.environ.get('SOCKETIO_ASYNC_MODE') or None

    # Payments
    CURRENCY = os.environ.get('CURRENCY', 'GHS')
    PAYMENT_AMOUNT_CEILING = Decimal(os.environ.get('PAYMENT_AMOUNT_CEILING', '100000.00'))
    DEFAULT_PAYMENT_METHOD = 'mobile_money'

    # Service requests
    TRACKING_CODE_LENGTH = 8
    ASSIGN_REQUIRE_AVAILABLE = os.environ.get('ASSIGN_REQUIRE_AVAILABLE', 'false').lower() in ['true', 'on', '1']
    NEARBY_PROVIDER_RADIUS_KM = float(os.environ.get('NEARBY_PROVIDER_RADIUS_KM', 5))

    # SMS
    TWILIO_ACCOUNT_SID = os.environ.get('TWILIO_ACCOUNT_SID', '')
    TWILIO_AUTH_TOKEN = os.environ.get('TWILIO_AUTH_TOKEN', '')
    TWILIO_FROM_NUMBER = os.environ.get('TWILIO_FROM_NUMBER', '')

    # Public link used in guest SMS
    PUBLIC_TRACKING_URL = os.environ.get('PUBLIC_TRACKING_URL', 'http://localhost:5173/track')

    # Monitoring
    SENTRY_DSN = os.environ.get('SENTRY_DSN')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 20,
        'max_overflow': 40,
        'pool_recycle': 3600,
        'pool_pre_ping': True,
    }


class TestingConfig(Config):
    """Testing configuration with isolated database and safe defaults"""
    TESTING = True
    DEBUG = False

    # Use in-memory SQLite for fast tests
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite:///:memory:')

    SECRET_KEY = 'test-secret-key'
    JWT_SECRET = 'test-jwt-secret'

    # Disable rate limiting in tests
    RATELIMIT_ENABLED = False

    SOCKETIO_ASYNC_MODE = 'threading'

    # Never talk to Twilio from tests
    TWILIO_ACCOUNT_SID = ''
    TWILIO_AUTH_TOKEN = ''
    TWILIO_FROM_NUMBER = ''

    SENTRY_DSN = None
    LOG_LEVEL = 'WARNING'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
