"""SQLAlchemy models package"""
from .user import User, Profile, RevokedToken
from .service_request import ServiceRequest
from .transaction import Transaction
from .rating import Rating
from .content import PartnershipApplication, ContactMessage, Setting, LegalDocument
from .catalog import Service, City, HomepageSection

__all__ = [
    'User',
    'Profile',
    'RevokedToken',
    'ServiceRequest',
    'Transaction',
    'Rating',
    'PartnershipApplication',
    'ContactMessage',
    'Setting',
    'LegalDocument',
    'Service',
    'City',
    'HomepageSection',
]
