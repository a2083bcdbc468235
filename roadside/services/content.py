"""
Marketplace content managed by admins: partnership applications, contact
messages, site settings and legal documents, plus the dashboard summary.
"""
import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from roadside import db
from roadside.errors import ConflictError, NotFoundError, ValidationError
from roadside.models import (
    ContactMessage,
    LegalDocument,
    PartnershipApplication,
    Profile,
    ServiceRequest,
    Setting,
    Transaction,
    User,
)
from roadside.models.base import utcnow
from roadside.models.content import APPLICATION_STATUSES, MESSAGE_STATUSES
from roadside.models.service_request import STATUSES
from roadside.utils import validate_email, validate_phone, normalize_phone
from .accounts import create_user_account
from .lifecycle import ensure_admin

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Partnership applications
# ---------------------------------------------------------------------------

def submit_application(data):
    data = data or {}
    required = ['business_name', 'contact_person', 'email', 'phone']
    missing = [f for f in required if not (data.get(f) or '').strip()]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}')
    if not validate_email(data['email'].strip()):
        raise ValidationError('Invalid email')
    if not validate_phone(data['phone']):
        raise ValidationError('Invalid phone')

    application = PartnershipApplication(
        business_name=data['business_name'].strip(),
        contact_person=data['contact_person'].strip(),
        email=data['email'].lower().strip(),
        phone=normalize_phone(data['phone']),
        city=data.get('city'),
        message=data.get('message'),
        status='pending',
    )
    db.session.add(application)
    db.session.flush()
    logger.info('Partnership application from %s', application.business_name)
    return application


def _get_application(application_id):
    application = db.session.get(PartnershipApplication, application_id)
    if not application:
        raise NotFoundError('Application not found')
    return application


def set_application_status(application_id, status, admin):
    ensure_admin(admin)
    if status not in APPLICATION_STATUSES:
        raise ValidationError(f'Invalid status. Must be one of: {", ".join(APPLICATION_STATUSES)}')
    application = _get_application(application_id)
    application.status = status
    application.reviewed_by = admin.id
    application.reviewed_at = utcnow()
    return application


def approve_application(application_id, admin, password):
    """Approve an application and open a provider account for its contact."""
    ensure_admin(admin)
    application = _get_application(application_id)
    if application.created_user_id:
        raise ConflictError('This application already has an account')

    user = create_user_account(
        admin,
        email=application.email,
        password=password,
        full_name=application.contact_person,
        phone_number=application.phone,
        role='provider',
    )
    user.profile.location = application.city
    user.profile.bio = application.business_name

    application.status = 'approved'
    application.reviewed_by = admin.id
    application.reviewed_at = utcnow()
    application.created_user_id = user.id
    logger.info('Application %s approved as provider %s', application.id, user.id)
    return application, user


# ---------------------------------------------------------------------------
# Contact messages
# ---------------------------------------------------------------------------

def submit_contact_message(data):
    data = data or {}
    name = (data.get('name') or '').strip()
    email = (data.get('email') or '').strip()
    message = (data.get('message') or '').strip()
    if not name or not email or not message:
        raise ValidationError('name, email and message are required')
    if not validate_email(email):
        raise ValidationError('Invalid email')

    contact = ContactMessage(
        name=name,
        email=email.lower(),
        phone=data.get('phone'),
        subject=data.get('subject'),
        message=message,
        status='new',
    )
    db.session.add(contact)
    db.session.flush()
    return contact


def set_message_status(message_id, status, admin):
    ensure_admin(admin)
    if status not in MESSAGE_STATUSES:
        raise ValidationError(f'Invalid status. Must be one of: {", ".join(MESSAGE_STATUSES)}')
    contact = db.session.get(ContactMessage, message_id)
    if not contact:
        raise NotFoundError('Message not found')
    contact.status = status
    return contact


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

def get_setting(key, default=None):
    setting = Setting.query.filter_by(key=key).first()
    return setting.value if setting else default


def put_setting(key, value, admin):
    ensure_admin(admin)
    key = (key or '').strip()
    if not key:
        raise ValidationError('key is required')
    setting = Setting.query.filter_by(key=key).first()
    if setting is None:
        setting = Setting(key=key)
        db.session.add(setting)
    setting.value = value
    setting.updated_by = admin.id
    return setting


# ---------------------------------------------------------------------------
# Legal documents
# ---------------------------------------------------------------------------

def get_legal_document(document_type, include_unpublished=False):
    query = LegalDocument.query.filter_by(document_type=document_type)
    if not include_unpublished:
        query = query.filter_by(is_published=True)
    document = query.first()
    if not document:
        raise NotFoundError('Document not found')
    return document


def upsert_legal_document(document_type, data, admin):
    ensure_admin(admin)
    data = data or {}
    title = (data.get('title') or '').strip()
    content = data.get('content') or ''
    if not document_type or not title or not content.strip():
        raise ValidationError('document_type, title and content are required')

    document = LegalDocument.query.filter_by(document_type=document_type).first()
    if document is None:
        document = LegalDocument(document_type=document_type)
        db.session.add(document)
    document.title = title
    document.content = content
    document.is_published = bool(data.get('is_published', True))
    document.updated_by = admin.id
    document.last_updated = utcnow()
    return document


# ---------------------------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------------------------

def dashboard_summary():
    status_counts = dict(
        db.session.query(ServiceRequest.status, func.count(ServiceRequest.id))
        .group_by(ServiceRequest.status)
        .all()
    )
    requests_by_status = {status: status_counts.get(status, 0) for status in STATUSES}

    amount, provider_amount, platform_amount, payments = db.session.query(
        func.coalesce(func.sum(Transaction.amount), 0),
        func.coalesce(func.sum(Transaction.provider_amount), 0),
        func.coalesce(func.sum(Transaction.platform_amount), 0),
        func.count(Transaction.id),
    ).one()

    providers_online = (
        Profile.query.join(User, User.id == Profile.user_id)
        .filter(User.role == 'provider', Profile.is_available.is_(True))
        .count()
    )

    return {
        'requests_by_status': requests_by_status,
        'total_requests': sum(requests_by_status.values()),
        'revenue': {
            'total': float(Decimal(str(amount))),
            'provider': float(Decimal(str(provider_amount))),
            'platform': float(Decimal(str(platform_amount))),
            'payments': payments,
            'currency': current_app.config.get('CURRENCY', 'GHS'),
        },
        'providers_online': providers_online,
        'users_by_role': dict(
            db.session.query(User.role, func.count(User.id)).group_by(User.role).all()
        ),
        'new_messages': ContactMessage.query.filter_by(status='new').count(),
        'pending_applications': PartnershipApplication.query.filter_by(status='pending').count(),
    }
