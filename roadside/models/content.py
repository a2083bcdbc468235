"""Marketplace content: partnership applications, contact messages, settings, legal pages"""
from roadside import db
from .base import BaseModel

APPLICATION_STATUSES = ('pending', 'approved', 'rejected')
MESSAGE_STATUSES = ('new', 'read', 'archived')


class PartnershipApplication(BaseModel):
    """A business applying to join as a provider"""
    __tablename__ = 'partnership_applications'

    business_name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30), nullable=False)
    city = db.Column(db.String(100))
    message = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default='pending')
    reviewed_by = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
    reviewed_at = db.Column(db.DateTime(timezone=True))

    # Set once the application has been converted into a provider account
    created_user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))

    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'approved', 'rejected')",
                           name='ck_partnership_applications_status'),
    )


class ContactMessage(BaseModel):
    __tablename__ = 'contact_messages'

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(30))
    subject = db.Column(db.String(255))
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='new')

    __table_args__ = (
        db.CheckConstraint("status IN ('new', 'read', 'archived')",
                           name='ck_contact_messages_status'),
    )


class Setting(BaseModel):
    """Site-wide switch or value, e.g. ``maps_enabled``"""
    __tablename__ = 'settings'

    key = db.Column(db.String(100), unique=True, nullable=False, index=True)
    value = db.Column(db.JSON)
    updated_by = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))


class LegalDocument(BaseModel):
    __tablename__ = 'legal_documents'

    document_type = db.Column(db.String(50), unique=True, nullable=False)
    title = db.Column(db.String(255), nullable=False)
    content = db.Column(db.Text, nullable=False)
    is_published = db.Column(db.Boolean, nullable=False, default=True)
    updated_by = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
    last_updated = db.Column(db.DateTime(timezone=True))
