"""Service request model"""
import secrets
import string

from roadside import db
from .base import BaseModel

SERVICE_TYPES = (
    'towing',
    'tire_change',
    'jump_start',
    'lockout',
    'fuel_delivery',
    'minor_repair',
)

STATUSES = (
    'pending',
    'assigned',
    'accepted',
    'denied',
    'en_route',
    'in_progress',
    'completed',
    'cancelled',
)

# Statuses that require a provider on the row
PROVIDER_STATUSES = ('assigned', 'accepted', 'denied', 'en_route', 'in_progress', 'completed')

# Statuses in which the provider's live position is copied onto the request
TRACKED_STATUSES = ('accepted', 'en_route', 'in_progress')

# No 0/O or 1/I so codes survive being read out over the phone
TRACKING_CODE_ALPHABET = ''.join(
    c for c in string.ascii_uppercase + string.digits if c not in '01IO'
)


def generate_tracking_code(length=8):
    """Generate a short, human-shareable tracking code."""
    return ''.join(secrets.choice(TRACKING_CODE_ALPHABET) for _ in range(length))


class ServiceRequest(BaseModel):
    """
    ServiceRequest model - a customer's call for roadside help and its
    progress from pending to a terminal state.
    """
    __tablename__ = 'service_requests'
    __realtime__ = True

    tracking_code = db.Column(db.String(16), unique=True, nullable=False, index=True)

    # Parties
    customer_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'), index=True)
    provider_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='RESTRICT'), index=True)
    assigned_by = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))

    # Guest requesters are identified by phone
    phone_number = db.Column(db.String(30))

    # Description
    service_type = db.Column(db.String(30), nullable=False)
    description = db.Column(db.Text)
    location = db.Column(db.Text, nullable=False)

    # Vehicle
    vehicle_make = db.Column(db.String(100))
    vehicle_model = db.Column(db.String(100))
    vehicle_year = db.Column(db.String(10))
    vehicle_plate = db.Column(db.String(30))
    vehicle_image_url = db.Column(db.Text)

    # Fuel delivery only
    fuel_type = db.Column(db.String(30))
    fuel_amount = db.Column(db.Numeric(10, 2))

    # Geolocation
    customer_lat = db.Column(db.Float)
    customer_lng = db.Column(db.Float)
    provider_lat = db.Column(db.Float)
    provider_lng = db.Column(db.Float)

    status = db.Column(db.String(20), nullable=False, default='pending')
    assigned_at = db.Column(db.DateTime(timezone=True))
    completed_at = db.Column(db.DateTime(timezone=True))

    version = db.Column(db.Integer, nullable=False)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending', 'assigned', 'accepted', 'denied', "
            "'en_route', 'in_progress', 'completed', 'cancelled')",
            name='ck_service_requests_status',
        ),
        db.Index('idx_service_requests_status', 'status'),
    )

    __mapper_args__ = {'version_id_col': version}

    customer = db.relationship('User', foreign_keys=[customer_id])
    provider = db.relationship('User', foreign_keys=[provider_id])
    transaction = db.relationship('Transaction', back_populates='service_request', uselist=False,
                                  cascade='all, delete-orphan')
    ratings = db.relationship('Rating', back_populates='service_request',
                              cascade='all, delete-orphan')

    def __repr__(self):
        return f'<ServiceRequest {self.tracking_code} - {self.status}>'

    @property
    def is_guest(self):
        return self.customer_id is None

    @property
    def is_terminal(self):
        return self.status in ('completed', 'cancelled')

    def to_dict(self, include_relationships=False):
        data = super().to_dict()

        if include_relationships:
            provider_profile = self.provider.profile if self.provider else None
            data['provider_profile'] = {
                'full_name': provider_profile.full_name,
                'phone_number': provider_profile.phone_number,
            } if provider_profile else None
            data['transaction'] = self.transaction.to_dict() if self.transaction else None

        return data

    def to_public_dict(self):
        """Fields safe to show to anyone holding the tracking code."""
        provider_profile = self.provider.profile if self.provider else None
        return {
            'tracking_code': self.tracking_code,
            'service_type': self.service_type,
            'status': self.status,
            'location': self.location,
            'created_at': self.to_dict()['created_at'],
            'customer_lat': self.customer_lat,
            'customer_lng': self.customer_lng,
            'provider_lat': self.provider_lat,
            'provider_lng': self.provider_lng,
            'provider': {
                'full_name': provider_profile.full_name,
                'phone_number': provider_profile.phone_number,
            } if provider_profile else None,
        }
