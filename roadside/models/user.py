"""User, Profile and revoked-token models"""
from roadside import db
from .base import BaseModel, utcnow
from werkzeug.security import generate_password_hash, check_password_hash

ROLES = ('customer', 'provider', 'admin')

DEFAULT_VIEWS = {
    'customer': '/dashboard/customer',
    'provider': '/dashboard/provider',
    'admin': '/dashboard/admin',
}


class User(BaseModel):
    """
    User model - the identity record behind a session.
    Every user holds exactly one role: customer, provider or admin.
    """
    __tablename__ = 'users'

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='customer')
    last_login_at = db.Column(db.DateTime(timezone=True))

    __table_args__ = (
        db.CheckConstraint("role IN ('customer', 'provider', 'admin')", name='ck_users_role'),
        db.Index('idx_users_role', 'role'),
    )

    profile = db.relationship('Profile', back_populates='user', uselist=False,
                              cascade='all, delete-orphan', lazy='joined')

    def __repr__(self):
        return f'<User {self.email} ({self.role})>'

    def set_password(self, password):
        """Hash and set password"""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        """Verify password against hash"""
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def is_admin(self):
        return self.role == 'admin'

    def is_provider(self):
        return self.role == 'provider'

    def is_customer(self):
        return self.role == 'customer'

    @property
    def default_view(self):
        return DEFAULT_VIEWS.get(self.role, '/')

    def to_dict(self, include_profile=True):
        data = super().to_dict(exclude=['password_hash'])
        if include_profile:
            data['profile'] = self.profile.to_dict() if self.profile else None
        return data


class Profile(BaseModel):
    """
    Profile model - mutable attributes layered over the identity record.

    Providers additionally carry availability and their live position;
    ``is_available`` implies both coordinates are set.
    """
    __tablename__ = 'profiles'
    __realtime__ = True

    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'),
                        nullable=False, unique=True)

    full_name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255))
    phone_number = db.Column(db.String(30))
    location = db.Column(db.String(255))
    bio = db.Column(db.Text)
    avatar_url = db.Column(db.Text)
    years_experience = db.Column(db.Integer)

    # Provider availability
    is_available = db.Column(db.Boolean, nullable=False, default=False)
    current_lat = db.Column(db.Float)
    current_lng = db.Column(db.Float)
    location_updated_at = db.Column(db.DateTime(timezone=True))

    user = db.relationship('User', back_populates='profile')

    def __repr__(self):
        return f'<Profile {self.full_name}>'

    @property
    def has_location(self):
        return self.current_lat is not None and self.current_lng is not None

    def set_location(self, lat, lng):
        self.current_lat = lat
        self.current_lng = lng
        self.location_updated_at = utcnow()

    def clear_location(self):
        self.current_lat = None
        self.current_lng = None
        self.location_updated_at = None

    def to_dict(self):
        data = super().to_dict()
        data['role'] = self.user.role if self.user else None
        return data


class RevokedToken(BaseModel):
    """JWT ids invalidated by sign-out"""
    __tablename__ = 'revoked_tokens'

    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'))
