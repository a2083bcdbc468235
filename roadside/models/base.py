"""
Base model with common fields and methods
"""
from roadside import db
from datetime import datetime, timezone
from decimal import Decimal
import uuid


def generate_uuid():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


def serialize_value(value):
    """Convert a column value into its JSON representation."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


class BaseModel(db.Model):
    """Abstract base model with common fields"""
    __abstract__ = True

    # Tables whose committed changes are published on the change feed
    __realtime__ = False

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def row_dict(self, exclude=None):
        """
        Convert the mapped columns to a dictionary

        Args:
            exclude (list): List of fields to exclude

        Returns:
            dict: Model as dictionary
        """
        exclude = exclude or []
        data = {}

        for column in self.__table__.columns:
            if column.name not in exclude:
                data[column.name] = serialize_value(getattr(self, column.key))

        return data

    def to_dict(self, exclude=None):
        return self.row_dict(exclude=exclude)

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.id}>'
