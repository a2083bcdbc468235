"""Admin-managed catalogs: offered services, served cities, homepage sections"""
from roadside import db
from .base import BaseModel


class Service(BaseModel):
    """
    A service offered on the request form.

    ``slug`` is the ``service_type`` stored on requests; switching a
    service off stops new requests of that type.
    """
    __tablename__ = 'services'

    name = db.Column(db.String(100), nullable=False)
    slug = db.Column(db.String(50), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    icon = db.Column(db.String(50), nullable=False, default='wrench')
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f'<Service {self.slug}>'


class City(BaseModel):
    __tablename__ = 'cities'

    name = db.Column(db.String(100), unique=True, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    def __repr__(self):
        return f'<City {self.name}>'


class HomepageSection(BaseModel):
    """A block on the public homepage that admins can hide or reorder"""
    __tablename__ = 'homepage_sections'

    name = db.Column(db.String(50), unique=True, nullable=False)
    label = db.Column(db.String(100), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)
