"""
Catalogs admins curate for the public site: the services on the request
form, the cities served and the homepage sections.

Public reads return active rows only, ordered by ``display_order``; admin
reads see everything.
"""
import logging
import re

from roadside import db
from roadside.errors import ConflictError, NotFoundError, ValidationError
from roadside.models import City, HomepageSection, Service, ServiceRequest
from roadside.models.service_request import SERVICE_TYPES
from roadside.utils import safe_int
from .lifecycle import ensure_admin

logger = logging.getLogger(__name__)

MAX_DISPLAY_ORDER = 1000

_SLUG_PATTERN = re.compile(r'^[a-z0-9_]+$')


def _ordered(model, include_inactive):
    query = model.query
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(model.display_order.asc(), model.name.asc()).all()


def _get(model, row_id, label):
    row = db.session.get(model, row_id)
    if not row:
        raise NotFoundError(f'{label} not found')
    return row


def _required_text(data, field, row=None):
    """Stripped ``data[field]``; required on create, optional on update."""
    if field not in data:
        if row is None:
            raise ValidationError(f'{field} is required')
        return getattr(row, field)
    value = (data.get(field) or '').strip()
    if not value:
        raise ValidationError(f'{field} cannot be empty')
    return value


def _apply_common(row, data):
    if 'is_active' in data:
        row.is_active = bool(data['is_active'])
    if 'display_order' in data:
        order = safe_int(data['display_order'], -1)
        if order < 0 or order > MAX_DISPLAY_ORDER:
            raise ValidationError(f'display_order must be between 0 and {MAX_DISPLAY_ORDER}')
        row.display_order = order
    elif row.display_order is None:
        # New rows go to the end of the list
        with db.session.no_autoflush:
            last = db.session.query(db.func.max(type(row).display_order)).scalar()
        row.display_order = (last or 0) + 1


def _ensure_unique(model, column, value, row):
    clash = model.query.filter(getattr(model, column) == value).first()
    if clash is not None and clash is not row:
        raise ConflictError(f'{column} "{value}" is already in use')


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def list_services(include_inactive=False):
    return _ordered(Service, include_inactive)


def save_service(admin, data, service_id=None):
    """
    Create a service, or update it when ``service_id`` is given.

    The slug must be one of the request service types.
    """
    ensure_admin(admin)
    data = data or {}
    service = _get(Service, service_id, 'Service') if service_id else None

    name = _required_text(data, 'name', service)
    slug = _required_text(data, 'slug', service).lower()
    if not _SLUG_PATTERN.match(slug) or slug not in SERVICE_TYPES:
        raise ValidationError(f'Invalid slug. Must be one of: {", ".join(SERVICE_TYPES)}')
    _ensure_unique(Service, 'slug', slug, service)

    if service is None:
        service = Service()
        db.session.add(service)
    service.name = name
    service.slug = slug
    if 'description' in data:
        service.description = data.get('description')
    if data.get('icon'):
        service.icon = data['icon'].strip()
    _apply_common(service, data)
    db.session.flush()
    logger.info('Service %s saved by %s (active=%s)', service.slug, admin.id, service.is_active)
    return service


def delete_service(admin, service_id):
    """Remove a service that no request uses yet; otherwise switch it off instead."""
    ensure_admin(admin)
    service = _get(Service, service_id, 'Service')
    in_use = ServiceRequest.query.filter_by(service_type=service.slug).count()
    if in_use:
        raise ConflictError(f'{service.name} is used by {in_use} request(s); deactivate it instead')
    db.session.delete(service)
    return service_id


# ---------------------------------------------------------------------------
# Cities
# ---------------------------------------------------------------------------

def list_cities(include_inactive=False):
    return _ordered(City, include_inactive)


def save_city(admin, data, city_id=None):
    ensure_admin(admin)
    data = data or {}
    city = _get(City, city_id, 'City') if city_id else None

    name = _required_text(data, 'name', city)
    _ensure_unique(City, 'name', name, city)

    if city is None:
        city = City()
        db.session.add(city)
    city.name = name
    _apply_common(city, data)
    db.session.flush()
    return city


def delete_city(admin, city_id):
    ensure_admin(admin)
    db.session.delete(_get(City, city_id, 'City'))
    return city_id


# ---------------------------------------------------------------------------
# Homepage sections
# ---------------------------------------------------------------------------

def list_homepage_sections(include_inactive=False):
    return _ordered(HomepageSection, include_inactive)


def save_homepage_section(admin, data, section_id=None):
    ensure_admin(admin)
    data = data or {}
    section = _get(HomepageSection, section_id, 'Section') if section_id else None

    name = _required_text(data, 'name', section).lower()
    if not _SLUG_PATTERN.match(name):
        raise ValidationError('name may only contain lowercase letters, digits and underscores')
    label = _required_text(data, 'label', section)
    _ensure_unique(HomepageSection, 'name', name, section)

    if section is None:
        section = HomepageSection()
        db.session.add(section)
    section.name = name
    section.label = label
    _apply_common(section, data)
    db.session.flush()
    return section
