"""
Catalog blueprint
Services, cities and homepage sections: public lists and admin management
"""
from flask import Blueprint, jsonify, g

from roadside.auth import require_admin
from roadside.commands import run
from roadside.services import catalog
from . import json_body

catalog_bp = Blueprint('catalog', __name__)


def _rows(key, rows):
    return jsonify({'success': True, key: [row.to_dict() for row in rows]}), 200


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

@catalog_bp.route('/services', methods=['GET'])
def list_services():
    """Active services for the request form, in display order"""
    return _rows('services', catalog.list_services())


@catalog_bp.route('/cities', methods=['GET'])
def list_cities():
    return _rows('cities', catalog.list_cities())


@catalog_bp.route('/homepage-sections', methods=['GET'])
def list_homepage_sections():
    return _rows('sections', catalog.list_homepage_sections())


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

@catalog_bp.route('/admin/services', methods=['GET'])
@require_admin
def admin_list_services(user_id):
    return _rows('services', catalog.list_services(include_inactive=True))


@catalog_bp.route('/admin/services', methods=['POST'])
@require_admin
def create_service(user_id):
    """
    POST /api/admin/services
    Body: {
        "name": "Fuel Delivery", "slug": "fuel_delivery",
        "description": "Petrol or diesel brought to you", "icon": "fuel",
        "is_active": true, "display_order": 3
    }
    """
    service = run(catalog.save_service, g.current_user, json_body())
    return jsonify({'success': True, 'service': service.to_dict()}), 201


@catalog_bp.route('/admin/services/<service_id>', methods=['PUT'])
@require_admin
def update_service(user_id, service_id):
    service = run(catalog.save_service, g.current_user, json_body(), service_id)
    return jsonify({'success': True, 'service': service.to_dict()}), 200


@catalog_bp.route('/admin/services/<service_id>', methods=['DELETE'])
@require_admin
def delete_service(user_id, service_id):
    deleted_id = run(catalog.delete_service, g.current_user, service_id)
    return jsonify({'success': True, 'id': deleted_id}), 200


@catalog_bp.route('/admin/cities', methods=['GET'])
@require_admin
def admin_list_cities(user_id):
    return _rows('cities', catalog.list_cities(include_inactive=True))


@catalog_bp.route('/admin/cities', methods=['POST'])
@require_admin
def create_city(user_id):
    city = run(catalog.save_city, g.current_user, json_body())
    return jsonify({'success': True, 'city': city.to_dict()}), 201


@catalog_bp.route('/admin/cities/<city_id>', methods=['PUT'])
@require_admin
def update_city(user_id, city_id):
    city = run(catalog.save_city, g.current_user, json_body(), city_id)
    return jsonify({'success': True, 'city': city.to_dict()}), 200


@catalog_bp.route('/admin/cities/<city_id>', methods=['DELETE'])
@require_admin
def delete_city(user_id, city_id):
    deleted_id = run(catalog.delete_city, g.current_user, city_id)
    return jsonify({'success': True, 'id': deleted_id}), 200


@catalog_bp.route('/admin/homepage-sections', methods=['GET'])
@require_admin
def admin_list_homepage_sections(user_id):
    return _rows('sections', catalog.list_homepage_sections(include_inactive=True))


@catalog_bp.route('/admin/homepage-sections', methods=['POST'])
@require_admin
def create_homepage_section(user_id):
    section = run(catalog.save_homepage_section, g.current_user, json_body())
    return jsonify({'success': True, 'section': section.to_dict()}), 201


@catalog_bp.route('/admin/homepage-sections/<section_id>', methods=['PUT'])
@require_admin
def update_homepage_section(user_id, section_id):
    section = run(catalog.save_homepage_section, g.current_user, json_body(), section_id)
    return jsonify({'success': True, 'section': section.to_dict()}), 200
