"""
Public content blueprint
Partnership applications, contact form, site settings and legal pages
"""
from flask import Blueprint, jsonify

from roadside.commands import run
from roadside.extensions import limiter
from roadside.services import content
from . import json_body

content_bp = Blueprint('content', __name__)


@content_bp.route('/partnerships', methods=['POST'])
@limiter.limit("5 per hour")
def submit_application():
    """
    POST /api/partnerships
    Body: {
        "business_name": "Accra Tow Co", "contact_person": "Kofi Boateng",
        "email": "kofi@example.com", "phone": "+233201234567",
        "city": "Accra", "message": "We run three tow trucks"
    }
    """
    application = run(content.submit_application, json_body())
    return jsonify({'success': True, 'application': application.to_dict()}), 201


@content_bp.route('/contact', methods=['POST'])
@limiter.limit("5 per hour")
def submit_contact():
    message = run(content.submit_contact_message, json_body())
    return jsonify({'success': True, 'message': message.to_dict()}), 201


@content_bp.route('/settings/<key>', methods=['GET'])
def get_setting(key):
    return jsonify({'success': True, 'key': key, 'value': content.get_setting(key)}), 200


@content_bp.route('/legal/<document_type>', methods=['GET'])
def get_legal(document_type):
    document = content.get_legal_document(document_type)
    return jsonify({'success': True, 'document': document.to_dict()}), 200
