"""
Public tracking blueprint
Anyone with a tracking code (or the phone number of a guest request) can follow it
"""
from flask import Blueprint, jsonify, request

from roadside.services import queries
from roadside.extensions import limiter

tracking_bp = Blueprint('tracking', __name__)


@tracking_bp.route('/<code>', methods=['GET'])
def track(code):
    """GET /api/tracking/<code>"""
    return jsonify({'success': True, 'request': queries.public_tracking(code)}), 200


@tracking_bp.route('/lookup', methods=['POST'])
@limiter.limit("30 per hour")
def lookup_by_phone():
    """
    Guest requests by phone number
    POST /api/tracking/lookup
    Body: { "phone_number": "0241234567" }
    """
    data = request.get_json(silent=True) or {}
    matches = queries.guest_requests_by_phone(data.get('phone_number'))
    return jsonify({
        'success': True,
        'requests': [r.to_public_dict() for r in matches],
    }), 200
