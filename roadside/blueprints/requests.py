"""
Service requests blueprint
Creation, listing, detail and customer-side cancellation
"""
from flask import Blueprint, jsonify, request, g

from roadside.auth import optional_auth, require_auth
from roadside.commands import run
from roadside.extensions import limiter
from roadside.notifications import sms_guest_tracking_code
from roadside.services import lifecycle, queries
from roadside.utils import paginate_args
from . import json_body

requests_bp = Blueprint('requests', __name__)


@requests_bp.route('', methods=['POST'])
@limiter.limit("20 per hour")
@optional_auth
def create_request(user_id):
    """
    Request roadside help, signed in or as a guest
    POST /api/requests
    Body: {
        "service_type": "fuel_delivery",
        "location": "Ring Road, Accra",
        "description": "Ran out of fuel",
        "phone_number": "+233241234567",   (required for guests)
        "vehicle_make": "Toyota", "vehicle_model": "Corolla",
        "fuel_type": "petrol", "fuel_amount": 10,
        "customer_lat": 5.60, "customer_lng": -0.19
    }
    """
    service_request = run(lifecycle.create_request, g.current_user, json_body())
    if service_request.is_guest:
        sms_guest_tracking_code(service_request)
    return jsonify({
        'success': True,
        'request': service_request.to_dict(),
        'tracking_code': service_request.tracking_code,
    }), 201


@requests_bp.route('', methods=['GET'])
@require_auth
def list_requests(user_id):
    """
    Requests visible to the caller
    GET /api/requests?status=pending,assigned&page=1&per_page=20
    """
    page, per_page = paginate_args(request.args)
    query = queries.list_requests(g.current_user, request.args.get('status'))
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    return jsonify({
        'success': True,
        'requests': [r.to_dict() for r in pagination.items],
        'total': pagination.total,
        'page': pagination.page,
        'pages': pagination.pages,
    }), 200


@requests_bp.route('/<key>', methods=['GET'])
@require_auth
def get_request(user_id, key):
    """Detail by id or tracking code"""
    service_request = queries.request_detail(g.current_user, key)
    return jsonify({
        'success': True,
        'request': service_request.to_dict(include_relationships=True),
    }), 200


@requests_bp.route('/<key>/cancel', methods=['POST'])
@optional_auth
def cancel_request(user_id, key):
    """
    Cancel a request
    POST /api/requests/<id or code>/cancel
    Body (guests): { "phone_number": "..." }
    Body (optional): { "expected_version": 3 }
    """
    data = json_body()
    service_request = run(
        lifecycle.cancel_request,
        key,
        g.current_user,
        phone_number=data.get('phone_number'),
        expected_version=data.get('expected_version'),
    )
    return jsonify({'success': True, 'request': service_request.to_dict()}), 200


@requests_bp.route('/<key>/status', methods=['PUT'])
@require_auth
def update_status(user_id, key):
    """
    Advance a request along the provider's path
    PUT /api/requests/<id or code>/status
    Body: { "status": "en_route", "expected_version": 3 }
    """
    data = json_body()
    service_request = run(
        lifecycle.advance_status,
        key,
        data.get('status'),
        g.current_user,
        expected_version=data.get('expected_version'),
    )
    return jsonify({'success': True, 'request': service_request.to_dict()}), 200
