"""
Ratings blueprint
Customers rate the provider of a completed request
"""
from flask import Blueprint, jsonify, request, g

from roadside.auth import require_auth
from roadside.commands import run
from roadside.services import ratings
from roadside.services.queries import provider_rating_summary, request_detail
from roadside.utils import safe_int
from . import json_body

ratings_bp = Blueprint('ratings', __name__)


@ratings_bp.route('', methods=['POST'])
@require_auth
def submit_rating(user_id):
    """
    Create or update the caller's rating for a request
    POST /api/ratings
    Body: { "service_request_id": "...", "rating": 5, "review": "Quick and friendly" }
    """
    data = json_body()
    row, created = run(
        ratings.submit_rating,
        data.get('service_request_id'),
        g.current_user,
        data.get('rating'),
        data.get('review'),
    )
    return jsonify({
        'success': True,
        'rating': row.to_dict(),
        'created': created,
    }), 201 if created else 200


@ratings_bp.route('/request/<key>', methods=['GET'])
@require_auth
def for_request(user_id, key):
    service_request = request_detail(g.current_user, key)
    rows = ratings.ratings_for_request(service_request.id)
    return jsonify({'success': True, 'ratings': [r.to_dict() for r in rows]}), 200


@ratings_bp.route('/provider/<provider_id>', methods=['GET'])
def provider_summary(provider_id):
    return jsonify({'success': True, **provider_rating_summary(provider_id)}), 200


@ratings_bp.route('/featured', methods=['GET'])
def featured():
    limit = safe_int(request.args.get('limit'), 6)
    rows = ratings.featured_ratings(limit=max(1, min(limit, 50)))
    return jsonify({'success': True, 'ratings': [r.to_dict() for r in rows]}), 200
