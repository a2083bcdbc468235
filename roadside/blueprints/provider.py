"""
Provider blueprint
Availability toggling, GPS updates and assigned jobs
"""
from flask import Blueprint, jsonify, g

from roadside.auth import require_provider
from roadside.commands import run
from roadside.services import availability
from roadside.services.lifecycle import active_requests_for
from . import json_body

provider_bp = Blueprint('provider', __name__)


@provider_bp.route('/availability', methods=['GET'])
@require_provider
def get_availability(user_id):
    """Current availability; a stale 'available' without a location is repaired"""
    profile = g.current_user.profile
    return jsonify({'success': True, **run(availability.load_availability, profile)}), 200


@provider_bp.route('/online', methods=['POST'])
@require_provider
def go_online(user_id):
    """
    POST /api/provider/online
    Body: { "lat": 5.6037, "lng": -0.1870 }
    """
    data = json_body()
    profile = run(availability.go_online, g.current_user, data.get('lat'), data.get('lng'))
    return jsonify({'success': True, 'profile': profile.to_dict()}), 200


@provider_bp.route('/location', methods=['POST'])
@require_provider
def push_location(user_id):
    """
    GPS fix from the provider's device
    POST /api/provider/location
    Body: { "lat": 5.6037, "lng": -0.1870 }
    """
    data = json_body()
    updated = run(availability.push_location, g.current_user, data.get('lat'), data.get('lng'))
    return jsonify({'success': True, 'requests_updated': updated}), 200


@provider_bp.route('/offline', methods=['POST'])
@require_provider
def go_offline(user_id):
    profile = run(availability.go_offline, g.current_user)
    return jsonify({'success': True, 'profile': profile.to_dict()}), 200


@provider_bp.route('/jobs', methods=['GET'])
@require_provider
def assigned_jobs(user_id):
    """Requests currently assigned to the provider and being worked"""
    jobs = active_requests_for(user_id)
    return jsonify({
        'success': True,
        'jobs': [job.to_dict(include_relationships=True) for job in jobs],
        'total': len(jobs),
    }), 200
