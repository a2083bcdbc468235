"""
Authentication blueprint
Handles sign-up, sign-in, sign-out and the current session
"""
from flask import Blueprint, jsonify, g

from roadside.auth import bearer_token, require_auth
from roadside.commands import run
from roadside.extensions import limiter
from roadside.services import accounts
from roadside.services.availability import load_availability
from . import json_body

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/signup', methods=['POST'])
@limiter.limit("10 per minute")
def signup():
    """
    Register a new customer or provider
    POST /api/auth/signup
    Body: {
        "email": "ama@example.com",
        "password": "secret123",
        "full_name": "Ama Mensah",
        "phone_number": "+233241234567",
        "role": "customer"
    }
    """
    data = json_body()
    user, token = run(
        accounts.sign_up,
        data.get('email'),
        data.get('password'),
        data.get('full_name'),
        data.get('phone_number'),
        data.get('role', 'customer'),
    )
    return jsonify({
        'success': True,
        'token': token,
        'user': user.to_dict(),
        'default_view': user.default_view,
    }), 201


@auth_bp.route('/signin', methods=['POST'])
@limiter.limit("10 per minute")
def signin():
    """
    POST /api/auth/signin
    Body: { "email": "...", "password": "..." }
    """
    data = json_body()
    user, token = run(accounts.sign_in, data.get('email'), data.get('password'))
    return jsonify({
        'success': True,
        'token': token,
        'user': user.to_dict(),
        'default_view': user.default_view,
    }), 200


@auth_bp.route('/signout', methods=['POST'])
@require_auth
def signout(user_id):
    run(accounts.sign_out, bearer_token())
    return jsonify({'success': True}), 200


@auth_bp.route('/session', methods=['GET'])
@require_auth
def session(user_id):
    """Current user, role, profile and the dashboard to land on"""
    user = g.current_user
    data = accounts.current_session(user)
    if user.is_provider() and user.profile:
        data['availability'] = run(load_availability, user.profile)
    return jsonify(data), 200


@auth_bp.route('/profile', methods=['PUT'])
@require_auth
def update_profile(user_id):
    profile = run(accounts.update_profile, g.current_user, user_id, json_body())
    return jsonify({'success': True, 'profile': profile.to_dict()}), 200
