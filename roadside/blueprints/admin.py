"""
Admin blueprint
Dispatch, payments, users, marketplace content and the dashboard
"""
from flask import Blueprint, request, jsonify, g

from roadside.auth import require_admin
from roadside.commands import run
from roadside.errors import ValidationError
from roadside.models import ContactMessage, PartnershipApplication
from roadside.notifications import sms_provider_assigned
from roadside.services import accounts, content, lifecycle, payments, ratings
from roadside.tracking import find_closest_provider, find_nearby_providers
from roadside.utils import paginate_args, safe_float, safe_int, validate_coordinates
from . import json_body

admin_bp = Blueprint('admin', __name__)


def _paginated(query, key, serialize=None):
    page, per_page = paginate_args(request.args)
    pagination = query.paginate(page=page, per_page=per_page, error_out=False)
    serialize = serialize or (lambda row: row.to_dict())
    return {
        'success': True,
        key: [serialize(row) for row in pagination.items],
        'total': pagination.total,
        'page': pagination.page,
        'pages': pagination.pages,
    }


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

@admin_bp.route('/requests/<key>/assign', methods=['PUT'])
@require_admin
def assign_provider(user_id, key):
    """
    Assign or reassign a provider

    PUT /api/admin/requests/<id or code>/assign
    Body: { "provider_id": "...", "expected_version": 2 }
    """
    data = json_body()
    service_request = run(
        lifecycle.assign_provider,
        key,
        data.get('provider_id'),
        g.current_user,
        expected_version=data.get('expected_version'),
    )
    provider = service_request.provider
    customer_phone = service_request.phone_number
    if not customer_phone and service_request.customer and service_request.customer.profile:
        customer_phone = service_request.customer.profile.phone_number
    if customer_phone:
        sms_provider_assigned(
            customer_phone,
            service_request,
            provider.profile.full_name if provider and provider.profile else None,
        )
    return jsonify({
        'success': True,
        'request': service_request.to_dict(include_relationships=True),
    }), 200


@admin_bp.route('/requests/<key>/override', methods=['PUT'])
@require_admin
def override_status(user_id, key):
    """
    Force a status outside the normal transitions

    PUT /api/admin/requests/<id or code>/override
    Body: { "status": "pending", "reason": "Customer called back", "expected_version": 4 }
    """
    data = json_body()
    service_request = run(
        lifecycle.override_status,
        key,
        data.get('status'),
        g.current_user,
        reason=data.get('reason'),
        expected_version=data.get('expected_version'),
    )
    return jsonify({'success': True, 'request': service_request.to_dict()}), 200


@admin_bp.route('/requests/<key>', methods=['DELETE'])
@require_admin
def delete_request(user_id, key):
    data = json_body()
    deleted_id = run(
        lifecycle.delete_request,
        key,
        g.current_user,
        expected_version=data.get('expected_version'),
    )
    return jsonify({'success': True, 'id': deleted_id}), 200


@admin_bp.route('/providers/nearby', methods=['GET'])
@require_admin
def nearby_providers(user_id):
    """
    Available providers around a point, closest first

    GET /api/admin/providers/nearby?lat=5.6&lng=-0.19&radius_km=5&limit=10
    """
    lat, lng = request.args.get('lat'), request.args.get('lng')
    if not validate_coordinates(lat, lng):
        raise ValidationError('Valid lat and lng are required')
    radius = safe_float(request.args.get('radius_km'))
    limit = safe_int(request.args.get('limit'), 0) or None
    providers = find_nearby_providers(float(lat), float(lng), radius_km=radius, limit=limit)
    return jsonify({'success': True, 'providers': providers, 'total': len(providers)}), 200


@admin_bp.route('/providers/closest', methods=['GET'])
@require_admin
def closest_provider(user_id):
    lat, lng = request.args.get('lat'), request.args.get('lng')
    if not validate_coordinates(lat, lng):
        raise ValidationError('Valid lat and lng are required')
    return jsonify({
        'success': True,
        'provider': find_closest_provider(float(lat), float(lng)),
    }), 200


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

@admin_bp.route('/payments', methods=['POST'])
@require_admin
def record_payment(user_id):
    """
    Record the payment for a request and split it

    POST /api/admin/payments
    Body: {
        "service_request_id": "...",
        "amount": 150.00,
        "provider_percentage": 70,
        "payment_method": "mobile_money",
        "reference_number": "MM-20431"
    }
    """
    data = json_body()
    transaction = run(
        payments.record_payment,
        data.get('service_request_id'),
        data.get('amount'),
        data.get('provider_percentage'),
        g.current_user,
        payment_method=data.get('payment_method'),
        reference_number=data.get('reference_number'),
        notes=data.get('notes'),
        transaction_type=data.get('transaction_type', 'customer_to_business'),
    )
    return jsonify({'success': True, 'transaction': transaction.to_dict()}), 201


@admin_bp.route('/payments/<transaction_id>', methods=['PUT'])
@require_admin
def update_payment(user_id, transaction_id):
    data = json_body()
    transaction = run(
        payments.update_transaction,
        transaction_id,
        g.current_user,
        amount=data.get('amount'),
        provider_percentage=data.get('provider_percentage'),
        payment_method=data.get('payment_method'),
        reference_number=data.get('reference_number'),
        notes=data.get('notes'),
    )
    return jsonify({'success': True, 'transaction': transaction.to_dict()}), 200


@admin_bp.route('/payments', methods=['GET'])
@require_admin
def list_payments(user_id):
    return jsonify(_paginated(payments.list_transactions(g.current_user), 'transactions')), 200


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@admin_bp.route('/users', methods=['GET'])
@require_admin
def list_users(user_id):
    """
    List users

    GET /api/admin/users?role=provider
    """
    return jsonify(_paginated(accounts.list_users(request.args.get('role')), 'users')), 200


@admin_bp.route('/users', methods=['POST'])
@require_admin
def create_user(user_id):
    """
    Create an account of any role

    POST /api/admin/users
    Body: {
        "email": "driver@example.com",
        "password": "secret123",
        "full_name": "Yaw Asante",
        "phone_number": "+233501234567",
        "role": "provider"
    }
    """
    data = json_body()
    user = run(
        accounts.create_user_account,
        g.current_user,
        data.get('email'),
        data.get('password'),
        data.get('full_name'),
        data.get('phone_number'),
        data.get('role', 'customer'),
    )
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@admin_bp.route('/users/<target_id>', methods=['DELETE'])
@require_admin
def delete_user(user_id, target_id):
    deleted_id = run(accounts.delete_user, g.current_user, target_id)
    return jsonify({'success': True, 'id': deleted_id}), 200


@admin_bp.route('/users/<target_id>/role', methods=['PUT'])
@require_admin
def change_role(user_id, target_id):
    """
    PUT /api/admin/users/<user_id>/role
    Body: { "role": "provider" }
    """
    user = run(accounts.change_role, g.current_user, target_id, json_body().get('role'))
    return jsonify({'success': True, 'user': user.to_dict()}), 200


@admin_bp.route('/users/<target_id>/profile', methods=['PUT'])
@require_admin
def update_profile(user_id, target_id):
    profile = run(accounts.update_profile, g.current_user, target_id, json_body())
    return jsonify({'success': True, 'profile': profile.to_dict()}), 200


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

@admin_bp.route('/dashboard', methods=['GET'])
@require_admin
def dashboard(user_id):
    return jsonify({'success': True, **content.dashboard_summary()}), 200


# ---------------------------------------------------------------------------
# Partnership applications and contact messages
# ---------------------------------------------------------------------------

@admin_bp.route('/applications', methods=['GET'])
@require_admin
def list_applications(user_id):
    query = PartnershipApplication.query
    status = request.args.get('status')
    if status:
        query = query.filter_by(status=status)
    query = query.order_by(PartnershipApplication.created_at.desc())
    return jsonify(_paginated(query, 'applications')), 200


@admin_bp.route('/applications/<application_id>/status', methods=['PUT'])
@require_admin
def set_application_status(user_id, application_id):
    application = run(
        content.set_application_status,
        application_id,
        json_body().get('status'),
        g.current_user,
    )
    return jsonify({'success': True, 'application': application.to_dict()}), 200


@admin_bp.route('/applications/<application_id>/approve', methods=['POST'])
@require_admin
def approve_application(user_id, application_id):
    """
    Approve and open a provider account for the applicant

    POST /api/admin/applications/<id>/approve
    Body: { "password": "temporary123" }
    """
    application, user = run(
        content.approve_application,
        application_id,
        g.current_user,
        json_body().get('password'),
    )
    return jsonify({
        'success': True,
        'application': application.to_dict(),
        'user': user.to_dict(),
    }), 201


@admin_bp.route('/messages', methods=['GET'])
@require_admin
def list_messages(user_id):
    query = ContactMessage.query
    status = request.args.get('status')
    if status:
        query = query.filter_by(status=status)
    query = query.order_by(ContactMessage.created_at.desc())
    return jsonify(_paginated(query, 'messages')), 200


@admin_bp.route('/messages/<message_id>/status', methods=['PUT'])
@require_admin
def set_message_status(user_id, message_id):
    message = run(content.set_message_status, message_id, json_body().get('status'), g.current_user)
    return jsonify({'success': True, 'message': message.to_dict()}), 200


# ---------------------------------------------------------------------------
# Settings, legal documents and featured reviews
# ---------------------------------------------------------------------------

@admin_bp.route('/settings/<key>', methods=['PUT'])
@require_admin
def put_setting(user_id, key):
    """
    PUT /api/admin/settings/<key>
    Body: { "value": {"support_phone": "+233302000000"} }
    """
    setting = run(content.put_setting, key, json_body().get('value'), g.current_user)
    return jsonify({'success': True, 'setting': setting.to_dict()}), 200


@admin_bp.route('/legal/<document_type>', methods=['GET'])
@require_admin
def get_legal(user_id, document_type):
    document = content.get_legal_document(document_type, include_unpublished=True)
    return jsonify({'success': True, 'document': document.to_dict()}), 200


@admin_bp.route('/legal/<document_type>', methods=['PUT'])
@require_admin
def put_legal(user_id, document_type):
    """Legal bodies are stored as sent; HTML sanitizing is skipped under this path."""
    document = run(content.upsert_legal_document, document_type, json_body(), g.current_user)
    return jsonify({'success': True, 'document': document.to_dict()}), 200


@admin_bp.route('/ratings/<rating_id>/featured', methods=['PUT'])
@require_admin
def set_featured(user_id, rating_id):
    row = run(ratings.set_featured, rating_id, json_body().get('featured', True), g.current_user)
    return jsonify({'success': True, 'rating': row.to_dict()}), 200
