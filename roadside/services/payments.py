"""
Payment recording.

Each completed request carries at most one transaction. The provider's
share is rounded to two places and the platform keeps the remainder, so
``provider_amount + platform_amount == amount`` always holds.
"""
import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError

from roadside import db
from roadside.errors import ConflictError, InvalidTransition, NotFoundError, ValidationError
from roadside.models import Transaction, ServiceRequest
from roadside.models.base import utcnow
from roadside.models.transaction import CENTS, TRANSACTION_TYPES
from roadside.utils import parse_decimal
from .lifecycle import ensure_admin, get_request

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ('mobile_money', 'cash', 'card', 'bank_transfer')

# A request in one of these states has no provider to pay
UNPAYABLE_STATUSES = ('pending', 'denied', 'cancelled')


def _validate_amount(amount):
    value = parse_decimal(amount)
    if value is None:
        raise ValidationError('amount must be a number')
    if value <= 0:
        raise ValidationError('amount must be greater than zero')
    ceiling = current_app.config.get('PAYMENT_AMOUNT_CEILING', Decimal('100000.00'))
    if value > ceiling:
        raise ValidationError(f'amount cannot exceed {ceiling}')
    if value != value.quantize(CENTS):
        raise ValidationError('amount cannot have more than 2 decimal places')
    return value.quantize(CENTS)


def _validate_percentage(provider_percentage):
    value = parse_decimal(provider_percentage)
    if value is None:
        raise ValidationError('provider_percentage must be a number')
    if value < 0 or value > 100:
        raise ValidationError('provider_percentage must be between 0 and 100')
    return value


def _validate_method(payment_method):
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f'Invalid payment_method. Must be one of: {", ".join(PAYMENT_METHODS)}')
    return payment_method


def record_payment(request_id, amount, provider_percentage, admin, payment_method=None,
                   reference_number=None, notes=None, transaction_type='customer_to_business'):
    """Record the payment for a request and complete it if it is not already."""
    ensure_admin(admin)
    amount = _validate_amount(amount)
    provider_percentage = _validate_percentage(provider_percentage)
    payment_method = _validate_method(
        payment_method or current_app.config.get('DEFAULT_PAYMENT_METHOD', 'mobile_money')
    )
    if transaction_type not in TRANSACTION_TYPES:
        raise ValidationError(f'Invalid transaction_type. Must be one of: {", ".join(TRANSACTION_TYPES)}')

    service_request = get_request(request_id)
    if service_request.status in UNPAYABLE_STATUSES or not service_request.provider_id:
        raise InvalidTransition(service_request.status, 'completed',
                                hint='Payment can only be recorded for a request with a provider')

    if Transaction.query.filter_by(service_request_id=service_request.id).first():
        raise ConflictError('Payment has already been recorded for this request')

    transaction = Transaction(
        service_request_id=service_request.id,
        amount=amount,
        provider_percentage=provider_percentage,
        transaction_type=transaction_type,
        payment_method=payment_method,
        confirmed_by=admin.id,
        confirmed_at=utcnow(),
        reference_number=reference_number,
        notes=notes,
    )
    transaction.apply_split()
    db.session.add(transaction)

    if service_request.status != 'completed':
        logger.info('Completing request %s on payment (was %s)',
                    service_request.tracking_code, service_request.status)
        service_request.status = 'completed'
        service_request.completed_at = service_request.completed_at or utcnow()

    try:
        db.session.flush()
    except IntegrityError:
        raise ConflictError('Payment has already been recorded for this request')

    logger.info('Recorded payment %s on request %s (provider %s, platform %s)',
                transaction.amount, service_request.tracking_code,
                transaction.provider_amount, transaction.platform_amount)
    return transaction


def update_transaction(transaction_id, admin, amount=None, provider_percentage=None,
                       payment_method=None, reference_number=None, notes=None):
    """Edit a recorded payment; both split amounts are recomputed."""
    ensure_admin(admin)
    transaction = db.session.get(Transaction, transaction_id)
    if not transaction:
        raise NotFoundError('Transaction not found')

    if amount is not None:
        transaction.amount = _validate_amount(amount)
    if provider_percentage is not None:
        transaction.provider_percentage = _validate_percentage(provider_percentage)
    if payment_method is not None:
        transaction.payment_method = _validate_method(payment_method)
    if reference_number is not None:
        transaction.reference_number = reference_number
    if notes is not None:
        transaction.notes = notes

    transaction.apply_split()
    logger.info('Transaction %s updated by %s: amount %s at %s%%',
                transaction.id, admin.id, transaction.amount, transaction.provider_percentage)
    return transaction


def list_transactions(user):
    """Admins see every payment, providers their jobs', customers their own."""
    query = Transaction.query.join(ServiceRequest, ServiceRequest.id == Transaction.service_request_id)
    if user.is_provider():
        query = query.filter(ServiceRequest.provider_id == user.id)
    elif not user.is_admin():
        query = query.filter(ServiceRequest.customer_id == user.id)
    return query.order_by(Transaction.created_at.desc())
