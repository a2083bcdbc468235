"""Transaction model - the payment recorded against a completed request"""
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from roadside import db
from .base import BaseModel

TRANSACTION_TYPES = ('customer_to_business', 'business_to_provider')

CENTS = Decimal('0.01')


def split_amount(amount, provider_percentage):
    """
    Split a payment between provider and platform.

    Returns (provider_amount, platform_amount), both rounded to two places;
    the platform takes the remainder so the two always add up to ``amount``.
    """
    amount = Decimal(amount)
    provider_amount = (amount * Decimal(provider_percentage) / Decimal(100)).quantize(
        CENTS, rounding=ROUND_HALF_UP
    )
    platform_amount = (amount - provider_amount).quantize(CENTS, rounding=ROUND_HALF_UP)
    return provider_amount, platform_amount


class Transaction(BaseModel):
    """One payment per service request"""
    __tablename__ = 'transactions'
    __realtime__ = True

    service_request_id = db.Column(db.String(36),
                                   db.ForeignKey('service_requests.id', ondelete='CASCADE'),
                                   nullable=False, unique=True)

    # Money
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    provider_percentage = db.Column(db.Numeric(5, 2), nullable=False)
    provider_amount = db.Column(db.Numeric(12, 2), nullable=False)
    platform_amount = db.Column(db.Numeric(12, 2), nullable=False)

    transaction_type = db.Column(db.String(30), nullable=False, default='customer_to_business')
    payment_method = db.Column(db.String(30), nullable=False, default='mobile_money')

    confirmed_by = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='SET NULL'))
    confirmed_at = db.Column(db.DateTime(timezone=True))

    reference_number = db.Column(db.String(100))
    notes = db.Column(db.Text)

    __table_args__ = (
        db.CheckConstraint('amount > 0', name='ck_transactions_amount_positive'),
        db.CheckConstraint('provider_percentage >= 0 AND provider_percentage <= 100',
                           name='ck_transactions_percentage_range'),
    )

    service_request = db.relationship('ServiceRequest', back_populates='transaction')

    def to_dict(self, exclude=None):
        data = super().to_dict(exclude=exclude)
        data['currency'] = current_app.config.get('CURRENCY', 'GHS')
        return data

    def __repr__(self):
        return f'<Transaction {self.amount} for {self.service_request_id}>'

    def apply_split(self):
        """Recompute and store both split amounts from amount and percentage."""
        self.provider_amount, self.platform_amount = split_amount(
            self.amount, self.provider_percentage
        )
