"""Utilities package"""
from .validators import (
    validate_email,
    validate_phone,
    validate_password,
    validate_coordinates,
    validate_uuid,
)
from .helpers import (
    normalize_phone,
    phones_match,
    parse_decimal,
    safe_float,
    safe_int,
    paginate_args,
)

__all__ = [
    'validate_email',
    'validate_phone',
    'validate_password',
    'validate_coordinates',
    'validate_uuid',
    'normalize_phone',
    'phones_match',
    'parse_decimal',
    'safe_float',
    'safe_int',
    'paginate_args',
]
