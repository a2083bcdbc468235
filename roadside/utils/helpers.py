"""
Helper utilities
"""
import re
from decimal import Decimal, InvalidOperation

from flask import current_app

# Digits compared when matching a guest's phone number to a request
PHONE_MATCH_DIGITS = 9


def normalize_phone(phone):
    """
    Strip a phone number down to its digits, keeping a leading ``+``

    Args:
        phone (str): Phone number in any common format

    Returns:
        str: e.g. "+233 24-123 4567" -> "+233241234567"; "" for empty input
    """
    if not phone:
        return ''
    phone = str(phone).strip()
    digits = re.sub(r'\D', '', phone)
    if phone.startswith('+'):
        return '+' + digits
    return digits


def phones_match(a, b, digits=PHONE_MATCH_DIGITS):
    """
    Loosely compare two phone numbers by their trailing digits

    "0241234567" and "+233241234567" match because the national prefix
    and the country code are ignored.
    """
    a_digits = re.sub(r'\D', '', a or '')
    b_digits = re.sub(r'\D', '', b or '')
    if len(a_digits) < digits or len(b_digits) < digits:
        return False
    return a_digits[-digits:] == b_digits[-digits:]


def parse_decimal(value):
    """
    Convert a JSON number or numeric string to Decimal

    Floats go through ``str`` so 150.1 does not become 150.0999...

    Returns:
        Decimal: Parsed value, or None if not a finite number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def safe_float(value, default=None):
    """
    Safely convert value to float

    Args:
        value: Value to convert
        default: Default value if conversion fails

    Returns:
        float: Converted value or default
    """
    try:
        return float(value)
    except (ValueError, TypeError):
        return default


def safe_int(value, default=0):
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def paginate_args(args, default_per_page=None, max_per_page=None):
    """Read ``page`` and ``per_page`` from query args, clamped to the configured bounds."""
    if default_per_page is None:
        default_per_page = current_app.config.get('ITEMS_PER_PAGE', 20)
    if max_per_page is None:
        max_per_page = current_app.config.get('MAX_ITEMS_PER_PAGE', 100)
    page = max(safe_int(args.get('page'), 1), 1)
    per_page = safe_int(args.get('per_page'), default_per_page)
    per_page = min(max(per_page, 1), max_per_page)
    return page, per_page
