"""
Validation utilities
"""
import re
import uuid


def validate_email(email):
    """
    Validate email format

    Args:
        email (str): Email address to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not email:
        return False

    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    return bool(re.match(pattern, email))


def validate_phone(phone):
    """
    Validate an international phone number

    Accepts an optional leading ``+`` followed by 9 to 15 digits once
    spaces, dashes, dots and parentheses are removed.

    Args:
        phone (str): Phone number to validate

    Returns:
        bool: True if valid, False otherwise
    """
    if not phone:
        return False

    cleaned = re.sub(r'[\s\-\(\)\.]', '', phone)
    return bool(re.match(r'^\+?\d{9,15}$', cleaned))


def validate_password(password):
    """
    Check password strength

    Returns:
        str: Error message, or None when the password is acceptable
    """
    if not password or len(password) < 8:
        return 'Password must be at least 8 characters'
    if not re.search(r'[A-Za-z]', password) or not re.search(r'\d', password):
        return 'Password must contain letters and numbers'
    return None


def validate_coordinates(lat, lng):
    """
    Validate a latitude/longitude pair

    Returns:
        bool: True if both values are numbers within range
    """
    try:
        lat = float(lat)
        lng = float(lng)
    except (TypeError, ValueError):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def validate_uuid(uuid_string):
    """
    Validate UUID format

    Args:
        uuid_string (str): UUID string to validate

    Returns:
        bool: True if valid UUID, False otherwise
    """
    try:
        uuid.UUID(str(uuid_string))
        return True
    except (ValueError, AttributeError, TypeError):
        return False
