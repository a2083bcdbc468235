"""Input sanitization for incoming JSON bodies."""

import html


def sanitize_string(value):
    """Escape HTML entities so user-supplied text cannot inject markup."""
    if not isinstance(value, str):
        return value
    return html.escape(value, quote=True)


def sanitize_dict(data):
    """Recursively sanitize every string in a dict/list structure.

    Non-string leaves (int, float, bool, None) are returned unchanged.
    """
    if isinstance(data, dict):
        return {key: sanitize_dict(value) for key, value in data.items()}
    if isinstance(data, list):
        return [sanitize_dict(item) for item in data]
    return sanitize_string(data)


# Fields that are compared or stored verbatim and never rendered as markup
SKIP_FIELDS = frozenset({'password', 'token'})


def sanitize_payload(data):
    """Sanitize a request body, leaving credentials untouched."""
    if isinstance(data, dict):
        return {
            key: value if key in SKIP_FIELDS else sanitize_dict(value)
            for key, value in data.items()
        }
    return sanitize_dict(data)
