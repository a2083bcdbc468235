"""HTTP API blueprints"""
from flask import request


def json_body():
    """Request JSON as a dict; empty for missing or non-object bodies."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
