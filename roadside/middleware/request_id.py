"""
Request ID middleware for request tracing and logging
"""
import logging
import uuid

from flask import has_request_context, request


class RequestIdMiddleware:
    """
    WSGI middleware to add unique request ID to each request
    Useful for logging and tracing requests across services
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        request_id = environ.get('HTTP_X_REQUEST_ID') or str(uuid.uuid4())
        environ['request_id'] = request_id

        def custom_start_response(status, headers, exc_info=None):
            headers.append(('X-Request-ID', request_id))
            return start_response(status, headers, exc_info)

        return self.app(environ, custom_start_response)


class RequestIdFilter(logging.Filter):
    """Adds ``request_id`` to log records ('-' outside a request)."""

    def filter(self, record):
        record.request_id = '-'
        if has_request_context():
            record.request_id = request.environ.get('request_id', '-')
        return True
