from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
import logging
import os

db = SQLAlchemy()

logger = logging.getLogger(__name__)

_CRITICAL_ENV_VARS = [
    "JWT_SECRET",
    "SECRET_KEY",
    "DATABASE_URL",
]

_RECOMMENDED_ENV_VARS = [
    "CORS_ORIGINS",
    "TWILIO_ACCOUNT_SID",
    "SENTRY_DSN",
]

# Paths whose bodies are passed through untouched
_SANITIZE_SKIP_PREFIXES = ("/api/admin/legal/",)


def _configure_logging(app):
    from roadside.middleware import RequestIdFilter

    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s",
    )
    logging.getLogger("roadside").setLevel(level)
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())


def _startup_checks(config_name):
    if config_name in ("development", "testing"):
        return
    missing_critical = [v for v in _CRITICAL_ENV_VARS if not os.environ.get(v)]
    missing_recommended = [v for v in _RECOMMENDED_ENV_VARS if not os.environ.get(v)]
    if missing_critical:
        logger.critical("MISSING CRITICAL ENV VARS (app may not work correctly): %s",
                        ", ".join(missing_critical))
    if missing_recommended:
        logger.warning("Missing recommended env vars: %s", ", ".join(missing_recommended))


def _init_sentry(app):
    dsn = app.config.get("SENTRY_DSN")
    if not dsn:
        return
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration
    sentry_sdk.init(
        dsn=dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.1,
    )


def create_app(config_name=None):
    """Flask application factory"""
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    from roadside.config import config
    app.config.from_object(config[config_name])

    _configure_logging(app)
    _startup_checks(config_name)
    _init_sentry(app)

    from roadside.extensions import limiter, socketio, feed
    from roadside.middleware import RequestIdMiddleware
    from roadside.realtime import install_change_hooks

    # Initialize extensions
    db.init_app(app)
    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})
    limiter.init_app(app)
    app.wsgi_app = RequestIdMiddleware(app.wsgi_app)
    socketio.init_app(
        app,
        cors_allowed_origins=app.config['CORS_ORIGINS'],
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE'),
    )

    # Real-time change feed
    install_change_hooks(db.session, feed)
    from roadside import socket_events
    socket_events.install_bridge()

    _register_hooks(app)
    _register_error_handlers(app)

    # Register blueprints
    from roadside.blueprints.auth import auth_bp
    from roadside.blueprints.requests import requests_bp
    from roadside.blueprints.provider import provider_bp
    from roadside.blueprints.admin import admin_bp
    from roadside.blueprints.ratings import ratings_bp
    from roadside.blueprints.tracking import tracking_bp
    from roadside.blueprints.content import content_bp
    from roadside.blueprints.catalog import catalog_bp

    api_prefix = app.config['API_PREFIX']
    app.register_blueprint(auth_bp, url_prefix=f'{api_prefix}/auth')
    app.register_blueprint(requests_bp, url_prefix=f'{api_prefix}/requests')
    app.register_blueprint(provider_bp, url_prefix=f'{api_prefix}/provider')
    app.register_blueprint(admin_bp, url_prefix=f'{api_prefix}/admin')
    app.register_blueprint(ratings_bp, url_prefix=f'{api_prefix}/ratings')
    app.register_blueprint(tracking_bp, url_prefix=f'{api_prefix}/tracking')
    app.register_blueprint(content_bp, url_prefix=api_prefix)
    app.register_blueprint(catalog_bp, url_prefix=api_prefix)

    # Health check endpoint
    @app.route(f'{api_prefix}/health')
    def health():
        return {'status': 'healthy', 'service': 'roadside-rescue'}, 200

    with app.app_context():
        db.create_all()

    return app


def _register_hooks(app):
    from roadside.sanitize import sanitize_payload

    @app.before_request
    def sanitize_json_input():
        """Sanitize all string values in incoming JSON bodies."""
        if request.path.startswith(_SANITIZE_SKIP_PREFIXES):
            return
        if request.is_json:
            raw = request.get_json(silent=True)
            if raw is not None:
                sanitized = sanitize_payload(raw)
                # Later get_json() calls return the cleaned body
                request._cached_json = (sanitized, sanitized)

    @app.after_request
    def set_security_headers(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = "default-src 'none'"
        if not app.debug and not app.testing:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def _register_error_handlers(app):
    from roadside.errors import RescueError

    @app.errorhandler(RescueError)
    def handle_rescue_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(429)
    def ratelimit_handler(e):
        retry_after = dict(e.get_headers()).get("Retry-After") if hasattr(e, "get_headers") else None
        return jsonify({
            "error": "Too many requests. Please try again later.",
            "retry_after": int(retry_after) if retry_after else 60,
        }), 429
