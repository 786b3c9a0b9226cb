"""
Dive Shop Loyalty Service
Flask application factory
"""
import os
import logging
from flask import Flask
from flask_cors import CORS

from .extensions import db, migrate
from .config import get_config, validate_config
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_name: str = None, profile_store=None) -> Flask:
    """
    Application factory for creating Flask app instances.

    Args:
        config_name: Configuration environment (development, production, testing)
        profile_store: Optional ProfileStore to use instead of the configured backend

    Returns:
        Configured Flask application
    """
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    # Setup logging before anything else
    setup_logging(app.config.get('LOG_LEVEL'))

    validate_config(config_name, app.config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Profile store (SQL tables are created for the sql backend)
    from .stores import init_profile_store
    store = init_profile_store(app, profile_store)

    from .stores.sql import SQLProfileStore
    if isinstance(store, SQLProfileStore):
        from . import models  # noqa: F401 - register tables
        with app.app_context():
            db.create_all()

    # Configure CORS - allow the mobile/web frontend
    cors_origins = [
        'http://localhost:3000',
        'http://127.0.0.1:3000',
        'capacitor://localhost',
        'http://localhost',
    ]
    extra_origin = os.getenv('FRONTEND_ORIGIN')
    if extra_origin:
        cors_origins.append(extra_origin)
    CORS(app, origins=cors_origins, supports_credentials=True,
         allow_headers=['Content-Type', 'Authorization', 'X-Staff-Email'])

    # Register blueprints
    register_blueprints(app)

    # Register CLI commands
    from .commands import init_app as init_commands
    init_commands(app)

    # Background scheduler for the yearly loyalty check
    from .utils.scheduler import init_scheduler
    init_scheduler(app)

    # Register error handlers
    register_error_handlers(app)

    # Health check endpoint
    @app.route('/health')
    def health_check():
        return {'status': 'healthy', 'service': 'diveloyalty'}

    return app


def register_blueprints(app: Flask) -> None:
    """Register all API blueprints."""
    # Loyalty program (tiers, points, enrollment)
    from .api.loyalty import loyalty_bp

    # Scheduled Tasks (yearly loyalty check)
    from .api.scheduled_tasks import scheduled_tasks_bp

    app.register_blueprint(loyalty_bp, url_prefix='/api/loyalty')
    app.register_blueprint(scheduled_tasks_bp, url_prefix='/api/scheduled-tasks')


def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from .utils.errors import ErrorCode, error_response, from_exception, internal_error
    from .utils.exceptions import DiveLoyaltyError

    @app.errorhandler(DiveLoyaltyError)
    def loyalty_error(error):
        return from_exception(error)

    @app.errorhandler(400)
    def bad_request(error):
        return error_response(str(error), ErrorCode.INVALID_REQUEST, 400, log_error=False)

    @app.errorhandler(404)
    def not_found(error):
        return error_response('Not found', ErrorCode.NOT_FOUND, 404, log_error=False)

    @app.errorhandler(500)
    def server_error(error):
        return internal_error(details={'error': str(error)})
