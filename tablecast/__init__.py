import logging
import os

from flask import Flask, jsonify, request
from flask_sqlalchemy import SQLAlchemy

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())

    # Initialize extensions
    db.init_app(app)

    # Import and register blueprints
    from tablecast.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from tablecast.utils.logging_config import setup_logging

    setup_logging(app)

    # Show configuration warnings
    show_config_warnings(app)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Wire the refresh scheduler; it only starts ticking when enabled
    from tablecast.services.scheduler_service import scheduler_service

    scheduler_service.init_app(app)

    return app


def show_config_warnings(app):
    """Log configuration warnings and status"""
    config_name = os.environ.get("FLASK_CONFIG", "default")

    logger.info(f"Tablecast starting with '{config_name}' configuration")

    if config_name == "production" and app.config.get("DEBUG"):
        logger.warning("DEBUG mode is enabled in production!")

    if app.config.get("STANDINGS_SOURCE") == "api" and not app.config.get(
        "FOOTBALL_DATA_API_KEY"
    ):
        logger.warning(
            "FOOTBALL_DATA_API_KEY not set - standings refreshes will fail "
            "(set STANDINGS_SOURCE=database to score from stored standings)"
        )

    db_url = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if "sqlite" in db_url:
        logger.info(
            "Using SQLite database (%s)",
            "in-memory" if "memory" in db_url else "tablecast.db file",
        )
    else:
        logger.info(
            f"Using database: {db_url.split('://')[0] if '://' in db_url else 'Unknown'}"
        )

    logger.info(
        f"Season {app.config.get('CURRENT_SEASON')}, refresh every "
        f"{app.config.get('STANDINGS_REFRESH_INTERVAL')}s "
        f"(scheduler {'enabled' if app.config.get('SCHEDULER_ENABLED') else 'disabled'})"
    )


def register_error_handlers(app):
    """Register global error handlers"""

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({"error": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({"error": "Method not allowed"}), 405

    @app.errorhandler(400)
    def bad_request_error(error):
        app.logger.warning(
            f"400 Bad Request: {str(error)} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({"error": "Internal server error"}), 500


from tablecast import models  # noqa: F401, E402 - imported for model registration
