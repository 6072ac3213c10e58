"""
Application factory for the Sampaguita senior citizen registry.

This module provides a function to create and configure the Flask
application. All extensions (SQLAlchemy, Migrate, JWT) are initialised
here and every blueprint of the JSON API is registered under ``/api``.

Environment variables control the database connection, the secret key
and where generated ledger CSV files are written. In production set
``DATABASE_URL``, ``JWT_SECRET_KEY`` and ``SAMPAGUITA_LOGS_DIR``. A
default configuration is provided for development, using SQLite when no
database URL is available.
"""

from __future__ import annotations

import logging
import os
from datetime import timedelta

from flask import Flask
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager

# instantiate extensions without binding them to an app yet.  They will
# be bound in create_app().
from .db import db  # use shared db object from db.py
migrate = Migrate()
jwt = JWTManager()


def _configure_logging(app: Flask) -> None:
    """Send application logs to stderr at ``LOG_LEVEL``."""
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    app.logger.setLevel(level)
    root = logging.getLogger()
    root.setLevel(level)

    # avoid duplicate handlers in reloaders
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
        root.addHandler(handler)


def create_app(test_config: dict | None = None) -> Flask:
    """Create and configure a Flask application.

    Parameters
    ----------
    test_config: dict | None, optional
        Optional configuration overrides used when running tests.

    Returns
    -------
    Flask
        A configured Flask application instance.
    """
    app = Flask(__name__)

    # Default configuration. Override using environment variables or
    # by passing a ``test_config`` mapping.
    app.config.update(
        SQLALCHEMY_DATABASE_URI=os.environ.get("DATABASE_URL", "sqlite:///sampaguita.db"),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        JWT_SECRET_KEY=os.environ.get("JWT_SECRET_KEY", "please-change-this-secret-key"),
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(hours=8),
        # EventSource cannot send headers, so the activity stream also accepts ?jwt=
        JWT_TOKEN_LOCATION=["headers", "query_string"],
        LOGS_DIR=os.environ.get("SAMPAGUITA_LOGS_DIR", os.path.join(app.instance_path, "logs")),
        MONTHLY_DUE_AMOUNT=int(os.environ.get("MONTHLY_DUE_AMOUNT", "10")),
        ACTIVITY_LOG_RETENTION=int(os.environ.get("ACTIVITY_LOG_RETENTION", "1000")),
        BARANGAY_NAME=os.environ.get("BARANGAY_NAME", "Sampaguita"),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
    )

    if test_config:
        app.config.update(test_config)

    _configure_logging(app)

    # Initialise extensions with the app
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)

    # Register custom error handlers
    from .errors import register_error_handlers
    register_error_handlers(app)

    # Register blueprints. Importing here avoids circular imports.
    from .routes.auth import auth_bp
    from .routes.seniors import seniors_bp
    from .routes.ledgers import dues_bp, pensions_bp
    from .routes.events import events_bp
    from .routes.admin import admin_bp
    from .routes.zones import zones_bp
    from .routes.reports import reports_bp
    from .routes.activity_logs import activity_logs_bp
    from .routes.home import home_bp
    from .routes.announcements import announcements_bp

    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(seniors_bp, url_prefix="/api")
    app.register_blueprint(dues_bp, url_prefix="/api/dues")
    app.register_blueprint(pensions_bp, url_prefix="/api/pensions")
    app.register_blueprint(events_bp, url_prefix="/api")
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    app.register_blueprint(zones_bp, url_prefix="/api")
    app.register_blueprint(reports_bp, url_prefix="/api")
    app.register_blueprint(activity_logs_bp, url_prefix="/api")
    app.register_blueprint(home_bp, url_prefix="/api")
    app.register_blueprint(announcements_bp, url_prefix="/api")

    @app.route("/api/health")
    def health_check() -> dict[str, str]:
        """Liveness probe for deployment platforms."""
        return {"status": "ok"}

    return app
