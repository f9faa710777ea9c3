"""
BuildOps Dashboard
Flask Application Factory.

Usage:
    from buildops import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from buildops.config import config
from buildops.middleware.logging_config import configure_logging
from buildops.middleware.timing import init_request_timing
from buildops.models import db

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to the APP_ENV env var, or "development".

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config[config_name]())

    # ── Logging (must be first) ──────────────────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_request_timing(app)

    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.get_data() and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Models (registered on db.metadata before create_all) ─────────────
    from buildops.models import audit as _audit_models              # noqa: F401
    from buildops.models import client as _client_models            # noqa: F401
    from buildops.models import invoice as _invoice_models          # noqa: F401
    from buildops.models import project as _project_models          # noqa: F401
    from buildops.models import transaction as _transaction_models  # noqa: F401

    with app.app_context():
        db.create_all()
        app.logger.info("Tables ready on %s", app.config["SQLALCHEMY_DATABASE_URI"].split("://")[0])
        if app.config.get("SEED_MOCK_DATA"):
            from buildops.services.mock_data import seed_mock_data
            seed_mock_data()

    # ── Blueprints ───────────────────────────────────────────────────────
    from buildops.blueprints import all_blueprints

    for bp in all_blueprints():
        app.register_blueprint(bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-mock-data")
    def seed_mock_data_cmd():
        """Load the canned clients, projects, invoices and vouchers."""
        from buildops.services.mock_data import seed_mock_data
        counts = seed_mock_data()
        logger.info("Seeded mock data: %s", counts)

    @app.route("/api/v1/health")
    def health():
        return {"status": "ok", "app": "BuildOps Dashboard"}

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "code": "ERR_NOT_FOUND", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(413)
    def too_large(e):
        return {"error": "Request body too large"}, 413

    @app.errorhandler(415)
    def unsupported_media(e):
        return {"error": e.description, "code": "ERR_VALIDATION_INVALID"}, 415

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error", "code": "ERR_INTERNAL"}, 500

    return app
