"""
Health check blueprint.

Endpoints:
    GET /api/v1/health/ready  - simple 200 for load balancers
    GET /api/v1/health/live   - database round-trip and row counts
"""

import logging
import time

from flask import Blueprint, current_app, jsonify

from buildops.models import db

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api/v1/health")

_COUNTED_TABLES = ("clients", "projects", "invoices", "transactions")


@health_bp.route("/ready", methods=["GET"])
def ready():
    """Readiness probe: always 200 if the app is running."""
    return jsonify({"status": "ok"}), 200


@health_bp.route("/live", methods=["GET"])
def live():
    checks = {}
    overall = True

    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        db_ms = (time.perf_counter() - t0) * 1000
        counts = {
            tbl: db.session.execute(db.text(f"SELECT COUNT(*) FROM {tbl}")).scalar()
            for tbl in _COUNTED_TABLES
        }
        checks["database"] = {"status": "ok", "latency_ms": round(db_ms, 1), "rows": counts}
    except Exception as exc:
        checks["database"] = {"status": "error", "detail": str(exc)}
        overall = False
        logger.error("Health check: database failed: %s", exc)

    checks["app"] = {
        "name": "BuildOps Dashboard",
        "debug": current_app.debug,
        "testing": current_app.testing,
        "mock_data": current_app.config.get("SEED_MOCK_DATA", False),
    }

    status_code = 200 if overall else 503
    return jsonify({
        "status": "healthy" if overall else "degraded",
        "checks": checks,
    }), status_code
