"""
BuildOps Dashboard
Blueprint registry and shared request helpers.
"""

from flask import request

from buildops.utils.errors import E, api_error


def current_actor() -> str:
    """Actor name recorded on activity rows (``X-User`` header)."""
    return (request.headers.get("X-User") or "").strip() or "system"


def json_body():
    """Return ``(data, err_response)`` for the request's JSON object body.

    An empty body reads as ``{}``; anything that is not a JSON object is a 400.
    """
    if not request.get_data():
        return {}, None
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, api_error(E.VALIDATION_INVALID, "Request body must be a JSON object")
    return data, None


def bool_arg(name: str, default: bool = False) -> bool:
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def all_blueprints():
    from buildops.blueprints.audit_bp import audit_bp
    from buildops.blueprints.client_bp import client_bp
    from buildops.blueprints.dashboard_bp import dashboard_bp
    from buildops.blueprints.health_bp import health_bp
    from buildops.blueprints.invoice_bp import invoice_bp
    from buildops.blueprints.project_bp import project_bp
    from buildops.blueprints.transaction_bp import transaction_bp

    return [
        client_bp,
        project_bp,
        invoice_bp,
        transaction_bp,
        dashboard_bp,
        audit_bp,
        health_bp,
    ]
