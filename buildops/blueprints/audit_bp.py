"""
BuildOps Dashboard
Activity log blueprint.

Endpoints:
    GET  /api/v1/activity              - list / filter activity rows
    GET  /api/v1/activity/<int:log_id> - single entry
"""

from flask import Blueprint, jsonify, request

from buildops.models import db
from buildops.models.audit import ActivityLog
from buildops.utils.errors import E, api_error

audit_bp = Blueprint("audit", __name__, url_prefix="/api/v1")


@audit_bp.route("/activity", methods=["GET"])
def list_activity():
    """
    Return paginated activity rows, newest first.

    Query params:
        project_id   - filter by project
        entity_type  - filter by entity type
        entity_id    - filter by entity PK
        action       - filter by action string (prefix match)
        actor        - filter by actor
        page         - page number (default 1)
        per_page     - items per page (default 50, max 200)
    """
    q = ActivityLog.query

    project_id = request.args.get("project_id", type=int)
    if project_id is not None:
        q = q.filter(ActivityLog.project_id == project_id)

    entity_type = request.args.get("entity_type")
    if entity_type:
        q = q.filter(ActivityLog.entity_type == entity_type)

    entity_id = request.args.get("entity_id")
    if entity_id:
        q = q.filter(ActivityLog.entity_id == entity_id)

    action = request.args.get("action")
    if action:
        q = q.filter(ActivityLog.action.startswith(action))

    actor = request.args.get("actor")
    if actor:
        q = q.filter(ActivityLog.actor == actor)

    q = q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc())

    page = max(1, request.args.get("page", 1, type=int))
    per_page = min(200, max(1, request.args.get("per_page", 50, type=int)))
    paginated = q.paginate(page=page, per_page=per_page, error_out=False)

    return jsonify({
        "activity": [log.to_dict() for log in paginated.items],
        "total": paginated.total,
        "page": paginated.page,
        "per_page": paginated.per_page,
        "pages": paginated.pages,
    })


@audit_bp.route("/activity/<int:log_id>", methods=["GET"])
def get_activity(log_id):
    log = db.session.get(ActivityLog, log_id)
    if not log:
        return api_error(E.NOT_FOUND, "Activity entry not found")
    return jsonify(log.to_dict())
