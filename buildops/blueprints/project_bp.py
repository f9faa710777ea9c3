"""
Project blueprint.

Endpoints:
    GET    /api/v1/projects                       - list (?search=&status=&include_archived=)
    POST   /api/v1/projects                       - create
    GET    /api/v1/projects/board                 - design / execution / other columns
    GET    /api/v1/projects/<id>                  - detail
    PUT    /api/v1/projects/<id>                  - update editable fields
    DELETE /api/v1/projects/<id>                  - delete (invoices cascade)
    POST   /api/v1/projects/<id>/transition       - stage transition
           Body: { "status": "execution", "contract_terms": {...}, "confirm": false }
    GET    /api/v1/projects/<id>/financials       - contract position and KPIs
    GET    /api/v1/projects/<id>/ledger           - invoices + vouchers, newest first

Layer contract:
    - Parse input, call the service, commit, serialise.
    - Business rules (stage changes, split on design debt) live in
      services.project_lifecycle.
"""

from flask import Blueprint, jsonify, request

from buildops.blueprints import bool_arg, current_actor, json_body
from buildops.models.project import PROJECT_STATUSES
from buildops.services import finance_service, project_lifecycle, project_service
from buildops.utils.errors import E, api_error, register_service_error_handlers
from buildops.utils.helpers import db_commit_or_error

project_bp = Blueprint("projects", __name__, url_prefix="/api/v1")
register_service_error_handlers(project_bp)


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    status = request.args.get("status")
    if status and status not in PROJECT_STATUSES:
        return api_error(
            E.VALIDATION_INVALID, f"Invalid status '{status}'",
            details={"valid_values": sorted(PROJECT_STATUSES)},
        )
    projects = project_service.list_projects(
        search=request.args.get("search"),
        status=status,
        include_archived=bool_arg("include_archived", default=True),
    )
    return jsonify({"projects": [p.to_dict() for p in projects], "total": len(projects)})


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data, err = json_body()
    if err:
        return err
    project = project_service.create_project(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/board", methods=["GET"])
def project_board():
    return jsonify(project_service.project_board(search=request.args.get("search")))


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project = project_service.get_project(project_id)
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    data, err = json_body()
    if err:
        return err
    project = project_service.update_project(project_id, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    project_service.delete_project(project_id, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": project_id})


@project_bp.route("/projects/<int:project_id>/transition", methods=["POST"])
def transition_project(project_id):
    """Move a project to another stage.

    Returns 200 with the transition result; 409 ERR_CONFIRMATION_REQUIRED
    when delivering with outstanding debt without ``confirm``; 409
    ERR_CONFLICT_STATE when the project already has an execution successor.
    """
    data, err = json_body()
    if err:
        return err
    target = str(data.get("status") or "").strip()
    if not target:
        return api_error(E.VALIDATION_REQUIRED, "Field 'status' is required")
    terms = data.get("contract_terms")
    if terms is not None and not isinstance(terms, dict):
        return api_error(E.VALIDATION_INVALID, "contract_terms must be an object")
    confirm = data.get("confirm", False)
    if not isinstance(confirm, bool):
        return api_error(E.VALIDATION_INVALID, "confirm must be true or false")

    result = project_lifecycle.transition_project(
        project_id,
        target,
        contract_terms=terms,
        confirm=confirm,
        actor=current_actor(),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result)


@project_bp.route("/projects/<int:project_id>/financials", methods=["GET"])
def project_financials(project_id):
    return jsonify(finance_service.project_financials(project_id))


@project_bp.route("/projects/<int:project_id>/ledger", methods=["GET"])
def project_ledger(project_id):
    rows = finance_service.project_ledger(project_id)
    return jsonify({"project_id": project_id, "entries": rows, "total": len(rows)})
