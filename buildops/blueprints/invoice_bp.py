"""
Invoice blueprint.

Endpoints:
    GET    /api/v1/invoices                 - list (?kind=sales|purchases&search=&status=&project_id=)
    POST   /api/v1/invoices                 - create (line items or a flat amount)
    GET    /api/v1/invoices/recent          - canned invoice feed
    GET    /api/v1/invoices/<id>            - detail with line items
    PUT    /api/v1/invoices/<id>            - update
    DELETE /api/v1/invoices/<id>            - delete
    PATCH  /api/v1/invoices/<id>/status     - { "status": "paid" }
"""

from flask import Blueprint, jsonify, request

from buildops.blueprints import current_actor, json_body
from buildops.models.invoice import INVOICE_STATUSES
from buildops.services import invoice_service
from buildops.services.mock_data import fetch_recent_invoices
from buildops.utils.errors import E, api_error, register_service_error_handlers
from buildops.utils.helpers import db_commit_or_error

invoice_bp = Blueprint("invoices", __name__, url_prefix="/api/v1")
register_service_error_handlers(invoice_bp)


@invoice_bp.route("/invoices", methods=["GET"])
def list_invoices():
    status = request.args.get("status")
    if status and status not in INVOICE_STATUSES:
        return api_error(
            E.VALIDATION_INVALID, f"Invalid status '{status}'",
            details={"valid_values": sorted(INVOICE_STATUSES)},
        )
    invoices = invoice_service.list_invoices(
        kind=request.args.get("kind"),
        search=request.args.get("search"),
        status=status,
        project_id=request.args.get("project_id", type=int),
    )
    return jsonify({
        "invoices": [inv.to_dict(include_items=False) for inv in invoices],
        "total": len(invoices),
        "total_amount": round(sum(inv.amount for inv in invoices), 2),
    })


@invoice_bp.route("/invoices/recent", methods=["GET"])
def recent_invoices():
    invoices = fetch_recent_invoices()
    return jsonify({"invoices": invoices, "total": len(invoices)})


@invoice_bp.route("/invoices", methods=["POST"])
def create_invoice():
    data, err = json_body()
    if err:
        return err
    invoice = invoice_service.create_invoice(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(invoice.to_dict()), 201


@invoice_bp.route("/invoices/<int:invoice_id>", methods=["GET"])
def get_invoice(invoice_id):
    return jsonify(invoice_service.get_invoice(invoice_id).to_dict())


@invoice_bp.route("/invoices/<int:invoice_id>", methods=["PUT"])
def update_invoice(invoice_id):
    data, err = json_body()
    if err:
        return err
    invoice = invoice_service.update_invoice(invoice_id, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(invoice.to_dict())


@invoice_bp.route("/invoices/<int:invoice_id>", methods=["DELETE"])
def delete_invoice(invoice_id):
    invoice_service.delete_invoice(invoice_id, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": invoice_id})


@invoice_bp.route("/invoices/<int:invoice_id>/status", methods=["PATCH"])
def set_invoice_status(invoice_id):
    data, err = json_body()
    if err:
        return err
    status = str(data.get("status") or "").strip()
    if not status:
        return api_error(E.VALIDATION_REQUIRED, "Field 'status' is required")
    invoice = invoice_service.set_invoice_status(invoice_id, status, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(invoice.to_dict(include_items=False))
