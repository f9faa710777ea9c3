"""
Transaction (voucher) blueprint.

Endpoints:
    GET    /api/v1/transactions               - list
           ?tab=expenses|revenues|transfers &sub_tab=completed|pending
           &search= &currency=USD|SYP &project_id=
    POST   /api/v1/transactions               - record a voucher
    GET    /api/v1/transactions/<id>          - detail
    PUT    /api/v1/transactions/<id>          - update
    DELETE /api/v1/transactions/<id>          - delete
    POST   /api/v1/transactions/<id>/settle   - reimburse a pending workshop payment
           Body: { "settle_date": "2024-06-01", "from_account": "Main Treasury" }
"""

from flask import Blueprint, jsonify, request

from buildops.blueprints import current_actor, json_body
from buildops.services import transaction_service
from buildops.utils.errors import register_service_error_handlers
from buildops.utils.helpers import db_commit_or_error, format_currency

transaction_bp = Blueprint("transactions", __name__, url_prefix="/api/v1")
register_service_error_handlers(transaction_bp)


@transaction_bp.route("/transactions", methods=["GET"])
def list_transactions():
    currency = (request.args.get("currency") or "USD").upper()
    result = transaction_service.list_transactions(
        tab=request.args.get("tab"),
        sub_tab=request.args.get("sub_tab", "completed"),
        search=request.args.get("search"),
        currency=currency,
        project_id=request.args.get("project_id", type=int),
    )
    return jsonify({
        "transactions": [t.to_dict() for t in result["transactions"]],
        "total": result["total"],
        "total_display": format_currency(result["total"], currency),
        "count": result["count"],
        "pending_settlements": transaction_service.pending_settlement_count(),
    })


@transaction_bp.route("/transactions", methods=["POST"])
def create_transaction():
    data, err = json_body()
    if err:
        return err
    txn = transaction_service.create_transaction(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(txn.to_dict()), 201


@transaction_bp.route("/transactions/<int:txn_id>", methods=["GET"])
def get_transaction(txn_id):
    return jsonify(transaction_service.get_transaction(txn_id).to_dict())


@transaction_bp.route("/transactions/<int:txn_id>", methods=["PUT"])
def update_transaction(txn_id):
    data, err = json_body()
    if err:
        return err
    txn = transaction_service.update_transaction(txn_id, data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(txn.to_dict())


@transaction_bp.route("/transactions/<int:txn_id>", methods=["DELETE"])
def delete_transaction(txn_id):
    transaction_service.delete_transaction(txn_id, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"deleted": True, "id": txn_id})


@transaction_bp.route("/transactions/<int:txn_id>/settle", methods=["POST"])
def settle_transaction(txn_id):
    data, err = json_body()
    if err:
        return err
    txn = transaction_service.settle_transaction(
        txn_id,
        settle_date=data.get("settle_date"),
        from_account=data.get("from_account"),
        actor=current_actor(),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(txn.to_dict())
