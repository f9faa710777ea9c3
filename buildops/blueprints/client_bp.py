"""
Client blueprint.

Endpoints:
    GET  /api/v1/clients   - list clients (?search=)
    POST /api/v1/clients   - register a client
"""

from flask import Blueprint, jsonify, request

from buildops.blueprints import current_actor, json_body
from buildops.services import project_service
from buildops.utils.errors import register_service_error_handlers
from buildops.utils.helpers import db_commit_or_error

client_bp = Blueprint("clients", __name__, url_prefix="/api/v1")
register_service_error_handlers(client_bp)


@client_bp.route("/clients", methods=["GET"])
def list_clients():
    clients = project_service.list_clients(search=request.args.get("search"))
    return jsonify({"clients": [c.to_dict() for c in clients], "total": len(clients)})


@client_bp.route("/clients", methods=["POST"])
def create_client():
    data, err = json_body()
    if err:
        return err
    client = project_service.create_client(data, actor=current_actor())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(client.to_dict()), 201
