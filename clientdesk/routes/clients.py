"""Client management for admins and self-service for signed-in clients."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..services.accounts import (
    change_password,
    client_stats,
    create_client,
    get_client,
    list_clients,
    set_client_status,
    update_client,
    update_profile,
)
from ..services.authorization import Action
from ..utils.auth import permission_required, require_identity
from ..utils.http import json_body

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.route("", methods=["GET"])
@permission_required(Action.MANAGE_CLIENTS)
def index():
    clients = list_clients(status=request.args.get("status"), search=request.args.get("search"))
    return jsonify([client.to_dict() for client in clients])


@clients_bp.route("/stats", methods=["GET"])
@permission_required(Action.MANAGE_CLIENTS)
def stats():
    return jsonify(client_stats())


# Self-service routes are registered before /<id> so they are never shadowed.
@clients_bp.route("/profile", methods=["GET"])
@permission_required(Action.CLIENT_SELF_SERVICE)
def own_profile():
    return jsonify(get_client(require_identity().principal_id).to_dict())


@clients_bp.route("/profile", methods=["PUT"])
@permission_required(Action.CLIENT_SELF_SERVICE)
def update_own_profile():
    data = json_body()
    allowed = {key: data[key] for key in ("name", "company", "phone", "avatar") if key in data}
    client = update_profile(get_client(require_identity().principal_id), allowed)
    return jsonify({"message": "Profile updated successfully", "client": client.to_dict()})


@clients_bp.route("/change-password", methods=["POST"])
@permission_required(Action.CLIENT_SELF_SERVICE)
def change_own_password():
    data = json_body()
    change_password(get_client(require_identity().principal_id), data.get("currentPassword"), data.get("newPassword"))
    return jsonify({"message": "Password changed successfully"})


@clients_bp.route("/<int:client_id>", methods=["GET"])
@permission_required(Action.MANAGE_CLIENTS)
def show(client_id: int):
    return jsonify(get_client(client_id).to_dict())


@clients_bp.route("", methods=["POST"])
@permission_required(Action.MANAGE_CLIENTS)
def create():
    data = json_body()
    client = create_client(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        company=data.get("company"),
        phone=data.get("phone"),
        created_by=require_identity().principal_id,
    )
    return jsonify({"message": "Client created successfully", "client": client.to_dict()}), 201


@clients_bp.route("/<int:client_id>", methods=["PUT"])
@permission_required(Action.MANAGE_CLIENTS)
def update(client_id: int):
    data = json_body()
    allowed = {key: data[key] for key in ("name", "company", "phone", "avatar", "status") if key in data}
    return jsonify(update_client(client_id, allowed).to_dict())


@clients_bp.route("/<int:client_id>/deactivate", methods=["PATCH"])
@permission_required(Action.MANAGE_CLIENTS)
def deactivate(client_id: int):
    client = set_client_status(client_id, "inactive")
    return jsonify({"message": "Client deactivated", "client": client.to_dict()})


@clients_bp.route("/<int:client_id>/activate", methods=["PATCH"])
@permission_required(Action.MANAGE_CLIENTS)
def activate(client_id: int):
    client = set_client_status(client_id, "active")
    return jsonify({"message": "Client activated", "client": client.to_dict()})
