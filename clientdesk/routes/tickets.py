"""Support ticket endpoints shared by the admin dashboard and the client portal."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..services import tickets as ticket_service
from ..services.authorization import Action
from ..utils.auth import login_required, permission_required, require_identity
from ..utils.http import json_body

tickets_bp = Blueprint("tickets", __name__, url_prefix="/api/tickets")


@tickets_bp.route("", methods=["GET"])
@login_required
def index():
    filters = {key: request.args.get(key) for key in ("status", "priority", "category", "search", "client")}
    tickets = ticket_service.list_tickets(require_identity(), filters)
    return jsonify([ticket.to_dict(include_messages=False) for ticket in tickets])


@tickets_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    return jsonify(ticket_service.ticket_stats(require_identity()))


@tickets_bp.route("/<int:ticket_id>", methods=["GET"])
@login_required
def show(ticket_id: int):
    return jsonify(ticket_service.get_ticket(ticket_id, require_identity()).to_dict())


@tickets_bp.route("", methods=["POST"])
@login_required
def create():
    data = json_body()
    ticket = ticket_service.create_ticket(
        require_identity(),
        subject=data.get("subject"),
        description=data.get("description"),
        client_id=data.get("client"),
        order_id=data.get("order"),
        priority=data.get("priority"),
        category=data.get("category"),
        message=data.get("message"),
        attachments=data.get("attachments"),
    )
    return jsonify(ticket.to_dict()), 201


@tickets_bp.route("/<int:ticket_id>/messages", methods=["POST"])
@login_required
def add_message(ticket_id: int):
    data = json_body()
    ticket = ticket_service.append_message(ticket_id, require_identity(), data.get("message"), data.get("attachments"))
    return jsonify(ticket.to_dict())


@tickets_bp.route("/<int:ticket_id>/status", methods=["PATCH"])
@login_required
def update_status(ticket_id: int):
    ticket = ticket_service.set_status(ticket_id, json_body().get("status"), require_identity())
    return jsonify(ticket.to_dict())


@tickets_bp.route("/<int:ticket_id>/assign", methods=["PATCH"])
@permission_required(Action.ASSIGN_TICKET)
def assign(ticket_id: int):
    ticket = ticket_service.assign(ticket_id, require_identity(), json_body().get("adminId"))
    return jsonify(ticket.to_dict())


@tickets_bp.route("/<int:ticket_id>", methods=["DELETE"])
@login_required
def delete(ticket_id: int):
    ticket_service.delete_ticket(ticket_id, require_identity())
    return jsonify({"message": "Ticket deleted successfully"})
