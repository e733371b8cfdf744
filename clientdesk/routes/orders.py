"""Order endpoints; clients see only their own orders."""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..services import orders as order_service
from ..utils.auth import login_required, require_identity
from ..utils.http import json_body

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.route("", methods=["GET"])
@login_required
def index():
    filters = {key: request.args.get(key) for key in ("status", "category", "priority", "search")}
    return jsonify([order.to_dict() for order in order_service.list_orders(require_identity(), filters)])


@orders_bp.route("/stats", methods=["GET"])
@login_required
def stats():
    return jsonify(order_service.order_stats(require_identity()))


@orders_bp.route("/<int:order_id>", methods=["GET"])
@login_required
def show(order_id: int):
    return jsonify(order_service.get_order(order_id, require_identity()).to_dict())


@orders_bp.route("", methods=["POST"])
@login_required
def create():
    order = order_service.create_order(require_identity(), json_body())
    return jsonify(order.to_dict()), 201


@orders_bp.route("/<int:order_id>/status", methods=["PATCH"])
@login_required
def update_status(order_id: int):
    order = order_service.set_order_status(order_id, json_body().get("status"), require_identity())
    return jsonify(order.to_dict())
