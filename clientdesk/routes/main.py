"""Service index and health probe."""
from __future__ import annotations

from flask import Blueprint, current_app

main_bp = Blueprint("main", __name__)


@main_bp.route("/")
def home():
    return {
        "message": f"Welcome to {current_app.config.get('APP_NAME', 'Clientdesk')} API",
        "endpoints": {
            "auth": "/api/admin",
            "clients": "/api/clients",
            "orders": "/api/orders",
            "tickets": "/api/tickets",
        },
    }


@main_bp.route("/health")
def health_check():
    return {"status": "ok"}
