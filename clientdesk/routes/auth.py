"""Authentication, provisioning and profile endpoints for both principal kinds."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify

from ..errors import Forbidden, NotFound
from ..models import Admin, PrincipalKind
from ..services.accounts import (
    change_password,
    client_stats,
    create_admin,
    create_client,
    delete_admin,
    get_principal,
    list_admins,
    update_profile,
)
from ..services.authentication import LoginResult, login_as, unified_login
from ..services.authorization import Action
from ..services.orders import order_stats
from ..services.tickets import ticket_stats
from ..utils.auth import clear_auth_cookie, login_required, permission_required, require_identity, set_auth_cookie
from ..utils.http import json_body

auth_bp = Blueprint("auth", __name__, url_prefix="/api/admin")
session_bp = Blueprint("session", __name__)


def _login_response(result: LoginResult, include_redirect: bool = True):
    payload = {"message": "Login successful", "user": result.user_payload()}
    if include_redirect:
        payload["redirectTo"] = result.redirect_to
    return set_auth_cookie(jsonify(payload), result.token)


def _admin_summary(admin: Admin) -> dict:
    return {"id": admin.id, "name": admin.name, "email": admin.email, "role": admin.role.value}


@auth_bp.route("/unified-login", methods=["POST"])
def unified_login_view():
    data = json_body()
    return _login_response(unified_login(data.get("email"), data.get("password")))


@auth_bp.route("/login", methods=["POST"])
def admin_login():
    data = json_body()
    return _login_response(login_as(PrincipalKind.ADMIN, data.get("email"), data.get("password")), include_redirect=False)


@auth_bp.route("/client-login", methods=["POST"])
def client_login():
    data = json_body()
    return _login_response(login_as(PrincipalKind.CLIENT, data.get("email"), data.get("password")), include_redirect=False)


@auth_bp.route("/register", methods=["POST"])
def register():
    """Legacy public admin sign-up, only served when explicitly enabled."""
    if not current_app.config.get("ALLOW_ADMIN_SELF_REGISTRATION"):
        current_app.logger.warning("Blocked public admin registration attempt")
        raise Forbidden("Admin self-registration is disabled")
    data = json_body()
    admin = create_admin(name=data.get("name"), email=data.get("email"), password=data.get("password"), role=data.get("role"))
    return jsonify({"message": "Admin created successfully", "admin": _admin_summary(admin)}), 201


@auth_bp.route("/register-admin", methods=["POST"])
@permission_required(Action.MANAGE_ADMINS)
def register_admin():
    data = json_body()
    admin = create_admin(name=data.get("name"), email=data.get("email"), password=data.get("password"), role=data.get("role"))
    return jsonify({"message": "Admin registered successfully", "admin": _admin_summary(admin)}), 201


@auth_bp.route("/register-client", methods=["POST"])
@permission_required(Action.MANAGE_CLIENTS)
def register_client():
    identity = require_identity()
    data = json_body()
    client = create_client(
        name=data.get("name"),
        email=data.get("email"),
        password=data.get("password"),
        company=data.get("company"),
        phone=data.get("phone"),
        created_by=identity.principal_id,
    )
    return jsonify({"message": "Client registered successfully", "client": client.to_dict()}), 201


@auth_bp.route("/admins", methods=["GET"])
@permission_required(Action.MANAGE_ADMINS)
def admins_index():
    return jsonify([admin.to_dict() for admin in list_admins()])


@auth_bp.route("/admins/<int:admin_id>", methods=["DELETE"])
@permission_required(Action.MANAGE_ADMINS)
def admin_delete(admin_id: int):
    delete_admin(admin_id, require_identity().principal_id)
    return jsonify({"message": "Admin deleted successfully"})


@auth_bp.route("/dashboard", methods=["GET"])
@permission_required(Action.VIEW_DASHBOARD)
def dashboard():
    identity = require_identity()
    return jsonify(
        {
            "clients": client_stats(),
            "orders": order_stats(identity),
            "tickets": ticket_stats(identity),
        }
    )


def _current_principal():
    identity = require_identity()
    try:
        return get_principal(identity.kind, identity.principal_id)
    except NotFound as exc:
        raise NotFound("User not found") from exc


@auth_bp.route("/profile", methods=["GET"])
@login_required
def profile():
    principal = _current_principal()
    payload = principal.to_dict()
    if principal.kind == PrincipalKind.ADMIN:
        payload["adminRole"] = payload["role"]
    payload["role"] = principal.kind.value
    return jsonify(payload)


@auth_bp.route("/profile", methods=["PUT"])
@permission_required(Action.MANAGE_OWN_ACCOUNT)
def update_own_profile():
    principal = update_profile(_current_principal(), json_body())
    return jsonify(principal.to_dict())


@auth_bp.route("/change-password", methods=["POST"])
@permission_required(Action.MANAGE_OWN_ACCOUNT)
def change_own_password():
    data = json_body()
    change_password(_current_principal(), data.get("currentPassword"), data.get("newPassword"))
    return jsonify({"message": "Password changed successfully"})


@session_bp.route("/check-cookie", methods=["GET"])
def check_cookie():
    return jsonify(require_identity().to_dict())


@session_bp.route("/logout", methods=["POST"])
def logout():
    return clear_auth_cookie(jsonify({"message": "Logged out successfully!"}))
