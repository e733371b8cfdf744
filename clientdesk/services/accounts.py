"""Credential store for the two principal tables."""
from __future__ import annotations

from typing import Dict, Optional

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import Conflict, NotFound, ValidationError
from ..extensions import db
from ..models import Admin, AdminRole, Client, ClientStatus, PrincipalKind
from ..utils import normalize_email

PRINCIPAL_MODELS = {PrincipalKind.ADMIN: Admin, PrincipalKind.CLIENT: Client}


def _clean(value) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def validate_password(raw_password: str | None) -> str:
    min_length = int(current_app.config.get("PASSWORD_MIN_LENGTH", 6))
    if not raw_password or len(raw_password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")
    return raw_password


def _require_identity_fields(name, email, password) -> tuple[str, str, str]:
    name = _clean(name)
    email = normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("Name, email and password are required")
    if "@" not in email or len(email) > 255:
        raise ValidationError("A valid email address is required")
    return name, email, validate_password(password)


def find_principal(kind: PrincipalKind, email: str | None):
    """Case-insensitive lookup scoped to one kind's table only."""
    normalized = normalize_email(email)
    if not normalized:
        return None
    model = PRINCIPAL_MODELS[kind]
    return model.query.filter_by(email=normalized).first()


def get_principal(kind: PrincipalKind, principal_id: int):
    principal = db.session.get(PRINCIPAL_MODELS[kind], principal_id)
    if principal is None:
        raise NotFound(f"{kind.value.capitalize()} not found")
    return principal


def get_admin(admin_id: int) -> Admin:
    return get_principal(PrincipalKind.ADMIN, admin_id)


def get_client(client_id: int) -> Client:
    return get_principal(PrincipalKind.CLIENT, client_id)


def _commit_new(principal, label: str) -> None:
    db.session.add(principal)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise Conflict(f"{label} with this email already exists") from exc


def create_admin(*, name, email, password, role=None) -> Admin:
    name, email, password = _require_identity_fields(name, email, password)
    try:
        admin_role = AdminRole(role) if role else AdminRole.ADMIN
    except ValueError as exc:
        raise ValidationError("Role must be one of admin, editor, viewer") from exc
    if find_principal(PrincipalKind.ADMIN, email):
        raise Conflict("Admin with this email already exists")

    admin = Admin(name=name, email=email, role=admin_role)
    admin.set_password(password)
    _commit_new(admin, "Admin")
    current_app.logger.info("Created admin #%s (%s)", admin.id, admin_role.value)
    return admin


def create_client(*, name, email, password, company=None, phone=None, created_by: Optional[int] = None) -> Client:
    name, email, password = _require_identity_fields(name, email, password)
    if find_principal(PrincipalKind.CLIENT, email):
        raise Conflict("Client with this email already exists")

    client = Client(
        name=name,
        email=email,
        company=_clean(company),
        phone=_clean(phone),
        status=ClientStatus.ACTIVE,
        created_by_id=created_by,
    )
    client.set_password(password)
    _commit_new(client, "Client")
    current_app.logger.info("Provisioned client #%s by admin #%s", client.id, created_by)
    return client


def update_profile(principal, data: Dict) -> object:
    """Apply profile fields; email and password are never changed here."""
    if "name" in data:
        name = _clean(data.get("name"))
        if not name:
            raise ValidationError("Name cannot be empty")
        principal.name = name
    if isinstance(principal, Client):
        for field in ("company", "phone"):
            if field in data:
                setattr(principal, field, _clean(data.get(field)))
    if "avatar" in data:
        principal.avatar = _clean(data.get("avatar"))
    db.session.commit()
    return principal


def _client_status(value) -> ClientStatus:
    try:
        return ClientStatus(value)
    except ValueError as exc:
        raise ValidationError("Status must be active or inactive") from exc


def update_client(client_id: int, data: Dict) -> Client:
    """Admin-side client edit, including status but never the password."""
    client = get_client(client_id)
    if "status" in data:
        client.status = _client_status(data.get("status"))
    return update_profile(client, data)


def set_client_status(client_id: int, status) -> Client:
    client = get_client(client_id)
    client.status = _client_status(status)
    db.session.commit()
    current_app.logger.info("Client #%s marked %s", client.id, client.status.value)
    return client


def change_password(principal, current_password: str | None, new_password: str | None) -> None:
    if not current_password or not new_password:
        raise ValidationError("Current and new password are required")
    if not principal.check_password(current_password):
        raise ValidationError("Current password is incorrect")
    principal.set_password(validate_password(new_password))
    db.session.commit()
    current_app.logger.info("Password changed for %s #%s", principal.kind.value, principal.id)


def delete_admin(admin_id: int, acting_admin_id: int) -> None:
    admin = get_admin(admin_id)
    if admin.id == acting_admin_id:
        raise ValidationError("You cannot delete your own account")
    db.session.delete(admin)
    db.session.commit()
    current_app.logger.info("Admin #%s deleted by admin #%s", admin_id, acting_admin_id)


def list_admins() -> list[Admin]:
    return Admin.query.order_by(Admin.created_at.desc(), Admin.id.desc()).all()


def list_clients(status: str | None = None, search: str | None = None) -> list[Client]:
    query = Client.query
    if status and status != "all":
        try:
            query = query.filter(Client.status == ClientStatus(status))
        except ValueError as exc:
            raise ValidationError("Unknown client status") from exc
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(Client.name.ilike(pattern), Client.email.ilike(pattern), Client.company.ilike(pattern))
        )
    return query.order_by(Client.created_at.desc(), Client.id.desc()).all()


def client_stats() -> Dict[str, int]:
    total = Client.query.count()
    active = Client.query.filter_by(status=ClientStatus.ACTIVE).count()
    return {"total": total, "active": active, "inactive": total - active}
