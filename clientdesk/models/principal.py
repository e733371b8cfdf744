"""Admin and client principals kept in two independent credential tables."""
from __future__ import annotations

import enum

from sqlalchemy import Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from werkzeug.security import check_password_hash, generate_password_hash

from ..extensions import db
from .base import TimestampMixin, enum_type, isoformat


class PrincipalKind(str, enum.Enum):
    """The two kinds of actor that can hold a session."""

    ADMIN = "admin"
    CLIENT = "client"


class AdminRole(str, enum.Enum):
    """Back-office role hint; only the principal kind is enforced."""

    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class ClientStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class PasswordMixin:
    """Werkzeug-hashed secret shared by both principal kinds."""

    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)

    def set_password(self, raw_password: str) -> None:
        """Hash and store a password using Werkzeug's salted hash implementation."""
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        """Validate a password against the stored hash."""
        return check_password_hash(self.password_hash, raw_password)


class Admin(PasswordMixin, TimestampMixin, db.Model):
    """Back-office operator with full access to tickets, orders and clients."""

    kind = PrincipalKind.ADMIN

    __tablename__ = "admins"
    __table_args__ = (UniqueConstraint("email", name="uq_admins_email"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    email: Mapped[str] = mapped_column(db.String(255), nullable=False)
    role: Mapped[AdminRole] = mapped_column(
        enum_type(AdminRole, "admin_role"),
        nullable=False,
        default=AdminRole.ADMIN,
        server_default=text("'admin'"),
    )
    avatar: Mapped[str | None] = mapped_column(db.String(512), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "avatar": self.avatar,
            "createdAt": isoformat(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<Admin {self.email}>"


class Client(PasswordMixin, TimestampMixin, db.Model):
    """Customer account provisioned by an admin for the client portal."""

    kind = PrincipalKind.CLIENT

    __tablename__ = "clients"
    __table_args__ = (
        UniqueConstraint("email", name="uq_clients_email"),
        Index("ix_clients_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    email: Mapped[str] = mapped_column(db.String(255), nullable=False)
    company: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(db.String(64), nullable=True)
    avatar: Mapped[str | None] = mapped_column(db.String(512), nullable=True)
    status: Mapped[ClientStatus] = mapped_column(
        enum_type(ClientStatus, "client_status"),
        nullable=False,
        default=ClientStatus.ACTIVE,
        server_default=text("'active'"),
    )
    created_by_id: Mapped[int | None] = mapped_column(
        db.Integer,
        db.ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_by: Mapped["Admin | None"] = relationship("Admin")

    @property
    def is_active(self) -> bool:
        return self.status == ClientStatus.ACTIVE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "company": self.company,
            "phone": self.phone,
            "avatar": self.avatar,
            "status": self.status.value,
            "createdBy": self.created_by_id,
            "createdAt": isoformat(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - repr helper
        return f"<Client {self.email} {self.status.value}>"
