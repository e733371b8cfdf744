"""Client orders, the second client-owned resource behind the portal."""
from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..extensions import db
from .base import TimestampMixin, enum_type, isoformat
from .ticket import TicketPriority

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from .principal import Client


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    REVIEW = "review"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderCategory(str, enum.Enum):
    WEB = "web"
    MOBILE = "mobile"
    AI = "ai"
    DESIGN = "design"
    BLOCKCHAIN = "blockchain"
    OTHER = "other"


class Order(TimestampMixin, db.Model):
    """Work ordered by a client; only admins create or change it."""

    __tablename__ = "orders"
    __table_args__ = (Index("ix_orders_client_status", "client_id", "status"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str] = mapped_column(db.Text, nullable=False)
    client_id: Mapped[int] = mapped_column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    category: Mapped[OrderCategory] = mapped_column(enum_type(OrderCategory, "order_category"), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        enum_type(OrderStatus, "order_status"),
        nullable=False,
        default=OrderStatus.PENDING,
        server_default=text("'pending'"),
    )
    priority: Mapped[TicketPriority] = mapped_column(
        enum_type(TicketPriority, "order_priority"),
        nullable=False,
        default=TicketPriority.MEDIUM,
        server_default=text("'medium'"),
    )
    budget: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2), nullable=True)
    currency: Mapped[str] = mapped_column(db.String(3), nullable=False, default="USD", server_default=text("'USD'"))
    progress: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0, server_default=text("0"))
    deadline: Mapped[date | None] = mapped_column(db.Date, nullable=True)

    client: Mapped["Client"] = relationship("Client", lazy="joined")

    @property
    def owner_id(self) -> int:
        return self.client_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "client": {"id": self.client.id, "name": self.client.name, "email": self.client.email}
            if self.client
            else None,
            "category": self.category.value,
            "status": self.status.value,
            "priority": self.priority.value,
            "budget": float(self.budget) if self.budget is not None else None,
            "currency": self.currency,
            "progress": self.progress,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Order {self.id} {self.status.value}>"
