"""Support tickets with an append-only conversation thread."""
from __future__ import annotations

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Index, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..extensions import db
from .base import TimestampMixin, enum_type, isoformat, utcnow

if TYPE_CHECKING:  # pragma: no cover - typing helpers
    from .order import Order
    from .principal import Admin, Client


class TicketStatus(str, enum.Enum):
    """Lifecycle state for support tickets."""

    OPEN = "open"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class TicketPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TicketCategory(str, enum.Enum):
    GENERAL = "general"
    TECHNICAL = "technical"
    BILLING = "billing"
    FEATURE_REQUEST = "feature-request"
    BUG_REPORT = "bug-report"


class MessageSender(str, enum.Enum):
    """Which side of the conversation wrote a message."""

    CLIENT = "client"
    ADMIN = "admin"


class Ticket(TimestampMixin, db.Model):
    """Client support request owned by exactly one client for its whole life."""

    __tablename__ = "tickets"
    __table_args__ = (
        UniqueConstraint("ticket_number", name="uq_tickets_ticket_number"),
        Index("ix_tickets_client_status", "client_id", "status"),
        Index("ix_tickets_status", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    ticket_number: Mapped[str] = mapped_column(db.String(32), nullable=False)
    subject: Mapped[str] = mapped_column(db.String(255), nullable=False)
    description: Mapped[str] = mapped_column(db.Text, nullable=False)
    client_id: Mapped[int] = mapped_column(
        db.Integer,
        db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id: Mapped[int | None] = mapped_column(
        db.Integer,
        db.ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_to_id: Mapped[int | None] = mapped_column(
        db.Integer,
        db.ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[TicketStatus] = mapped_column(
        enum_type(TicketStatus, "ticket_status"),
        nullable=False,
        default=TicketStatus.OPEN,
        server_default=text("'open'"),
    )
    priority: Mapped[TicketPriority] = mapped_column(
        enum_type(TicketPriority, "ticket_priority"),
        nullable=False,
        default=TicketPriority.MEDIUM,
        server_default=text("'medium'"),
    )
    category: Mapped[TicketCategory] = mapped_column(
        enum_type(TicketCategory, "ticket_category"),
        nullable=False,
        default=TicketCategory.GENERAL,
        server_default=text("'general'"),
    )
    resolved_at: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)

    client: Mapped["Client"] = relationship("Client", lazy="joined")
    order: Mapped["Order | None"] = relationship("Order")
    assigned_to: Mapped["Admin | None"] = relationship("Admin")
    messages: Mapped[list["TicketMessage"]] = relationship(
        "TicketMessage",
        back_populates="ticket",
        cascade="all, delete-orphan",
        order_by="TicketMessage.id",
    )

    @property
    def owner_id(self) -> int:
        return self.client_id

    def mark_status(self, status: TicketStatus) -> None:
        """Move to ``status``, stamping resolved/closed times on first entry only."""
        self.status = status
        if status == TicketStatus.RESOLVED and self.resolved_at is None:
            self.resolved_at = utcnow()
        elif status == TicketStatus.CLOSED and self.closed_at is None:
            self.closed_at = utcnow()

    def to_dict(self, include_messages: bool = True) -> dict:
        payload = {
            "id": self.id,
            "ticketNumber": self.ticket_number,
            "subject": self.subject,
            "description": self.description,
            "client": {
                "id": self.client.id,
                "name": self.client.name,
                "email": self.client.email,
                "company": self.client.company,
            }
            if self.client
            else None,
            "order": {"id": self.order.id, "title": self.order.title} if self.order else None,
            "assignedTo": {
                "id": self.assigned_to.id,
                "name": self.assigned_to.name,
                "email": self.assigned_to.email,
            }
            if self.assigned_to
            else None,
            "status": self.status.value,
            "priority": self.priority.value,
            "category": self.category.value,
            "resolvedAt": isoformat(self.resolved_at),
            "closedAt": isoformat(self.closed_at),
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }
        if include_messages:
            payload["messages"] = [message.to_dict() for message in self.messages]
        return payload

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Ticket {self.ticket_number} {self.status.value}>"


class TicketMessage(db.Model):
    """One entry in a ticket's thread; rows are only ever inserted."""

    __tablename__ = "ticket_messages"
    __table_args__ = (Index("ix_ticket_messages_thread", "ticket_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    ticket_id: Mapped[int] = mapped_column(
        db.Integer,
        db.ForeignKey("tickets.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender: Mapped[MessageSender] = mapped_column(enum_type(MessageSender, "message_sender"), nullable=False)
    sender_id: Mapped[int] = mapped_column(db.Integer, nullable=False)
    sender_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    message: Mapped[str] = mapped_column(db.Text, nullable=False)
    attachments: Mapped[list] = mapped_column(db.JSON, nullable=False, default=list)
    read_at: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime, nullable=False, default=utcnow)

    ticket: Mapped[Ticket] = relationship("Ticket", back_populates="messages")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sender": self.sender.value,
            "senderId": self.sender_id,
            "senderName": self.sender_name,
            "message": self.message,
            "attachments": list(self.attachments or []),
            "readAt": isoformat(self.read_at),
            "createdAt": isoformat(self.created_at),
        }
