"""Ticket lifecycle and the conversation thread shared by clients and admins.

Status follows authorship: an admin reply moves a ticket to ``in-progress``
and a client reply moves it back to ``open``. Explicit status changes are
admin-only except that the owning client may close its own ticket.
``resolved_at`` and ``closed_at`` are stamped on first entry and never
cleared.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from flask import current_app
from sqlalchemy import or_

from ..errors import Forbidden, NotFound, ValidationError
from ..extensions import db
from ..models import (
    Admin,
    MessageSender,
    Order,
    Ticket,
    TicketCategory,
    TicketMessage,
    TicketPriority,
    TicketStatus,
    next_sequence_value,
)
from .accounts import get_client
from .authorization import Action, authorize
from .session_tokens import SessionIdentity

TICKET_SEQUENCE = "ticket"
REPLY_POLICY_REJECT = "reject"
REPLY_POLICY_REOPEN = "reopen"
REPLY_POLICIES = (REPLY_POLICY_REJECT, REPLY_POLICY_REOPEN)


def format_ticket_number(value: int) -> str:
    return f"TKT-{value:05d}"


def _parse_enum(enum_cls, raw, field: str, default=None):
    if raw is None or raw == "":
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    try:
        return enum_cls(raw)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"{field} must be one of {allowed}") from exc


def _clean_text(value, field: str, limit: int) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError(f"{field} is required")
    if len(cleaned) > limit:
        raise ValidationError(f"{field} is too long")
    return cleaned


def _clean_attachments(raw: Optional[Iterable[Any]]) -> List[Dict[str, str]]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("attachments must be a list")
    limit = int(current_app.config.get("TICKET_MAX_ATTACHMENTS", 10))
    if len(raw) > limit:
        raise ValidationError(f"At most {limit} attachments are allowed")
    cleaned = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("url"):
            raise ValidationError("Each attachment needs a url")
        cleaned.append({"name": str(item.get("name") or "attachment")[:255], "url": str(item["url"])[:2048]})
    return cleaned


def _as_id(raw, field: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be an id") from exc


def _message_limit() -> int:
    return int(current_app.config.get("TICKET_MESSAGE_MAX_LENGTH", 4000))


def closed_reply_policy() -> str:
    policy = (current_app.config.get("TICKET_CLOSED_REPLY_POLICY") or REPLY_POLICY_REJECT).lower()
    if policy not in REPLY_POLICIES:
        raise RuntimeError(f"Unsupported TICKET_CLOSED_REPLY_POLICY {policy!r}")
    return policy


def _sender_for(identity: SessionIdentity) -> MessageSender:
    return MessageSender.ADMIN if identity.is_admin else MessageSender.CLIENT


def _build_message(identity: SessionIdentity, text: str, attachments) -> TicketMessage:
    return TicketMessage(
        sender=_sender_for(identity),
        sender_id=identity.principal_id,
        sender_name=identity.name or "User",
        message=_clean_text(text, "message", _message_limit()),
        attachments=_clean_attachments(attachments),
    )


def _load(ticket_id: int) -> Ticket:
    ticket = db.session.get(Ticket, ticket_id)
    if ticket is None:
        raise NotFound("Ticket not found")
    return ticket


def get_ticket(ticket_id: int, identity: SessionIdentity) -> Ticket:
    ticket = _load(ticket_id)
    authorize(identity, Action.VIEW_TICKET, ticket)
    return ticket


def list_tickets(identity: SessionIdentity, filters: Optional[Dict[str, Any]] = None) -> List[Ticket]:
    """Newest first; clients only ever see their own tickets."""
    authorize(identity, Action.LIST_TICKETS)
    filters = filters or {}
    query = Ticket.query
    if identity.is_client:
        query = query.filter(Ticket.client_id == identity.principal_id)
    elif filters.get("client"):
        query = query.filter(Ticket.client_id == _as_id(filters["client"], "client"))

    for field, enum_cls in (("status", TicketStatus), ("priority", TicketPriority), ("category", TicketCategory)):
        value = filters.get(field)
        if value and value != "all":
            query = query.filter(getattr(Ticket, field) == _parse_enum(enum_cls, value, field))

    search = (filters.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Ticket.subject.ilike(pattern),
                Ticket.description.ilike(pattern),
                Ticket.ticket_number.ilike(pattern),
            )
        )
    return query.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()


def ticket_stats(identity: SessionIdentity) -> Dict[str, int]:
    authorize(identity, Action.LIST_TICKETS)
    query = db.session.query(Ticket.status, db.func.count(Ticket.id))
    if identity.is_client:
        query = query.filter(Ticket.client_id == identity.principal_id)
    counts = {status: count for status, count in query.group_by(Ticket.status).all()}
    return {
        "total": sum(counts.values()),
        "open": counts.get(TicketStatus.OPEN, 0),
        "inProgress": counts.get(TicketStatus.IN_PROGRESS, 0),
        "resolved": counts.get(TicketStatus.RESOLVED, 0),
        "closed": counts.get(TicketStatus.CLOSED, 0),
    }


def create_ticket(
    identity: SessionIdentity,
    *,
    subject,
    description,
    client_id: Optional[int] = None,
    order_id: Optional[int] = None,
    priority=None,
    category=None,
    message=None,
    attachments=None,
) -> Ticket:
    """Open a ticket. Clients always own what they open; admins name the client."""
    authorize(identity, Action.OPEN_TICKET)
    if identity.is_client:
        owner_id = identity.principal_id
    else:
        if not client_id:
            raise ValidationError("client is required when an admin opens a ticket")
        owner_id = _as_id(client_id, "client")
        try:
            get_client(owner_id)
        except NotFound as exc:
            raise ValidationError("Unknown client") from exc

    order = None
    if order_id:
        order = db.session.get(Order, _as_id(order_id, "order"))
        if order is None or order.client_id != owner_id:
            raise ValidationError("order must belong to the ticket's client")

    ticket = Ticket(
        subject=_clean_text(subject, "subject", 255),
        description=_clean_text(description, "description", 10000),
        client_id=owner_id,
        order_id=order.id if order else None,
        priority=_parse_enum(TicketPriority, priority, "priority", TicketPriority.MEDIUM),
        category=_parse_enum(TicketCategory, category, "category", TicketCategory.GENERAL),
        status=TicketStatus.OPEN,
    )
    if message:
        ticket.messages.append(_build_message(identity, message, attachments))

    ticket.ticket_number = format_ticket_number(next_sequence_value(TICKET_SEQUENCE))
    db.session.add(ticket)
    db.session.commit()
    current_app.logger.info(
        "Ticket %s opened for client #%s by %s #%s",
        ticket.ticket_number,
        owner_id,
        identity.kind.value,
        identity.principal_id,
    )
    return ticket


def append_message(ticket_id: int, identity: SessionIdentity, text, attachments=None) -> Ticket:
    """Append to the thread and re-derive status from the sender."""
    ticket = _load(ticket_id)
    authorize(identity, Action.REPLY_TICKET, ticket)

    if identity.is_admin:
        next_status = TicketStatus.IN_PROGRESS
    else:
        if ticket.status == TicketStatus.CLOSED and closed_reply_policy() == REPLY_POLICY_REJECT:
            raise Forbidden("Ticket is closed")
        next_status = TicketStatus.OPEN

    ticket.messages.append(_build_message(identity, text, attachments))
    previous = ticket.status
    ticket.mark_status(next_status)
    db.session.commit()
    if previous != next_status:
        current_app.logger.info(
            "Ticket %s moved %s -> %s by %s reply", ticket.ticket_number, previous.value, next_status.value, identity.kind.value
        )
    return ticket


def set_status(ticket_id: int, target, identity: SessionIdentity) -> Ticket:
    """Admins may set any status; the owning client may only close."""
    ticket = _load(ticket_id)
    if identity.is_client:
        authorize(identity, Action.CLOSE_TICKET, ticket)
    else:
        authorize(identity, Action.SET_TICKET_STATUS, ticket)

    status = _parse_enum(TicketStatus, target, "status")
    if identity.is_client:
        if status != TicketStatus.CLOSED:
            raise Forbidden("Clients can only close tickets")

    previous = ticket.status
    ticket.mark_status(status)
    db.session.commit()
    current_app.logger.info(
        "Ticket %s status %s -> %s by %s #%s",
        ticket.ticket_number,
        previous.value,
        status.value,
        identity.kind.value,
        identity.principal_id,
    )
    return ticket


def assign(ticket_id: int, identity: SessionIdentity, admin_id: Optional[int] = None) -> Ticket:
    """Hand the ticket to an admin (the caller by default); work starts immediately."""
    authorize(identity, Action.ASSIGN_TICKET)
    ticket = _load(ticket_id)
    assignee_id = _as_id(admin_id, "adminId") if admin_id else identity.principal_id
    if db.session.get(Admin, assignee_id) is None:
        raise ValidationError("Unknown admin")

    ticket.assigned_to_id = assignee_id
    ticket.mark_status(TicketStatus.IN_PROGRESS)
    db.session.commit()
    current_app.logger.info("Ticket %s assigned to admin #%s", ticket.ticket_number, assignee_id)
    return ticket


def delete_ticket(ticket_id: int, identity: SessionIdentity) -> None:
    authorize(identity, Action.DELETE_TICKET, message="Only admins can delete tickets")
    ticket = _load(ticket_id)
    db.session.delete(ticket)
    db.session.commit()
    current_app.logger.info("Ticket %s deleted by admin #%s", ticket.ticket_number, identity.principal_id)
