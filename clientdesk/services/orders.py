"""Owner-scoped access to client orders."""
from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy import or_

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Order, OrderCategory, OrderStatus, TicketPriority
from .accounts import get_client
from .authorization import Action, authorize
from .session_tokens import SessionIdentity


def _enum(enum_cls, raw, field: str, default=None):
    if raw in (None, ""):
        if default is None:
            raise ValidationError(f"{field} is required")
        return default
    try:
        return enum_cls(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown {field} {raw!r}") from exc


def _budget(raw) -> Optional[Decimal]:
    if raw in (None, ""):
        return None
    try:
        return Decimal(str(raw))
    except InvalidOperation as exc:
        raise ValidationError("budget must be a number") from exc


def _deadline(raw) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError as exc:
        raise ValidationError("deadline must be an ISO date") from exc


def _load(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def get_order(order_id: int, identity: SessionIdentity) -> Order:
    order = _load(order_id)
    authorize(identity, Action.VIEW_ORDER, order)
    return order


def list_orders(identity: SessionIdentity, filters: Optional[Dict[str, Any]] = None) -> List[Order]:
    authorize(identity, Action.LIST_ORDERS)
    filters = filters or {}
    query = Order.query
    if identity.is_client:
        query = query.filter(Order.client_id == identity.principal_id)
    for field, enum_cls in (("status", OrderStatus), ("category", OrderCategory), ("priority", TicketPriority)):
        value = filters.get(field)
        if value and value != "all":
            query = query.filter(getattr(Order, field) == _enum(enum_cls, value, field))
    search = (filters.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Order.title.ilike(pattern), Order.description.ilike(pattern)))
    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def order_stats(identity: SessionIdentity) -> Dict[str, int]:
    authorize(identity, Action.LIST_ORDERS)
    query = db.session.query(Order.status, db.func.count(Order.id))
    if identity.is_client:
        query = query.filter(Order.client_id == identity.principal_id)
    counts = {status: count for status, count in query.group_by(Order.status).all()}
    stats = {"total": sum(counts.values())}
    for status in OrderStatus:
        key = "inProgress" if status == OrderStatus.IN_PROGRESS else status.value
        stats[key] = counts.get(status, 0)
    return stats


def create_order(identity: SessionIdentity, data: Dict[str, Any]) -> Order:
    authorize(identity, Action.MANAGE_ORDERS, message="Only admins can create orders")
    title = (data.get("title") or "").strip()
    description = (data.get("description") or "").strip()
    if not title or not description:
        raise ValidationError("title and description are required")
    try:
        client = get_client(int(data.get("client") or 0))
    except (NotFound, TypeError, ValueError) as exc:
        raise ValidationError("Unknown client") from exc

    order = Order(
        title=title[:255],
        description=description,
        client_id=client.id,
        category=_enum(OrderCategory, data.get("category"), "category"),
        status=_enum(OrderStatus, data.get("status"), "status", OrderStatus.PENDING),
        priority=_enum(TicketPriority, data.get("priority"), "priority", TicketPriority.MEDIUM),
        budget=_budget(data.get("budget")),
        currency=(data.get("currency") or "USD").upper()[:3],
        deadline=_deadline(data.get("deadline")),
    )
    db.session.add(order)
    db.session.commit()
    current_app.logger.info("Order #%s created for client #%s", order.id, client.id)
    return order


def set_order_status(order_id: int, status, identity: SessionIdentity) -> Order:
    authorize(identity, Action.MANAGE_ORDERS, message="Only admins can update order status")
    order = _load(order_id)
    order.status = _enum(OrderStatus, status, "status")
    if order.status == OrderStatus.COMPLETED:
        order.progress = 100
    db.session.commit()
    current_app.logger.info("Order #%s marked %s", order.id, order.status.value)
    return order
