"""Single authorization gate consulted by every protected handler.

Each action maps to exactly one predicate from a small closed set; there is
no per-route ownership logic elsewhere.
"""
from __future__ import annotations

import enum
from typing import Callable, Optional

from flask import current_app

from ..errors import Forbidden, SessionRequired
from .session_tokens import SessionIdentity


class Action(str, enum.Enum):
    OPEN_TICKET = "ticket:open"
    LIST_TICKETS = "ticket:list"
    VIEW_TICKET = "ticket:view"
    REPLY_TICKET = "ticket:reply"
    CLOSE_TICKET = "ticket:close"
    SET_TICKET_STATUS = "ticket:set-status"
    ASSIGN_TICKET = "ticket:assign"
    DELETE_TICKET = "ticket:delete"
    LIST_ORDERS = "order:list"
    VIEW_ORDER = "order:view"
    MANAGE_ORDERS = "order:manage"
    MANAGE_CLIENTS = "client:manage"
    MANAGE_ADMINS = "admin:manage"
    VIEW_DASHBOARD = "dashboard:view"
    MANAGE_OWN_ACCOUNT = "account:self"
    CLIENT_SELF_SERVICE = "client:self"


def any_authenticated(identity: SessionIdentity, resource=None) -> bool:
    return True


def admin_only(identity: SessionIdentity, resource=None) -> bool:
    return identity.is_admin


def client_only(identity: SessionIdentity, resource=None) -> bool:
    return identity.is_client


def owns(identity: SessionIdentity, resource) -> bool:
    """Admin and client ids overlap, so ownership also requires the client kind."""
    return identity.is_client and resource is not None and resource.owner_id == identity.principal_id


def owner_or_admin(identity: SessionIdentity, resource) -> bool:
    return identity.is_admin or owns(identity, resource)


POLICY: dict[Action, Callable[[SessionIdentity, object], bool]] = {
    Action.OPEN_TICKET: any_authenticated,
    Action.LIST_TICKETS: any_authenticated,
    Action.LIST_ORDERS: any_authenticated,
    Action.MANAGE_OWN_ACCOUNT: any_authenticated,
    Action.VIEW_TICKET: owner_or_admin,
    Action.REPLY_TICKET: owner_or_admin,
    Action.CLOSE_TICKET: owner_or_admin,
    Action.VIEW_ORDER: owner_or_admin,
    Action.SET_TICKET_STATUS: admin_only,
    Action.ASSIGN_TICKET: admin_only,
    Action.DELETE_TICKET: admin_only,
    Action.MANAGE_ORDERS: admin_only,
    Action.MANAGE_CLIENTS: admin_only,
    Action.MANAGE_ADMINS: admin_only,
    Action.VIEW_DASHBOARD: admin_only,
    Action.CLIENT_SELF_SERVICE: client_only,
}

DENIAL_MESSAGES = {
    admin_only: "Forbidden: Admin access required",
    client_only: "Forbidden: Client access required",
}


def can(identity: Optional[SessionIdentity], action: Action, resource=None) -> bool:
    if identity is None:
        return False
    return POLICY[action](identity, resource)


def authorize(identity: Optional[SessionIdentity], action: Action, resource=None, message: str | None = None) -> None:
    """Raise unless ``identity`` may perform ``action`` on ``resource``."""
    if identity is None:
        raise SessionRequired()
    predicate = POLICY[action]
    if predicate(identity, resource):
        return
    current_app.logger.warning(
        "Denied %s for %s #%s", action.value, identity.kind.value, identity.principal_id
    )
    raise Forbidden(message or DENIAL_MESSAGES.get(predicate))
