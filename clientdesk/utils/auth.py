"""Session cookie handling and route guards for admin and client principals."""
from __future__ import annotations

import functools
from typing import Callable, Optional

from flask import current_app, g, request

from ..errors import SessionRequired
from ..services.authorization import Action, authorize
from ..services.session_tokens import SessionIdentity, TokenExpired, TokenInvalid, token_codec

SESSION_MISSING = "missing"
SESSION_INVALID = "invalid"
SESSION_EXPIRED = "expired"


def set_auth_cookie(response, token: str):
    """Attach the session token as an HTTP-only cookie unreadable by page scripts."""
    cfg = current_app.config
    response.set_cookie(
        cfg["AUTH_COOKIE_NAME"],
        token,
        max_age=int(cfg["SESSION_TOKEN_MAX_AGE"].total_seconds()),
        httponly=True,
        secure=bool(cfg.get("AUTH_COOKIE_SECURE")),
        samesite=cfg.get("AUTH_COOKIE_SAMESITE", "None"),
    )
    return response


def clear_auth_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg["AUTH_COOKIE_NAME"],
        httponly=True,
        secure=bool(cfg.get("AUTH_COOKIE_SECURE")),
        samesite=cfg.get("AUTH_COOKIE_SAMESITE", "None"),
    )
    return response


def _read_identity() -> tuple[Optional[SessionIdentity], Optional[str]]:
    token = request.cookies.get(current_app.config["AUTH_COOKIE_NAME"])
    if not token:
        return None, SESSION_MISSING
    try:
        return token_codec().decode(token), None
    except TokenExpired:
        return None, SESSION_EXPIRED
    except TokenInvalid:
        return None, SESSION_INVALID


def load_identity() -> Optional[SessionIdentity]:
    """Decode the session cookie once per request and bind the result to ``g``."""
    identity, error = _read_identity()
    g.identity = identity  # type: ignore[attr-defined]
    g.session_error = error  # type: ignore[attr-defined]
    if error in (SESSION_INVALID, SESSION_EXPIRED):
        current_app.logger.warning("Rejected %s session token on %s %s", error, request.method, request.path)
    return identity


def current_identity() -> Optional[SessionIdentity]:
    """Return the identity resolved for this request, decoding lazily if needed."""
    if not hasattr(g, "identity"):
        return load_identity()
    return g.identity  # type: ignore[attr-defined]


def require_identity() -> SessionIdentity:
    identity = current_identity()
    if identity is None:
        if getattr(g, "session_error", SESSION_MISSING) == SESSION_MISSING:
            raise SessionRequired()
        raise TokenInvalid()
    return identity


def login_required(view: Callable):
    """Decorator to guard routes that require any valid session."""

    @functools.wraps(view)
    def wrapped_view(*args, **kwargs):
        require_identity()
        return view(*args, **kwargs)

    return wrapped_view


def permission_required(action: Action):
    """Enforce a resource-independent action from the authorization policy."""

    def decorator(view: Callable):
        @functools.wraps(view)
        def wrapped_view(*args, **kwargs):
            authorize(require_identity(), action)
            return view(*args, **kwargs)

        return wrapped_view

    return decorator


def admin_required(view: Callable):
    return permission_required(Action.VIEW_DASHBOARD)(view)


def client_required(view: Callable):
    return permission_required(Action.CLIENT_SELF_SERVICE)(view)
