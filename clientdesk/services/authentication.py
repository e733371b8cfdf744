"""Password authentication for each principal kind and the unified login."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from flask import current_app

from ..errors import AccountInactive, InvalidCredential, ValidationError
from ..models import PrincipalKind
from ..utils import normalize_email
from .accounts import find_principal
from .session_tokens import token_codec

# Order in which the unified login tries each namespace. An email registered
# as both kinds resolves to the first kind whose password matches.
LOGIN_PRECEDENCE = (PrincipalKind.ADMIN, PrincipalKind.CLIENT)


class FailureReason(str, enum.Enum):
    NOT_FOUND = "not_found"
    INVALID_CREDENTIAL = "invalid_credential"
    ACCOUNT_INACTIVE = "account_inactive"


@dataclass
class AuthResult:
    success: bool
    principal: object = None
    token: Optional[str] = None
    reason: Optional[FailureReason] = None

    def raise_for_failure(self) -> None:
        if self.success:
            return
        if self.reason == FailureReason.ACCOUNT_INACTIVE:
            raise AccountInactive()
        raise InvalidCredential()


@dataclass
class LoginResult:
    kind: PrincipalKind
    principal: object
    token: str
    redirect_to: str

    def user_payload(self) -> dict:
        payload = self.principal.to_dict()
        if self.kind == PrincipalKind.ADMIN:
            payload["adminRole"] = payload["role"]
        payload["role"] = self.kind.value
        return payload


def authenticate(kind: PrincipalKind, email: str | None, password: str | None) -> AuthResult:
    """Check a password against one kind's table and mint a token on success.

    Inactive clients are refused before the hash comparison runs. Nothing is
    written.
    """
    principal = find_principal(kind, email)
    if principal is None:
        return AuthResult(success=False, reason=FailureReason.NOT_FOUND)
    if kind == PrincipalKind.CLIENT and not principal.is_active:
        return AuthResult(success=False, principal=principal, reason=FailureReason.ACCOUNT_INACTIVE)
    if not principal.check_password(password or ""):
        return AuthResult(success=False, reason=FailureReason.INVALID_CREDENTIAL)
    return AuthResult(success=True, principal=principal, token=token_codec().issue(principal))


def _home_for(kind: PrincipalKind) -> str:
    cfg = current_app.config
    if kind == PrincipalKind.ADMIN:
        return cfg.get("ADMIN_HOME", "/admin")
    return cfg.get("CLIENT_PORTAL_HOME", "/portal")


def require_login_fields(email: str | None, password: str | None) -> tuple[str, str]:
    email = normalize_email(email)
    if not email or not password:
        raise ValidationError("Email and password are required")
    return email, password


def login_as(kind: PrincipalKind, email: str | None, password: str | None) -> LoginResult:
    """Authenticate against a single namespace, for the kind-specific endpoints."""
    email, password = require_login_fields(email, password)
    result = authenticate(kind, email, password)
    if not result.success:
        current_app.logger.info("Failed %s login for %s (%s)", kind.value, email, result.reason.value)
        result.raise_for_failure()
    current_app.logger.info("%s #%s signed in", kind.value.capitalize(), result.principal.id)
    return LoginResult(kind=kind, principal=result.principal, token=result.token, redirect_to=_home_for(kind))


def unified_login(email: str | None, password: str | None) -> LoginResult:
    """Try each namespace in ``LOGIN_PRECEDENCE``; any failure falls through.

    Every failure collapses into one generic error so the response never
    reveals which namespace an email belongs to or which field was wrong.
    """
    email, password = require_login_fields(email, password)
    reasons = []
    for kind in LOGIN_PRECEDENCE:
        result = authenticate(kind, email, password)
        if result.success:
            current_app.logger.info("%s #%s signed in via unified login", kind.value.capitalize(), result.principal.id)
            return LoginResult(kind=kind, principal=result.principal, token=result.token, redirect_to=_home_for(kind))
        reasons.append(f"{kind.value}:{result.reason.value}")

    current_app.logger.info("Failed unified login for %s (%s)", email, ", ".join(reasons))
    raise InvalidCredential()
