"""Signed, time-bound session tokens shared by admins and clients."""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask import current_app
from itsdangerous import BadSignature, URLSafeSerializer

from ..errors import AuthenticationError
from ..models import PrincipalKind

TOKEN_SALT = "clientdesk.session"
EXTENSION_KEY = "session_tokens"


class TokenInvalid(AuthenticationError):
    default_message = "Unauthorized: Invalid or expired token"


class TokenExpired(TokenInvalid):
    pass


@dataclass(frozen=True)
class SessionIdentity:
    """Who is acting on this request, as carried by the session token."""

    principal_id: int
    kind: PrincipalKind
    email: str
    name: str
    issued_at: datetime
    expires_at: datetime
    token_id: str

    @property
    def is_admin(self) -> bool:
        return self.kind == PrincipalKind.ADMIN

    @property
    def is_client(self) -> bool:
        return self.kind == PrincipalKind.CLIENT

    def to_dict(self) -> dict:
        return {"id": self.principal_id, "email": self.email, "role": self.kind.value, "name": self.name}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _epoch(value: datetime) -> int:
    return int(value.timestamp())


class SessionTokenCodec:
    """Mint and verify session tokens with a single process-wide key.

    Tokens are stateless: the signature proves integrity and the embedded
    ``exp`` bounds the lifetime. There is no refresh and no server-side
    revocation, so logout only clears the cookie.
    Expiry is read from the signed ``exp`` rather than from
    ``URLSafeTimedSerializer``, so the lifetime is fixed when the token is
    issued and ``decode`` can be checked against an explicit ``now``.
    """

    def __init__(self, secret_key: str, max_age: timedelta):
        if not secret_key:
            raise ValueError("A signing key is required for session tokens")
        self.max_age = max_age
        self._serializer = URLSafeSerializer(secret_key, salt=TOKEN_SALT)

    def issue(self, principal, now: Optional[datetime] = None) -> str:
        """Return a token for an ``Admin`` or ``Client`` row."""
        issued_at = now or _now()
        payload = {
            "id": principal.id,
            "kind": principal.kind.value,
            "email": principal.email,
            "name": principal.name,
            "iat": _epoch(issued_at),
            "exp": _epoch(issued_at + self.max_age),
            "jti": secrets.token_hex(8),
        }
        return self._serializer.dumps(payload)

    def decode(self, token: str, now: Optional[datetime] = None) -> SessionIdentity:
        try:
            payload = self._serializer.loads(token)
        except BadSignature as exc:
            raise TokenInvalid() from exc

        try:
            expires = int(payload["exp"])
            identity = SessionIdentity(
                principal_id=int(payload["id"]),
                kind=PrincipalKind(payload["kind"]),
                email=str(payload["email"]),
                name=str(payload.get("name") or ""),
                issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc),
                expires_at=datetime.fromtimestamp(expires, tz=timezone.utc),
                token_id=str(payload.get("jti") or ""),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenInvalid() from exc

        if _epoch(now or _now()) >= expires:
            raise TokenExpired()
        return identity


def init_session_tokens(app) -> SessionTokenCodec:
    """Load the signing key once at startup and register the codec on the app."""
    secret = app.config.get("SESSION_TOKEN_SECRET") or app.config["SECRET_KEY"]
    codec = SessionTokenCodec(secret, app.config["SESSION_TOKEN_MAX_AGE"])
    app.extensions[EXTENSION_KEY] = codec
    return codec


def token_codec() -> SessionTokenCodec:
    return current_app.extensions[EXTENSION_KEY]
