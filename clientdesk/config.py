"""Application configuration module.

Provides environment-specific settings with sane, secure defaults.
"""
import os
from pathlib import Path
from datetime import timedelta

from .utils import env_bool


BASE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = BASE_DIR.parent
INSTANCE_DIR = PROJECT_ROOT / "instance"
DEFAULT_DB_PATH = INSTANCE_DIR / "clientdesk.sqlite"


def _csv(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL") or f"sqlite:///{DEFAULT_DB_PATH}"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    APP_NAME = "Clientdesk"
    JSON_SORT_KEYS = False

    # Session token issued on login and carried in the auth cookie
    SESSION_TOKEN_SECRET = os.environ.get("SESSION_TOKEN_SECRET")
    SESSION_TOKEN_MAX_AGE = timedelta(days=int(os.environ.get("SESSION_TOKEN_MAX_AGE_DAYS", "7")))
    AUTH_COOKIE_NAME = "token"
    AUTH_COOKIE_SAMESITE = "None"
    AUTH_COOKIE_SECURE = env_bool("AUTH_COOKIE_SECURE", False)

    # Post-login destinations per principal kind
    ADMIN_HOME = os.environ.get("ADMIN_HOME", "/admin")
    CLIENT_PORTAL_HOME = os.environ.get("CLIENT_PORTAL_HOME", "/portal")

    ALLOW_ADMIN_SELF_REGISTRATION = env_bool("ALLOW_ADMIN_SELF_REGISTRATION", False)
    # "reject" refuses client replies on closed tickets, "reopen" flips them back to open
    TICKET_CLOSED_REPLY_POLICY = os.environ.get("TICKET_CLOSED_REPLY_POLICY", "reject")
    TICKET_MESSAGE_MAX_LENGTH = 4000
    TICKET_MAX_ATTACHMENTS = 10
    PASSWORD_MIN_LENGTH = 6

    CORS_ALLOWED_ORIGINS = _csv(os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:3000"))


class DevelopmentConfig(Config):
    DEBUG = True
    ENV = "development"
    ALLOW_ADMIN_SELF_REGISTRATION = env_bool("ALLOW_ADMIN_SELF_REGISTRATION", True)


class ProductionConfig(Config):
    DEBUG = False
    ENV = "production"
    AUTH_COOKIE_SECURE = env_bool("AUTH_COOKIE_SECURE", True)


class TestingConfig(Config):
    TESTING = True
    ENV = "testing"
    SECRET_KEY = "testing-secret"
    SESSION_TOKEN_SECRET = "testing-token-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    AUTH_COOKIE_SECURE = False
    ALLOW_ADMIN_SELF_REGISTRATION = False
    TICKET_CLOSED_REPLY_POLICY = "reject"
