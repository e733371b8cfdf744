"""Flask application factory for the Clientdesk support portal API."""
import os

import click
from flask import Flask, jsonify, request
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import ArgumentError
from werkzeug.exceptions import HTTPException

from .config import DevelopmentConfig, ProductionConfig
from .errors import ServiceError
from .extensions import db
from .routes.auth import auth_bp, session_bp
from .routes.clients import clients_bp
from .routes.main import main_bp
from .routes.orders import orders_bp
from .routes.tickets import tickets_bp
from .services.session_tokens import init_session_tokens
from .services.tickets import TICKET_SEQUENCE
from .utils.auth import load_identity


def create_app(config_object=None):
    """Application factory to create configured Flask app instances."""
    app = Flask(__name__, instance_relative_config=True)

    _configure_app(app, config_object)
    _register_extensions(app)
    _register_blueprints(app)
    _register_shellcontext(app)
    _register_commands(app)
    _register_security_headers(app)
    _register_request_hooks(app)
    _register_error_handlers(app)
    _setup_db(app)

    return app


def _configure_app(app, config_object=None):
    env = os.environ.get("APP_ENV") or os.environ.get("FLASK_ENV") or "development"
    if config_object:
        app.config.from_object(config_object)
    elif env.lower() == "production":
        app.config.from_object(ProductionConfig)
    else:
        app.config.from_object(DevelopmentConfig)

    if not app.config.get("SESSION_TOKEN_SECRET"):
        if app.config.get("ENV") == "production":
            raise RuntimeError("SESSION_TOKEN_SECRET must be set in production")
        app.logger.warning("SESSION_TOKEN_SECRET not set; signing session tokens with SECRET_KEY")


def _register_extensions(app):
    db.init_app(app)
    init_session_tokens(app)


def _register_blueprints(app):
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(session_bp)
    app.register_blueprint(tickets_bp)
    app.register_blueprint(clients_bp)
    app.register_blueprint(orders_bp)


def _register_shellcontext(app):
    @app.shell_context_processor
    def make_shell_context():
        from .models import Admin, Client, Order, SequenceCounter, Ticket, TicketMessage, TicketStatus  # noqa: WPS433

        return {
            "db": db,
            "Admin": Admin,
            "Client": Client,
            "Ticket": Ticket,
            "TicketMessage": TicketMessage,
            "TicketStatus": TicketStatus,
            "Order": Order,
            "SequenceCounter": SequenceCounter,
        }


def _register_commands(app):
    @app.cli.command("seed-admin")
    @click.option("--email", required=True, help="Login email of the first admin.")
    @click.option("--name", default="Administrator", show_default=True)
    @click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
    def seed_admin(email, name, password):
        """Create an admin account unless one already uses EMAIL."""
        from .errors import Conflict, ValidationError  # noqa: WPS433
        from .services.accounts import create_admin  # noqa: WPS433

        try:
            admin = create_admin(name=name, email=email, password=password)
        except Conflict:
            click.echo(f"Admin {email} already exists; nothing to do.")
            return
        except ValidationError as exc:
            raise click.ClickException(exc.message) from exc
        click.echo(f"Created admin #{admin.id} <{admin.email}>")


def _register_security_headers(app):
    @app.after_request
    def add_security_headers(response):
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if app.config.get("ENV") == "production":
            response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")

        # The session cookie is cross-site, so only listed origins may send credentials.
        origin = request.headers.get("Origin")
        if origin and origin in app.config.get("CORS_ALLOWED_ORIGINS", []):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers.add("Vary", "Origin")
        return response


def _register_request_hooks(app):
    @app.before_request
    def bind_identity():
        if request.method == "OPTIONS":
            return None
        load_identity()
        return None


def _register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(error: ServiceError):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        return jsonify({"message": error.description or error.name}), error.code or 500

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        app.logger.exception("Unhandled exception on %s %s", request.method, request.path, exc_info=error)
        db.session.rollback()
        return jsonify({"message": "Internal Server Error"}), 500


def _setup_db(app):
    with app.app_context():
        # Import models to ensure metadata is loaded before table creation
        from . import models  # noqa: WPS433

        database_uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
        try:
            url = make_url(database_uri)
        except ArgumentError:
            url = None

        if url and url.drivername.startswith("sqlite") and url.database:
            db_dir = os.path.dirname(url.database)
            if db_dir:
                os.makedirs(db_dir, exist_ok=True)
            if not os.path.exists(url.database):
                app.logger.info("Initializing SQLite database at %s", url.database)

        db.create_all()
        models.ensure_sequence(TICKET_SEQUENCE)
