"""
playmatch/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - `flask db migrate` / `flask sweep` to work without serving

Responsibilities:
  1. Load configuration from config_by_name[config_name] (+ overrides)
  2. Initialise extensions (SQLAlchemy, Marshmallow) via init_app()
  3. Register all route blueprints under /api/v1
  4. Register global error handlers (AppError / ValidationError /
     HTTPException → JSON envelope, Exception → 500)
  5. Register CLI commands and start the expiry sweeper

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before Alembic inspects it. They are not used
  directly here — the import side-effect is sufficient.
"""

from __future__ import annotations

import atexit
import logging
import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from backend.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development", overrides: dict | None = None) -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Resolved via config_by_name in config.py.
                     Defaults to "development".
        overrides:   Optional config keys applied after the config class,
                     e.g. a per-test SQLALCHEMY_DATABASE_URI.

    Returns:
        A fully configured Flask app ready to serve requests.
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)
    _configure_engine_options(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from backend.playmatch.extensions import db, ma
    db.init_app(app)
    ma.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Import all models so that SQLAlchemy's MetaData is populated.
    # Alembic needs to see these to auto-generate migrations.
    with app.app_context():
        from backend.playmatch.models import (  # noqa: F401
            chat,
            game_card,
            refresh_token,
            user,
            venue,
        )

    # ── Blueprints ─────────────────────────────────────────────────────────
    _register_blueprints(app)

    # ── Error handlers ─────────────────────────────────────────────────────
    _register_error_handlers(app)
    _register_cors(app)

    # ── CLI + background jobs ──────────────────────────────────────────────
    from backend.playmatch.commands import register_commands
    register_commands(app)
    _start_sweeper(app)

    return app


def _configure_logging(app: Flask) -> None:
    """
    app.logger is the "backend.playmatch" logger, so every service logger
    (logging.getLogger(__name__) under backend.playmatch.*) propagates to it
    and inherits this level.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)


def _configure_engine_options(app: Flask) -> None:
    """
    PostgreSQL only: the server cancels any statement running longer than
    DB_STATEMENT_TIMEOUT_MS.
    """
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "") or ""
    if not uri.startswith("postgresql"):
        return

    options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
    connect_args = dict(options.get("connect_args") or {})
    connect_args.setdefault(
        "options", f"-c statement_timeout={int(app.config['DB_STATEMENT_TIMEOUT_MS'])}"
    )
    options["connect_args"] = connect_args
    options.setdefault("pool_pre_ping", True)
    app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def _start_sweeper(app: Flask) -> None:
    if not app.config.get("SWEEPER_ENABLED"):
        return

    from backend.playmatch.scheduler import SweepScheduler

    scheduler = SweepScheduler(app)
    scheduler.start()
    app.extensions["sweep_scheduler"] = scheduler
    atexit.register(scheduler.shutdown)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    Blueprint names match the route files in playmatch/routes/.
    The url_prefix is set here so individual route files only specify
    the path relative to their resource (e.g. "/" and "/<int:id>").
    """
    from backend.playmatch.routes.admin import admin_bp
    from backend.playmatch.routes.auth import auth_bp
    from backend.playmatch.routes.chats import chats_bp
    from backend.playmatch.routes.postings import postings_bp
    from backend.playmatch.routes.uploads import uploads_bp
    from backend.playmatch.routes.users import users_bp

    app.register_blueprint(auth_bp,     url_prefix="/api/v1/auth")
    app.register_blueprint(users_bp,    url_prefix="/api/v1/users")
    app.register_blueprint(postings_bp, url_prefix="/api/v1/postings")
    app.register_blueprint(admin_bp,    url_prefix="/api/v1/admin")
    app.register_blueprint(chats_bp,    url_prefix="/api/v1/chats")
    app.register_blueprint(uploads_bp,  url_prefix="/api/v1/uploads")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct HTTP status
      ValidationError → marshmallow schema errors formatted as MISSING_FIELD /
                        INVALID_FIELD responses (400)
      HTTPException   → werkzeug errors (404 route, 405, 413 ...) in the same envelope
      Exception       → generic INTERNAL_ERROR (500); full traceback logged

    Stack traces never leave the server.
    """
    from backend.playmatch.errors import AppError, ErrorCode

    registered_codes = {
        value for key, value in vars(ErrorCode).items() if not key.startswith("_")
    }

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """
        Converts an AppError raised anywhere in the request lifecycle
        (middleware, service, route) into the standard error envelope.

        Routes never catch AppError — they let it propagate here.
        """
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Converts marshmallow ValidationError into the standard error envelope.

        Only the FIRST error is returned. If the message is itself one of the
        registered ErrorCode values (e.g. INVALID_STATUS from an Enum field)
        it is used as the code.
        """
        messages = error.messages  # e.g. {"status": ["INVALID_STATUS"]}

        field = None
        raw_message = "Invalid input."

        if isinstance(messages, dict) and messages:
            field_name, field_errors = next(iter(messages.items()))
            field = field_name if field_name != "_schema" else None

            if isinstance(field_errors, list):
                raw_message = field_errors[0] if field_errors else "Invalid value."
            elif isinstance(field_errors, dict):
                # Nested field (e.g. photos.0) — report the outer field.
                raw_message = str(next(iter(field_errors.values())))
            else:
                raw_message = str(field_errors)
        elif isinstance(messages, list) and messages:
            raw_message = messages[0]

        if raw_message in registered_codes:
            code = raw_message
            message = _code_to_message(code)
        elif str(raw_message).startswith("Missing data for required field"):
            code = ErrorCode.MISSING_FIELD
            message = raw_message
        else:
            code = ErrorCode.INVALID_FIELD
            message = raw_message

        response_body = {"error": {"code": code, "message": message}}
        if field is not None:
            response_body["error"]["field"] = field

        return jsonify(response_body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        if isinstance(error, RequestEntityTooLarge):
            code = ErrorCode.FILE_TOO_LARGE
            message = "The uploaded file exceeds the maximum allowed size."
        elif error.code == 404:
            code = ErrorCode.NOT_FOUND
            message = "The requested resource does not exist."
        else:
            code = (error.name or "HTTP_ERROR").upper().replace(" ", "_")
            message = error.description or error.name

        return jsonify({"error": {"code": code, "message": message}}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.

        The full traceback is logged to the application logger. Stack traces
        NEVER leave the server in the response body.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        return jsonify({
            "error": {
                "code": ErrorCode.INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
            }
        }), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true so a frontend served from another
    local port can call the API with Authorization headers.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all:
            response.headers["Access-Control-Allow-Origin"] = origin if origin else "*"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response


def _code_to_message(code: str) -> str:
    """
    Returns a human-readable default message for a known error code.
    Used when a ValidationError message IS the error code constant itself.
    """
    _messages = {
        "INVALID_STATUS": "status must be one of: active, inactive, moderating.",
    }
    return _messages.get(code, "Invalid input.")
