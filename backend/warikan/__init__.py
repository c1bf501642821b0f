"""
warikan/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Set the log level from LOG_LEVEL
  3. Initialise SQLAlchemy via init_app()
  4. Register all route blueprints under /api/v1
  5. Register global error handlers (AppError → JSON, Exception → 500)

Note on model imports:
  All model classes are imported inside create_app() so that SQLAlchemy's
  metadata is populated before create_all() or Alembic inspects it.
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from backend.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Unknown names fall back to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)
    app.json.sort_keys = app.config.get("JSON_SORT_KEYS", False)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    from backend.warikan.extensions import db
    db.init_app(app)

    # ── Model registration ─────────────────────────────────────────────────
    with app.app_context():
        from backend.warikan.models import event, group, member  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    return app


def _configure_logging(app: Flask) -> None:
    """Applies LOG_LEVEL to the app logger and to the warikan package loggers."""
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    app.logger.setLevel(level)
    # Service modules log through logging.getLogger(__name__).
    logging.getLogger("backend.warikan").setLevel(level)


def _register_blueprints(app: Flask) -> None:
    """
    Registers all route blueprints under the /api/v1 prefix.

    events_bp and exports_bp share the /api/v1/groups prefix with groups_bp
    because every event path is nested under its group.
    """
    from backend.warikan.routes.calculator import calculator_bp
    from backend.warikan.routes.events import events_bp
    from backend.warikan.routes.exports import exports_bp
    from backend.warikan.routes.groups import groups_bp

    app.register_blueprint(calculator_bp, url_prefix="/api/v1")
    app.register_blueprint(groups_bp,     url_prefix="/api/v1/groups")
    app.register_blueprint(events_bp,     url_prefix="/api/v1/groups")
    app.register_blueprint(exports_bp,    url_prefix="/api/v1/groups")


def _first_validation_message(messages) -> tuple[str | None, str]:
    """
    Walks marshmallow's nested messages down to the first (field, message).

    The reported field is the top-level request key.
    """
    field = None
    while True:
        if isinstance(messages, dict):
            if not messages:
                return field, "Invalid input."
            key, messages = next(iter(messages.items()))
            if field is None and key != "_schema":
                field = str(key)
        elif isinstance(messages, list):
            if not messages:
                return field, "Invalid value."
            messages = messages[0]
        else:
            return field, str(messages)


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → structured JSON error envelope with the correct status
      ValidationError → first marshmallow error as MISSING_FIELD / INVALID_FIELD
                        or the registered code the schema raised (400)
      Exception       → generic INTERNAL_ERROR (500); traceback logged

    Stack traces never leave the server.
    """
    from backend.warikan.errors import AppError, ErrorCode

    known_codes = {v for k, v in vars(ErrorCode).items() if not k.startswith("_")}

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError — they let it propagate here."""
        if error.http_status >= 500:
            app.logger.error("AppError %s: %s", error.code, error.message)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        One error, not many: the first field error found is returned.

        A schema may raise one of our ErrorCode constants as the message;
        it is then used as the code and replaced by a readable message.
        """
        field, raw_message = _first_validation_message(error.messages)

        if raw_message in known_codes:
            code = raw_message
            message = _code_to_message(code)
        elif raw_message.startswith("Missing data for required field"):
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
    def handle_http_error(error: HTTPException):
        """Unknown routes, wrong methods and unparseable JSON bodies."""
        if error.code == 404:
            code = ErrorCode.NOT_FOUND
            message = f"No route for {request.method} {request.path}."
        elif error.code == 405:
            code = ErrorCode.METHOD_NOT_ALLOWED
            message = f"Method {request.method} is not allowed on {request.path}."
        else:
            code = ErrorCode.INVALID_FIELD
            message = error.description or "Invalid request."
        return jsonify({"error": {"code": code, "message": message}}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        The full traceback goes to the application logger only.
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
    """Readable default message for an ErrorCode raised as a ValidationError message."""
    _messages = {
        "INVALID_ROUNDING_MODE": "rounding_mode must be one of: floor, ceil, round.",
        "INVALID_CURRENCY": "The currency code is not supported.",
        "INVALID_CATEGORY": "The category value is not valid.",
        "INVALID_PAYMENT_METHOD": "The payment method is not supported.",
        "DUPLICATE_MEMBER": "The same participant id appears more than once.",
    }
    return _messages.get(code, "Invalid input.")
