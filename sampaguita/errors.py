"""Centralised error handling and custom exceptions.

Services raise the exceptions defined here instead of returning
``None``/``False`` on failure, so each route can decide whether to
fail the request or fall back to a degraded response. The Flask
handlers registered by :func:`register_error_handlers` serialise
them into JSON. Exception text from the database layer is logged,
never sent to the client.
"""
from __future__ import annotations

from flask import current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .db import db


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    code = "ERROR"
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message}

    def to_response(self, status_code: int | None = None):
        return jsonify({"error": self.payload()}), status_code or self.status_code


class ValidationError(ServiceError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, fields: dict | None = None) -> None:
        super().__init__(message)
        self.fields = fields or {}

    def payload(self) -> dict:
        return {"code": self.code, "message": self.message, "fields": self.fields}


class AuthenticationError(ServiceError):
    """Raised when credentials cannot be verified."""

    code = "AUTHENTICATION_FAILED"
    status_code = 401


class AuthorizationError(ServiceError):
    """Raised when the caller lacks permission for an action."""

    code = "FORBIDDEN"
    status_code = 403


class NotFoundError(ServiceError):
    """Raised when a requested resource cannot be found."""

    code = "NOT_FOUND"
    status_code = 404


class ConflictError(ServiceError):
    """Raised when a uniqueness or resource conflict occurs."""

    code = "CONFLICT"
    status_code = 409


class DataAccessError(ServiceError):
    """Raised when a database operation fails.

    The original exception is chained as ``__cause__``; the message
    is safe to show to users.
    """

    code = "DATA_ACCESS_ERROR"
    status_code = 503

    def __init__(self, message: str = "A database error occurred. Please try again.") -> None:
        super().__init__(message)


def register_error_handlers(app) -> None:
    """Register custom error handlers on the given Flask app."""

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        return err.to_response()

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(err: SQLAlchemyError):
        current_app.logger.exception("Unhandled database error")
        db.session.rollback()
        return DataAccessError().to_response()

    @app.errorhandler(404)
    def handle_not_found(err):
        return NotFoundError("Resource not found.").to_response()

    @app.errorhandler(405)
    def handle_method_not_allowed(err):
        return jsonify({"error": {"code": "METHOD_NOT_ALLOWED", "message": "Method not allowed."}}), 405
