# Overview: Error taxonomy shared by services and the HTTP boundary.

"""
Typed errors raised by the service layer.

Every error carries the HTTP status the boundary should answer with. Routes
never build error responses by hand: the handlers registered in
register_error_handlers() turn these into a stable {"message": ...} body.

    ValidationError       400  malformed or missing input
    InvalidTenantError    400  shopId present but not an integer
    AuthenticationError   401  missing/invalid/expired token, bad credentials
    AuthorizationError    403  MissingTenant, NotAMember, ResourceMismatch
    NotFoundError         404  entity absent
    ConflictError         409  duplicate unique key
"""

from flask import current_app, jsonify
from werkzeug.exceptions import HTTPException


class StockroomError(Exception):
    """Base class for errors that map to a client-facing status."""
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(StockroomError, ValueError):
    """400-level input problem."""
    status_code = 400
    default_message = "Invalid request"


class InvalidTenantError(ValidationError):
    default_message = "shopId must be a valid number"


class AuthenticationError(StockroomError):
    status_code = 401
    default_message = "Authentication required"


class AuthorizationError(StockroomError):
    status_code = 403
    default_message = "Forbidden"


class MissingTenantError(AuthorizationError):
    default_message = (
        "shopId is required. Connect to a shop, or provide it as query "
        "parameter, in the request body, or in cookies"
    )


class NotAMemberError(AuthorizationError):
    default_message = "User is not a member of this shop"


class ResourceMismatchError(AuthorizationError):
    default_message = "You do not have access to this resource"


class NotFoundError(StockroomError):
    status_code = 404
    default_message = "Not found"


class ShopNotFoundError(NotFoundError):
    default_message = "Shop not found"


class ConflictError(StockroomError, ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""
    status_code = 409
    default_message = "Conflict"


def _error_response(message: str, status_code: int):
    return jsonify({"message": message}), status_code


def register_error_handlers(app) -> None:
    from .services.security_service import flush_pending_events

    @app.errorhandler(StockroomError)
    def handle_stockroom_error(exc: StockroomError):
        # Persists queued denials after discarding the failed request's session work
        flush_pending_events()
        return _error_response(exc.message, exc.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        return _error_response(exc.description or exc.name, exc.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return _error_response("Internal server error", 500)
