from enum import Enum

from flask import jsonify, g
from werkzeug.exceptions import HTTPException


class ErrorKind(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    # Used for both missing and not-owned resources so existence never leaks
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_VOTE = "DUPLICATE_VOTE"
    OPTION_OUT_OF_RANGE = "OPTION_OUT_OF_RANGE"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    RATE_LIMITED = "RATE_LIMITED"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    AUTH_FAILED = "AUTH_FAILED"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"


STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.DUPLICATE_VOTE: 409,
    ErrorKind.OPTION_OUT_OF_RANGE: 400,
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.UPDATE_FAILED: 400,
    ErrorKind.DELETE_FAILED: 400,
    ErrorKind.AUTH_FAILED: 401,
    ErrorKind.ALREADY_REGISTERED: 409,
}


class ServiceError:
    """
    Failure value returned by service operations.

    Operations hand these back instead of raising, so a route decides how to
    render them. `message` is always safe to show to the end user.
    """

    __slots__ = ("kind", "message", "details")

    def __init__(self, kind: ErrorKind, message: str, details=None):
        self.kind = kind
        self.message = message
        self.details = details

    def __eq__(self, other):
        if not isinstance(other, ServiceError):
            return NotImplemented
        return (self.kind, self.message, self.details) == (other.kind, other.message, other.details)

    def __repr__(self):
        return f"ServiceError({self.kind.value}, {self.message!r})"

    @property
    def status(self) -> int:
        return STATUS_BY_KIND.get(self.kind, 400)


def validation_failed(messages: list[str]) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION_FAILED, " ".join(messages), details=list(messages))


def store_unavailable() -> ServiceError:
    return ServiceError(ErrorKind.STORE_UNAVAILABLE, "Service temporarily unavailable. Please try again.")


def _payload(code: str, message: str, details=None, status=400):
    return (
        jsonify({
            "success": False,
            "error": {
                "code": code,
                "message": message,
                "details": details or None,
            },
            "request_id": getattr(g, "request_id", None),
        }),
        status,
    )


def error_response(err: ServiceError):
    return _payload(err.kind.value, err.message, details=err.details, status=err.status)


def register_error_handlers(app):
    # Generic HTTP errors (404, 403, 401, etc.)
    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        desc = e.description

        # If we pass structured error info via abort(description=dict)
        if isinstance(desc, dict):
            code = desc.get("code") or e.name.replace(" ", "_").upper()
            message = desc.get("message") or e.name
            details = desc.get("errors") or desc.get("details")
            return _payload(code=code, message=message, details=details, status=e.code or 400)

        return _payload(
            code=e.name.replace(" ", "_").upper(),
            message=desc or e.name,
            details=None,
            status=e.code or 400
        )

    @app.errorhandler(404)
    def handle_404(_):
        return _payload("NOT_FOUND", "Resource not found", status=404)

    @app.errorhandler(500)
    def handle_500(_):
        # Don't leak internals
        return _payload("INTERNAL_SERVER_ERROR", "An unexpected error occurred", status=500)
