"""
Error taxonomy and Flask error handling for the dealership API.

Every failure a request can end in is one of a small closed set of kinds, each
with a fixed HTTP status:

- InputMalformed: empty or unparsable request body (400)
- ValidationFailed: field or consistency rule violations (400, with details)
- Unauthenticated: no current user (401)
- Unauthorized: the user's role lacks the permission (403)
- NotFound: the service reports a missing entity (404)
- Conflict: duplicate key or a referenced entity blocks the change (409)
- Internal: anything else (500, message sanitized)

Routes raise these exceptions; ``register_error_handlers`` renders them as the
``{success: false, error, details?}`` envelope. Unhandled exceptions and
werkzeug HTTP errors are rendered in the same envelope so that every response
body is JSON and no traceback ever reaches a client.
"""

from enum import Enum
from typing import Any, Dict, Iterable, Optional

import structlog
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from dealership.monitoring.metrics import ERROR_RESPONSES
from dealership.utils.sanitizers import sanitize_error_message

logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    """Closed set of failure kinds shared by services, mapper and handlers."""

    INPUT_MALFORMED = "input_malformed"
    VALIDATION_FAILED = "validation_failed"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


class BaseApplicationError(Exception):
    """
    Base exception for all request-terminating errors.

    Attributes:
        message: Client-facing error text
        kind: ErrorKind classification
        http_status: Status code the error is rendered with
        details: Optional client-facing detail string
    """

    kind: ErrorKind = ErrorKind.INTERNAL
    http_status: int = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {'success': False, 'error': self.message}
        if self.details is not None:
            body['details'] = self.details
        return body

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class InputMalformedError(BaseApplicationError):
    kind = ErrorKind.INPUT_MALFORMED
    http_status = 400


class ValidationFailedError(BaseApplicationError):
    """Raised when an entity validator reported one or more problems."""

    kind = ErrorKind.VALIDATION_FAILED
    http_status = 400

    def __init__(self, errors: Iterable[str], entity: str = 'payload'):
        self.errors = list(errors)
        self.entity = entity
        super().__init__('Validation failed', details=', '.join(self.errors))


class AuthenticationError(BaseApplicationError):
    kind = ErrorKind.UNAUTHENTICATED
    http_status = 401

    def __init__(self, message: str = 'Authentication required'):
        super().__init__(message)


class AuthorizationError(BaseApplicationError):
    kind = ErrorKind.UNAUTHORIZED
    http_status = 403

    def __init__(self, message: str = 'Insufficient permissions'):
        super().__init__(message)


class NotFoundError(BaseApplicationError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404


class ConflictError(BaseApplicationError):
    kind = ErrorKind.CONFLICT
    http_status = 409


class InternalError(BaseApplicationError):
    """
    Catch-all server error. The raw message is kept for server-side logging
    only; the client sees the sanitized form.
    """

    kind = ErrorKind.INTERNAL
    http_status = 500

    def __init__(self, message: str):
        self.raw_message = message
        super().__init__(sanitize_error_message(message))


ERROR_CLASSES_BY_KIND = {
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.INTERNAL: InternalError,
}


def _error_response(body: Dict[str, Any], status_code: int, kind: str):
    ERROR_RESPONSES.labels(
        kind=kind,
        endpoint=request.endpoint or 'unknown'
    ).inc()
    return jsonify(body), status_code


def register_error_handlers(app: Flask) -> None:
    """Install JSON error handlers for the taxonomy, HTTP errors and crashes."""

    @app.errorhandler(BaseApplicationError)
    def handle_application_error(error: BaseApplicationError):
        log = logger.error if error.http_status >= 500 else logger.warning
        log(
            "Request failed",
            error_kind=error.kind.value,
            status_code=error.http_status,
            error=getattr(error, 'raw_message', error.message),
            details=error.details,
            endpoint=request.endpoint,
        )
        return _error_response(error.to_dict(), error.http_status, error.kind.value)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        status_code = error.code or 500
        if status_code == 404:
            message = 'Resource not found'
        elif status_code == 405:
            message = 'Method not allowed'
        else:
            message = error.name
        return _error_response({'success': False, 'error': message}, status_code, 'http')

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception(
            "Unhandled exception",
            error_type=type(error).__name__,
            endpoint=request.endpoint,
        )
        return _error_response(
            {'success': False, 'error': 'Internal server error'}, 500, ErrorKind.INTERNAL.value
        )


__all__ = [
    'ErrorKind',
    'BaseApplicationError',
    'InputMalformedError',
    'ValidationFailedError',
    'AuthenticationError',
    'AuthorizationError',
    'NotFoundError',
    'ConflictError',
    'InternalError',
    'ERROR_CLASSES_BY_KIND',
    'register_error_handlers',
]
