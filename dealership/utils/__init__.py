"""
Shared utilities: field validators, error sanitization, the error taxonomy,
request parsing and response formatting.

Only the leaf modules are re-exported here. ``request`` and ``response``
depend on the business models and are imported from their own modules.
"""

from dealership.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BaseApplicationError,
    ConflictError,
    ErrorKind,
    InputMalformedError,
    InternalError,
    NotFoundError,
    ValidationFailedError,
    register_error_handlers,
)
from dealership.utils.sanitizers import contains_sensitive_data, sanitize_error_message
from dealership.utils.validators import ValidationResult

__all__ = [
    'AuthenticationError',
    'AuthorizationError',
    'BaseApplicationError',
    'ConflictError',
    'ErrorKind',
    'InputMalformedError',
    'InternalError',
    'NotFoundError',
    'ValidationFailedError',
    'register_error_handlers',
    'contains_sensitive_data',
    'sanitize_error_message',
    'ValidationResult',
]
