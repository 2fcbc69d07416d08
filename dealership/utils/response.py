"""
Response formatting and service-error mapping.

Successful responses use the envelope ``{success: true, data, pagination?}``
(``message`` replaces ``data`` for deletes and status changes). Failed
service outcomes are turned into taxonomy exceptions by
``map_service_error``, which the application's error handlers render.

Classification of a failed outcome:

1. a structured ``error_kind`` on the outcome wins;
2. otherwise the error text is matched case-sensitively: ``"not found"``
   means NotFound, ``"already exists"`` or ``"Cannot delete"`` mean Conflict;
3. anything else is Internal, and its text is sanitized.

NotFound and Conflict messages are passed through to the client unchanged.
"""

from typing import Any, Mapping, Optional, Union

import structlog
from flask import Response, jsonify

from dealership.business.models import Pagination, ServiceOutcome
from dealership.monitoring.metrics import SERVICE_FAILURES, VALIDATION_FAILURES
from dealership.utils.exceptions import (
    ERROR_CLASSES_BY_KIND,
    BaseApplicationError,
    ErrorKind,
    InternalError,
    ValidationFailedError,
)
from dealership.utils.validators import ValidationResult

logger = structlog.get_logger(__name__)

NOT_FOUND_MARKERS = ('not found',)
CONFLICT_MARKERS = ('already exists', 'Cannot delete')

PUBLIC_LIST_CACHE = 'public, max-age=60, stale-while-revalidate=300'
PUBLIC_DETAIL_CACHE = 'public, max-age=300, stale-while-revalidate=600'

OutcomeLike = Union[ServiceOutcome, Mapping[str, Any]]


def _outcome_field(outcome: OutcomeLike, name: str) -> Any:
    if isinstance(outcome, Mapping):
        return outcome.get(name)
    return getattr(outcome, name, None)


def classify_service_error(error: Optional[str]) -> ErrorKind:
    """Classify free-text service errors by the phrases services use."""
    if not error:
        return ErrorKind.INTERNAL
    if any(marker in error for marker in NOT_FOUND_MARKERS):
        return ErrorKind.NOT_FOUND
    if any(marker in error for marker in CONFLICT_MARKERS):
        return ErrorKind.CONFLICT
    return ErrorKind.INTERNAL


def map_service_error(
    outcome: OutcomeLike,
    default_message: str = 'Internal server error',
    operation: str = 'unknown',
) -> BaseApplicationError:
    """
    Build the exception a failed service outcome should surface as.

    Args:
        outcome: Failed ``ServiceOutcome`` (or an equivalent mapping)
        default_message: Text used when the outcome carries no error text
        operation: Operation name recorded in metrics and logs

    Returns:
        NotFoundError, ConflictError or InternalError instance
    """
    error = _outcome_field(outcome, 'error') or default_message
    kind = _outcome_field(outcome, 'error_kind')
    if kind is not None:
        kind = ErrorKind(kind)
    else:
        kind = classify_service_error(error)

    error_class = ERROR_CLASSES_BY_KIND.get(kind, InternalError)
    exception = error_class(error)

    SERVICE_FAILURES.labels(operation=operation, status_code=str(exception.http_status)).inc()
    logger.warning(
        "Service call failed",
        operation=operation,
        error_kind=kind.value,
        status_code=exception.http_status,
    )
    return exception


def ensure_valid(result: ValidationResult, entity: str) -> None:
    """Raise ``ValidationFailedError`` carrying every error in ``result``."""
    if result.is_valid:
        return
    VALIDATION_FAILURES.labels(entity=entity).inc()
    logger.info("Validation failed", entity=entity, errors=result.errors)
    raise ValidationFailedError(result.errors, entity=entity)


def success_response(
    data: Any = None,
    status_code: int = 200,
    pagination: Optional[Pagination] = None,
    message: Optional[str] = None,
    cache_control: Optional[str] = None,
) -> Response:
    body = {'success': True}
    if message is not None:
        body['message'] = message
    if data is not None or message is None:
        body['data'] = data
    if pagination is not None:
        body['pagination'] = pagination.model_dump()

    response = jsonify(body)
    response.status_code = status_code
    if cache_control:
        response.headers['Cache-Control'] = cache_control
    return response


def outcome_response(
    outcome: ServiceOutcome,
    default_message: str,
    operation: str,
    status_code: int = 200,
    cache_control: Optional[str] = None,
    message: Optional[str] = None,
) -> Response:
    """Render a service outcome, raising the mapped error when it failed."""
    if not outcome.success:
        raise map_service_error(outcome, default_message, operation)
    data = None if message is not None else outcome.data
    return success_response(
        data,
        status_code=status_code,
        pagination=outcome.pagination,
        message=message,
        cache_control=cache_control,
    )


__all__ = [
    'NOT_FOUND_MARKERS',
    'CONFLICT_MARKERS',
    'PUBLIC_LIST_CACHE',
    'PUBLIC_DETAIL_CACHE',
    'classify_service_error',
    'map_service_error',
    'ensure_valid',
    'success_response',
    'outcome_response',
]
