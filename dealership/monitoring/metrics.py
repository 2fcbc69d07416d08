"""
Prometheus metrics for the dealership API.

Metrics live in the default prometheus_client registry and are exposed by the
health blueprint at ``/api/metrics``.
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

REQUEST_COUNT = Counter(
    'dealership_api_requests_total',
    'Total number of API requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'dealership_api_request_duration_seconds',
    'API request duration in seconds',
    ['method', 'endpoint']
)

VALIDATION_FAILURES = Counter(
    'dealership_api_validation_failures_total',
    'Payloads rejected by entity validation',
    ['entity']
)

ERROR_RESPONSES = Counter(
    'dealership_api_error_responses_total',
    'Error responses by error kind',
    ['kind', 'endpoint']
)

SERVICE_FAILURES = Counter(
    'dealership_service_failures_total',
    'Failed service outcomes seen by the API layer',
    ['operation', 'status_code']
)


def render_latest():
    """Return the exposition payload and its content type."""
    return generate_latest(), CONTENT_TYPE_LATEST


__all__ = [
    'REQUEST_COUNT',
    'REQUEST_DURATION',
    'VALIDATION_FAILURES',
    'ERROR_RESPONSES',
    'SERVICE_FAILURES',
    'render_latest',
]
