"""
Structured logging and request logging middleware.

``setup_structured_logging`` configures structlog on top of the standard
library ``logging`` module, rendering JSON (default) or console output
depending on ``LOG_FORMAT``. ``init_request_logging`` installs
before/after-request hooks that:

- bind a correlation id (the incoming ``X-Request-ID`` header or a fresh
  uuid4) to structlog's context variables so every log line of the request
  carries it;
- log request start and completion with status code and duration;
- record request count and latency in Prometheus;
- echo the correlation id back in the ``X-Request-ID`` response header.
"""

import logging
import logging.config
import time
import uuid
from typing import Any, Dict, Optional

import structlog
from flask import Flask, g, request

from dealership.monitoring.metrics import REQUEST_COUNT, REQUEST_DURATION

REQUEST_ID_HEADER = 'X-Request-ID'
MAX_REQUEST_ID_LENGTH = 128


def setup_structured_logging(app: Optional[Flask] = None) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and the standard library root logger.

    Args:
        app: Optional Flask application whose ``LOG_LEVEL``, ``LOG_FORMAT``
            and ``APP_NAME`` settings are used

    Returns:
        Logger bound to the application name
    """
    config: Dict[str, Any] = app.config if app is not None else {}
    log_level = str(config.get('LOG_LEVEL', 'INFO')).upper()
    log_format = str(config.get('LOG_FORMAT', 'json')).lower()
    app_name = config.get('APP_NAME', 'dealership-api')

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {'format': '%(message)s'},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': log_level,
        },
    })

    logger = structlog.get_logger(app_name)
    logger.info("Structured logging initialized", log_level=log_level, log_format=log_format)
    return logger


def _incoming_request_id() -> str:
    request_id = (request.headers.get(REQUEST_ID_HEADER) or '').strip()
    if not request_id or len(request_id) > MAX_REQUEST_ID_LENGTH:
        return str(uuid.uuid4())
    return request_id


def init_request_logging(app: Flask) -> None:
    """Install the request logging and metrics hooks on ``app``."""
    logger = structlog.get_logger('dealership.request')
    logging_enabled = app.config.get('REQUEST_LOGGING_ENABLED', True)

    @app.before_request
    def start_request_logging():
        g.request_started_at = time.perf_counter()
        g.request_id = _incoming_request_id()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=g.request_id)

        if logging_enabled:
            logger.info(
                "Request started",
                method=request.method,
                path=request.path,
                endpoint=request.endpoint,
                user_agent=request.headers.get('User-Agent', 'unknown')[:100],
            )

    @app.after_request
    def finish_request_logging(response):
        started_at = g.get('request_started_at')
        duration = time.perf_counter() - started_at if started_at is not None else 0.0
        endpoint = request.endpoint or 'unmatched'

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=str(response.status_code),
        ).inc()
        REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(duration)

        if logging_enabled:
            logger.info(
                "Request completed",
                method=request.method,
                path=request.path,
                endpoint=endpoint,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )

        request_id = g.get('request_id')
        if request_id:
            response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.teardown_request
    def clear_request_context(exc):
        structlog.contextvars.clear_contextvars()


__all__ = [
    'REQUEST_ID_HEADER',
    'setup_structured_logging',
    'init_request_logging',
]
