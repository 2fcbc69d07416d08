"""Structured logging, request middleware and Prometheus metrics."""

from dealership.monitoring.logging import init_request_logging, setup_structured_logging
from dealership.monitoring.metrics import render_latest

__all__ = ['init_request_logging', 'setup_structured_logging', 'render_latest']
