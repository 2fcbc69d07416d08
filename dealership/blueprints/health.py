"""
Health and metrics endpoints.

``/api/health`` is a liveness check for load balancers: it reports the
application name and version and never touches the services.
``/api/metrics`` exposes the Prometheus registry.
"""

from flask import Blueprint, Response, current_app, jsonify

from dealership.business.models import utcnow
from dealership.monitoring.metrics import render_latest

health_bp = Blueprint('health', __name__, url_prefix='/api')


@health_bp.route('/health', methods=['GET'])
def basic_health():
    return jsonify({
        'status': 'healthy',
        'service': current_app.config.get('APP_NAME'),
        'version': current_app.config.get('APP_VERSION'),
        'timestamp': utcnow().isoformat(),
    })


@health_bp.route('/metrics', methods=['GET'])
def prometheus_metrics():
    payload, content_type = render_latest()
    return Response(payload, content_type=content_type)


__all__ = ['health_bp']
