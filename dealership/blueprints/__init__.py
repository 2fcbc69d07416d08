"""
API blueprints.

Each resource has its own blueprint under ``/api``. ``register_blueprints``
attaches all of them to an application in a fixed order.
"""

from typing import List

import structlog
from flask import Blueprint, Flask

from dealership.blueprints.customers import customers_bp
from dealership.blueprints.expenses import expenses_bp
from dealership.blueprints.health import health_bp
from dealership.blueprints.invoices import invoices_bp
from dealership.blueprints.payments import payments_bp
from dealership.blueprints.vehicles import vehicles_bp

logger = structlog.get_logger(__name__)

BLUEPRINTS: List[Blueprint] = [
    health_bp,
    vehicles_bp,
    invoices_bp,
    customers_bp,
    expenses_bp,
    payments_bp,
]


def register_blueprints(app: Flask) -> List[str]:
    """Register every API blueprint on ``app`` and return their names."""
    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    names = [blueprint.name for blueprint in BLUEPRINTS]
    logger.info("API blueprints registered", blueprints=names, total_routes=len(list(app.url_map.iter_rules())))
    return names


__all__ = [
    'BLUEPRINTS',
    'register_blueprints',
    'health_bp',
    'vehicles_bp',
    'invoices_bp',
    'customers_bp',
    'expenses_bp',
    'payments_bp',
]
