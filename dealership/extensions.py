"""
Per-application wiring.

``create_app`` stores a ``DealershipExtension`` under
``app.extensions['dealership']``; route handlers reach the services and the
auth provider through it instead of importing module-level singletons.
"""

from flask import current_app

EXTENSION_KEY = 'dealership'


class DealershipExtension:
    """Services and auth provider bound to one Flask application."""

    def __init__(self, services, auth_provider):
        self.services = services
        self.auth_provider = auth_provider


def get_extension() -> DealershipExtension:
    return current_app.extensions[EXTENSION_KEY]


def get_services():
    return get_extension().services


__all__ = ['EXTENSION_KEY', 'DealershipExtension', 'get_extension', 'get_services']
