"""
Flask application factory.

``create_app`` wires one application instance together:

1. configuration class selected by name (or ``FLASK_ENV``) plus overrides;
2. structured logging and the request logging middleware;
3. Flask-CORS for the storefront and admin front-ends;
4. the services and auth provider, stored under ``app.extensions``;
5. JSON error handlers for the error taxonomy;
6. the API blueprints.

Services default to the in-memory reference implementation and the auth
provider to a ``JWTAuthProvider`` built from the ``JWT_*`` settings; either
can be injected, which is how tests and real deployments swap them.
"""

from datetime import timedelta
from typing import Any, Optional

import structlog
from flask import Flask
from flask_cors import CORS

from dealership import __version__
from dealership.auth.authentication import JWTAuthProvider
from dealership.blueprints import register_blueprints
from dealership.business.services import create_in_memory_services
from dealership.config.settings import get_config
from dealership.extensions import EXTENSION_KEY, DealershipExtension
from dealership.monitoring.logging import init_request_logging, setup_structured_logging
from dealership.utils.exceptions import register_error_handlers

logger = structlog.get_logger(__name__)


def _configure_application(app: Flask, config_name: Optional[str], **config_overrides: Any) -> None:
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Apply configuration overrides
    if config_overrides:
        app.config.update(config_overrides)

    app.config['CONFIG_CLASS'] = config_class.__name__
    app.json.sort_keys = False
    config_class.init_app(app)


def _initialize_cors(app: Flask) -> None:
    cors_config = app.config.get('CORS_CONFIG') or {'origins': ['*']}
    CORS(app, resources={r'/api/*': dict(cors_config)})


def build_auth_provider(app: Flask) -> JWTAuthProvider:
    return JWTAuthProvider(
        secret_key=app.config['JWT_SECRET_KEY'],
        algorithms=(app.config.get('JWT_ALGORITHM', 'HS256'),),
        expiration=timedelta(minutes=app.config.get('JWT_EXPIRATION_MINUTES', 60)),
    )


def create_app(
    config_name: Optional[str] = None,
    services=None,
    auth_provider=None,
    **config_overrides: Any
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name (development, testing, production)
        services: Object exposing ``vehicles``, ``customers``, ``invoices`` and
            ``expenses`` services; defaults to in-memory services
        auth_provider: Object with ``get_current_user(request)``; defaults to
            a ``JWTAuthProvider`` built from configuration
        **config_overrides: Configuration values applied after the config class

    Returns:
        Configured Flask application

    Raises:
        ValueError: If the environment is unknown or a required setting is missing

    Examples:
        app = create_app('testing')
        app = create_app('production', services=database_backed_services)
    """
    app = Flask(__name__.split('.')[0])

    _configure_application(app, config_name, **config_overrides)
    setup_structured_logging(app)
    init_request_logging(app)
    _initialize_cors(app)

    if services is None:
        services = create_in_memory_services()
    if auth_provider is None:
        auth_provider = build_auth_provider(app)
    app.extensions[EXTENSION_KEY] = DealershipExtension(services=services, auth_provider=auth_provider)

    register_error_handlers(app)
    register_blueprints(app)

    logger.info(
        "Application created",
        app_name=app.config.get('APP_NAME'),
        version=__version__,
        config_class=app.config['CONFIG_CLASS'],
        services=type(services).__name__,
        auth_provider=type(auth_provider).__name__,
    )
    return app


__all__ = ['create_app', 'build_auth_provider']
