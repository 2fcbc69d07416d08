"""
Flask configuration classes.

Settings are read from environment variables (a ``.env`` file is loaded with
python-dotenv first) into class attributes. ``get_config`` selects the class
by name, falling back to ``FLASK_ENV``. Each class may define an ``init_app``
hook that ``create_app`` calls once the configuration is loaded, which is
where environment-specific checks live.
"""

import os
from typing import Dict, Optional, Type

import structlog
from dotenv import load_dotenv
from flask import Flask

# Load environment variables early
load_dotenv()

logger = structlog.get_logger(__name__)


def _env_bool(name: str, default: str = 'true') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Settings shared by every environment."""

    # Flask Core Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(32).hex())
    TESTING = False
    DEBUG = False

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'dealership-api')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    # Request Parsing Configuration
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', '1048576'))  # 1MB default

    # Authentication
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY')
    JWT_ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')
    JWT_EXPIRATION_MINUTES = int(os.getenv('JWT_EXPIRATION_MINUTES', '60'))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')
    REQUEST_LOGGING_ENABLED = _env_bool('REQUEST_LOGGING_ENABLED')

    # Flask-CORS Configuration
    CORS_CONFIG = {
        'origins': os.getenv('CORS_ORIGINS', '*').split(','),
        'methods': ['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'OPTIONS'],
        'allow_headers': ['Content-Type', 'Authorization', 'X-Request-ID'],
        'expose_headers': ['X-Request-ID'],
        'max_age': int(os.getenv('CORS_MAX_AGE', '86400')),
    }

    @classmethod
    def init_app(cls, app: Flask) -> None:
        pass


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')

    @classmethod
    def init_app(cls, app: Flask) -> None:
        if not app.config.get('JWT_SECRET_KEY'):
            # Tokens issued by a development server are not meant to survive a restart.
            app.config['JWT_SECRET_KEY'] = app.config['SECRET_KEY']
            logger.warning("JWT_SECRET_KEY not set, falling back to SECRET_KEY")


class TestingConfig(BaseConfig):
    TESTING = True
    SECRET_KEY = 'testing-secret-key'
    JWT_SECRET_KEY = 'testing-jwt-signing-secret-0123456789abcdef'
    LOG_LEVEL = 'WARNING'
    REQUEST_LOGGING_ENABLED = False


class ProductionConfig(BaseConfig):
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')

    @classmethod
    def init_app(cls, app: Flask) -> None:
        if not app.config.get('JWT_SECRET_KEY'):
            raise ValueError("JWT_SECRET_KEY environment variable must be set in production")
        if not os.getenv('SECRET_KEY'):
            logger.warning("SECRET_KEY not set, using a per-process random key")


# Configuration mapping for environment-based selection
config_map: Dict[str, Type[BaseConfig]] = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,

    # Aliases for convenience
    'dev': DevelopmentConfig,
    'test': TestingConfig,
    'prod': ProductionConfig,
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ValueError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', 'development')

    environment = environment.lower()

    if environment not in config_map:
        raise ValueError(
            f"Unsupported environment '{environment}'. "
            f"Supported environments: {sorted(config_map.keys())}"
        )

    return config_map[environment]


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'config_map',
    'get_config',
]
