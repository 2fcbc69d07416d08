"""Environment-specific Flask configuration."""

from dealership.config.settings import (
    BaseConfig,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    get_config,
)

__all__ = ['BaseConfig', 'DevelopmentConfig', 'ProductionConfig', 'TestingConfig', 'get_config']
