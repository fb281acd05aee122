"""
Flask Configuration Management

This module provides environment-specific configuration classes for development,
testing and production deployments of the IC card report validation service. It
maps environment variables (optionally loaded from .env files with python-dotenv,
see ``app.load_environment_variables``) onto Flask settings, logging settings and
the PBKDF2 parameters used for card number hashing.

Environment variables:
- SECRET_KEY: Flask secret key
- LOG_LEVEL: Minimum log level (DEBUG, INFO, WARNING, ERROR)
- LOG_FORMAT: ``json`` or ``console``
- HASH_ITERATIONS: PBKDF2 iteration count (minimum 100000)
- HASH_SALT_LENGTH: Salt length in bytes (minimum 16)
- HASH_KEY_LENGTH: Derived key length in bytes
- HASH_ALGORITHM: SHA256 or SHA512
- HASH_PEPPER: Optional application-wide secret mixed into card hashes
"""

import os
from typing import Optional, Type

import structlog

logger = structlog.get_logger("config")

DEFAULT_SECRET_KEY = 'dev-key-change-in-production'

# Keys re-read from the environment at app creation, after .env files are loaded
ENVIRONMENT_KEYS = (
    'SECRET_KEY',
    'LOG_LEVEL',
    'LOG_FORMAT',
    'HASH_ITERATIONS',
    'HASH_SALT_LENGTH',
    'HASH_KEY_LENGTH',
    'HASH_ALGORITHM',
    'HASH_PEPPER',
)


class Config:
    """
    Base configuration class containing common settings for all environments.

    Environment-specific classes override the defaults below; values present
    in the process environment always win over class defaults.
    """

    # Flask Core Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or DEFAULT_SECRET_KEY
    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1MB

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')
    LOG_CACHE_LOGGERS = True

    # Card Number Hashing (PBKDF2)
    HASH_ITERATIONS = int(os.environ.get('HASH_ITERATIONS', '100000'))
    HASH_SALT_LENGTH = int(os.environ.get('HASH_SALT_LENGTH', '32'))
    HASH_KEY_LENGTH = int(os.environ.get('HASH_KEY_LENGTH', '64'))
    HASH_ALGORITHM = os.environ.get('HASH_ALGORITHM', 'SHA512')
    HASH_PEPPER = os.environ.get('HASH_PEPPER', '')

    @staticmethod
    def init_app(app):
        """
        Initialize application with configuration-specific settings.

        Re-applies environment variables so values loaded from .env files
        after this module was imported still take effect.

        Args:
            app: Flask application instance
        """
        for key in ENVIRONMENT_KEYS:
            if key in os.environ:
                app.config[key] = os.environ[key]


class DevelopmentConfig(Config):
    """Development environment configuration with console logging."""

    DEBUG = True
    TESTING = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'console')

    @staticmethod
    def init_app(app):
        """Initialize development-specific settings."""
        Config.init_app(app)

        if app.config['SECRET_KEY'] == DEFAULT_SECRET_KEY:
            logger.warning("Configuration warning: SECRET_KEY not properly set")


class TestingConfig(Config):
    """
    Testing environment configuration.

    Keeps hashing at the minimum accepted work factor and disables logger
    caching so tests can capture log output.
    """

    TESTING = True
    DEBUG = False

    SECRET_KEY = 'testing-secret-key'

    LOG_LEVEL = 'WARNING'  # Reduce log noise during testing
    LOG_FORMAT = 'json'
    LOG_CACHE_LOGGERS = False

    HASH_ITERATIONS = 100000
    HASH_PEPPER = 'testing-pepper'

    @staticmethod
    def init_app(app):
        """Testing ignores the process environment so runs are reproducible."""


class ProductionConfig(Config):
    """
    Production environment configuration.

    Requires a real SECRET_KEY; startup fails otherwise.
    """

    DEBUG = False
    TESTING = False

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = 'json'

    @staticmethod
    def init_app(app):
        """Initialize production-specific settings."""
        Config.init_app(app)

        if app.config['SECRET_KEY'] in (None, '', DEFAULT_SECRET_KEY):
            logger.error("Production SECRET_KEY not configured properly")
            raise RuntimeError("Production SECRET_KEY must be set")


# Configuration mapping for environment-based selection
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name: Optional[str] = None) -> Type[Config]:
    """
    Get configuration class based on environment name.

    Args:
        config_name: Name of the configuration environment; falls back to
            FLASK_CONFIG, then FLASK_ENV

    Returns:
        Configuration class for the specified environment
    """
    if config_name is None:
        config_name = os.environ.get('FLASK_CONFIG') or os.environ.get('FLASK_ENV', 'default')

    return config.get(config_name, DevelopmentConfig)


__all__ = [
    'Config',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'config',
    'get_config',
]
