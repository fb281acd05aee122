"""
Flask Application Factory - Main Entry Point

Builds the HTTP adapter around the icguard validation core:

- environment variables are loaded from .env files with python-dotenv
- configuration classes come from ``config.py`` (development, testing,
  production)
- structlog is configured from LOG_LEVEL / LOG_FORMAT
- one DataValidator, CardClassifier and SecureHashManager per application
  are stored in ``app.extensions['icguard']``
- blueprints are registered through ``blueprints.register_blueprints``
- every error leaves the service as the standard JSON error envelope

Invalid hashing parameters abort application creation with
``icguard.ConfigurationError``.
"""

import os
import sys
import uuid
from pathlib import Path
from typing import Optional

import structlog
from dotenv import load_dotenv
from flask import Flask, g, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from blueprints import register_blueprints
from blueprints.api import create_error_response
from config import get_config
from icguard import CardClassifier, DataValidator, HashConfig, ICGuardError, SecureHashManager
from icguard.logging import configure_logging

logger = structlog.get_logger("app")


def load_environment_variables() -> bool:
    """
    Load environment variables from .env files using python-dotenv.

    Returns:
        bool: True if at least one .env file was loaded

    Environment Search Order:
        1. .env (default environment settings)
        2. .env.{FLASK_ENV} (environment-specific settings)
        3. .env.local (local development overrides)
        System environment variables always take precedence.
    """
    flask_env = os.environ.get('FLASK_ENV', 'development')

    env_files = [
        '.env',
        f'.env.{flask_env}',
        '.env.local'
    ]

    loaded_files = []
    for env_file in env_files:
        if Path(env_file).exists():
            load_dotenv(env_file, override=False)
            loaded_files.append(env_file)

    if loaded_files:
        logger.info("Environment variables loaded", files=loaded_files)
    else:
        logger.debug("No .env files found, using system environment variables only")

    return bool(loaded_files)


def init_icguard(app: Flask) -> None:
    """
    Create the validation components for this application.

    Raises:
        ConfigurationError: If the HASH_* settings are invalid
    """
    hash_config = HashConfig.from_mapping(app.config)
    classifier = CardClassifier()

    app.extensions['icguard'] = {
        'classifier': classifier,
        'validator': DataValidator(classifier=classifier),
        'hasher': SecureHashManager(hash_config),
    }

    logger.info(
        "Validation core initialized",
        hash_algorithm=hash_config.algorithm,
        hash_iterations=hash_config.iterations
    )


def register_error_handlers(app: Flask) -> None:
    """
    Register error handlers producing the standard JSON error envelope.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        logger.warning("Request validation failed", path=request.path, errors=error.messages)
        return create_error_response(
            message="Validation failed",
            error_code="VALIDATION_ERROR",
            status_code=400,
            details={'errors': error.messages}
        )

    @app.errorhandler(ICGuardError)
    def handle_icguard_error(error):
        logger.warning(
            "Application error",
            error_code=error.error_code,
            correlation_id=error.correlation_id
        )
        return create_error_response(
            message=error.message,
            error_code=error.error_code,
            status_code=error.status_code
        )

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return create_error_response(
            message=error.description or error.name,
            error_code=error.name.upper().replace(' ', '_'),
            status_code=error.code or 500
        )

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.error("Unexpected error", path=request.path, exc_info=True)
        return create_error_response(
            message="An unexpected error occurred",
            error_code="INTERNAL_ERROR",
            status_code=500
        )


def configure_request_context(app: Flask) -> None:
    """
    Assign request identifiers and add security headers.

    The request id is bound into structlog context variables so every log
    line emitted while serving a request carries it.
    """

    @app.before_request
    def before_request():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=g.request_id)

    @app.after_request
    def after_request(response):
        response.headers['X-Request-ID'] = g.get('request_id', '')
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Cache-Control'] = 'no-store'
        return response


def create_app(config_name: Optional[str] = None) -> Flask:
    """
    Flask application factory.

    Args:
        config_name: Environment configuration name ('development', 'testing',
            'production'). If None, determined from FLASK_CONFIG / FLASK_ENV

    Returns:
        Flask: Configured application instance

    Example:
        from app import create_app
        app = create_app('development')
        app.run(debug=True)
    """
    load_environment_variables()

    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    config_class.init_app(app)

    configure_logging(
        level=app.config['LOG_LEVEL'],
        log_format=app.config['LOG_FORMAT'],
        cache_loggers=app.config['LOG_CACHE_LOGGERS']
    )
    app.json.sort_keys = False

    init_icguard(app)
    register_error_handlers(app)
    configure_request_context(app)
    register_blueprints(app)

    logger.info(
        "Flask application created",
        config=config_class.__name__,
        debug=app.debug,
        testing=app.testing
    )

    return app


if __name__ == '__main__':
    try:
        dev_app = create_app()
    except ICGuardError as e:
        logger.error("Development server startup failed", error=e.message)
        sys.exit(1)

    dev_app.run(
        host=os.environ.get('FLASK_HOST', '127.0.0.1'),
        port=int(os.environ.get('FLASK_PORT', 5000)),
        debug=dev_app.debug
    )
