"""
Flask Blueprint Package Initialization

Centralized blueprint registration for the application factory. Blueprints
are declared in ``BLUEPRINTS`` with their module path and URL prefix and are
imported and registered in priority order.
"""

from dataclasses import dataclass
from importlib import import_module
from typing import Dict, Optional

import structlog
from flask import Flask

logger = structlog.get_logger("blueprints")


@dataclass(frozen=True)
class BlueprintConfig:
    """Registration metadata for one blueprint."""
    name: str
    module_path: str
    blueprint_name: str
    url_prefix: Optional[str] = None
    priority: int = 0
    description: str = ""


class BlueprintRegistrationError(Exception):
    """Raised when a blueprint module cannot be imported or registered."""

    def __init__(self, message: str, blueprint_name: Optional[str] = None):
        self.message = message
        self.blueprint_name = blueprint_name
        super().__init__(self.message)


BLUEPRINTS = (
    BlueprintConfig(
        name='api',
        module_path='blueprints.api',
        blueprint_name='api_bp',
        url_prefix='/api/v1',
        priority=100,
        description="IC card report validation API",
    ),
)


def register_blueprints(app: Flask) -> Dict[str, bool]:
    """
    Register every configured blueprint with the application.

    Args:
        app: Flask application instance

    Returns:
        Mapping of blueprint name to registration success

    Raises:
        BlueprintRegistrationError: If a blueprint module cannot be loaded
    """
    results: Dict[str, bool] = {}

    for config in sorted(BLUEPRINTS, key=lambda item: item.priority, reverse=True):
        try:
            module = import_module(config.module_path)
            blueprint = getattr(module, config.blueprint_name)
        except (ImportError, AttributeError) as e:
            logger.error("Blueprint import failed", blueprint=config.name, error=str(e))
            raise BlueprintRegistrationError(
                f"Failed to load blueprint {config.name}: {e}",
                blueprint_name=config.name
            ) from e

        app.register_blueprint(blueprint, url_prefix=config.url_prefix)
        results[config.name] = True
        logger.debug("Blueprint registered", blueprint=config.name, url_prefix=config.url_prefix)

    return results


__all__ = [
    'BlueprintConfig',
    'BlueprintRegistrationError',
    'BLUEPRINTS',
    'register_blueprints',
]
