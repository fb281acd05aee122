"""
Pytest Configuration and Fixtures

Provides the shared fixtures for the icguard test suite:

- core component fixtures (validator, classifier, scanner, sanitizer,
  hash manager), each created fresh per test so statistics never leak
  between tests
- Flask application fixtures built with TestingConfig and the Flask test
  client for the HTTP adapter
- realistic report payloads

Markers are registered in ``pytest_configure`` and applied automatically
from the test file location.
"""

from typing import Any, Dict

import pytest

from app import create_app
from icguard import (
    CardClassifier,
    DataValidator,
    HashConfig,
    Sanitizer,
    SecureHashManager,
    SecurityScanner,
)


# =============================================================================
# PYTEST CONFIGURATION AND MARKERS
# =============================================================================

def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "unit: Unit tests for individual components and functions"
    )
    config.addinivalue_line(
        "markers",
        "integration: Integration tests for API endpoints"
    )
    config.addinivalue_line(
        "markers",
        "security: Tests exercising attack payload detection and data protection"
    )


def pytest_collection_modifyitems(config, items):
    """Apply unit/integration markers based on test location."""
    for item in items:
        path = str(item.fspath)
        if "unit" in path:
            item.add_marker(pytest.mark.unit)
        elif "integration" in path:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# CORE COMPONENT FIXTURES
# =============================================================================

@pytest.fixture
def scanner() -> SecurityScanner:
    return SecurityScanner()


@pytest.fixture
def sanitizer() -> Sanitizer:
    return Sanitizer()


@pytest.fixture
def classifier() -> CardClassifier:
    return CardClassifier()


@pytest.fixture
def validator(classifier) -> DataValidator:
    return DataValidator(classifier=classifier)


@pytest.fixture
def hash_manager() -> SecureHashManager:
    return SecureHashManager(HashConfig(pepper="unit-test-pepper"))


# =============================================================================
# TEST DATA FIXTURES
# =============================================================================

@pytest.fixture
def valid_card_number() -> str:
    """16 digit ICOCA-prefixed number with a valid Luhn check digit."""
    return "4532015112830366"


@pytest.fixture
def valid_report_data(valid_card_number) -> Dict[str, Any]:
    """Complete, valid IC card loss report."""
    return {
        'employeeId': 'EMP001234',
        'employeeName': '田中太郎',
        'department': '営業部',
        'email': 'tanaka@example.co.jp',
        'phoneNumber': '090-1234-5678',
        'icCardNumber': valid_card_number,
        'cardType': 'ICOCA',
        'lossDate': '2024-01-15',
        'lossTime': '09:30',
        'lossLocation': '名古屋駅',
        'transportationProvider': 'JR東海',
        'reportStatus': 'DRAFT',
        'priority': 'HIGH',
        'description': '改札付近で紛失しました',
    }


# =============================================================================
# FLASK APPLICATION FIXTURES
# =============================================================================

@pytest.fixture
def app():
    """Flask application configured for testing."""
    application = create_app('testing')
    with application.app_context():
        yield application


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()
