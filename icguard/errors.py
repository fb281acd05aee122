"""
Exception hierarchy for the validation core.

Expected validation failures are returned as result values and never raised.
These exceptions cover the remaining cases: invalid configuration at start-up
and misuse of the hashing API.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ICGuardError(Exception):
    """
    Base exception for all application-specific errors.

    Carries a machine-readable error code and optional details so the HTTP
    adapter can render a standard error envelope.
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.correlation_id = str(uuid.uuid4())
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format for logging and response."""
        return {
            'error_code': self.error_code,
            'message': self.message,
            'details': self.details,
            'correlation_id': self.correlation_id,
            'timestamp': self.timestamp.isoformat(),
            'type': self.__class__.__name__,
        }


class ConfigurationError(ICGuardError):
    """Raised when security or application settings are invalid."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="CONFIGURATION_ERROR", **kwargs)


class HashingError(ICGuardError):
    """Raised when a card number cannot be hashed."""

    status_code = 400

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code="HASHING_ERROR", **kwargs)
