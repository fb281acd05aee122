"""
Validation statistics.

Counters are owned by each validator instance rather than a process-wide
singleton. Updates are lock-protected so a validator can be shared between
request threads without lost increments; readers get an immutable snapshot.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from icguard.results import SecurityViolationKind, ValidationErrorKind


VIOLATION_COUNTER_NAMES = {
    SecurityViolationKind.SQL_INJECTION: "sql_injection",
    SecurityViolationKind.OS_COMMAND_INJECTION: "os_command",
    SecurityViolationKind.XSS: "xss",
}

ERROR_COUNTER_NAMES = {
    ValidationErrorKind.INVALID_FORMAT: "invalid_format",
    ValidationErrorKind.EXCESSIVE_LENGTH: "excessive_length",
}


def _empty_violation_types() -> Dict[str, int]:
    return {
        "sql_injection": 0,
        "os_command": 0,
        "xss": 0,
        "invalid_format": 0,
        "excessive_length": 0,
    }


def _rate(part: int, total: int) -> float:
    return round(part / total * 100, 2) if total else 0.0


@dataclass(frozen=True)
class ValidationStats:
    """Point-in-time snapshot of a validator's counters."""
    total_validations: int = 0
    successful_validations: int = 0
    failed_validations: int = 0
    security_violations: int = 0
    violation_types: Dict[str, int] = field(default_factory=_empty_violation_types)
    last_validation: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        return _rate(self.successful_validations, self.total_validations)

    @property
    def security_violation_rate(self) -> float:
        return _rate(self.security_violations, self.total_validations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_validations': self.total_validations,
            'successful_validations': self.successful_validations,
            'failed_validations': self.failed_validations,
            'security_violations': self.security_violations,
            'violation_types': dict(self.violation_types),
            'last_validation': self.last_validation.isoformat() if self.last_validation else None,
            'success_rate': self.success_rate,
            'security_violation_rate': self.security_violation_rate,
        }


class StatsRecorder:
    """Mutable, thread-safe counters behind ``ValidationStats``."""

    def __init__(self):
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._security = 0
        self._violation_types = _empty_violation_types()
        self._last_validation: Optional[datetime] = None

    def record_success(self) -> None:
        with self._lock:
            self._total += 1
            self._successful += 1
            self._last_validation = datetime.now(timezone.utc)

    def record_failure(
        self,
        error_kind: Optional[ValidationErrorKind] = None,
        violation: Optional[SecurityViolationKind] = None
    ) -> None:
        with self._lock:
            self._total += 1
            self._failed += 1
            self._last_validation = datetime.now(timezone.utc)

            if error_kind is ValidationErrorKind.SECURITY_VIOLATION:
                self._security += 1
                counter = VIOLATION_COUNTER_NAMES.get(violation)
                if counter:
                    self._violation_types[counter] += 1
            elif error_kind in ERROR_COUNTER_NAMES:
                self._violation_types[ERROR_COUNTER_NAMES[error_kind]] += 1

    def snapshot(self) -> ValidationStats:
        with self._lock:
            return ValidationStats(
                total_validations=self._total,
                successful_validations=self._successful,
                failed_validations=self._failed,
                security_violations=self._security,
                violation_types=dict(self._violation_types),
                last_validation=self._last_validation,
            )

    def reset(self) -> None:
        with self._lock:
            self._reset_counters()
