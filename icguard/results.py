"""
Result and value types shared by the validators.

Validation failures are reported as data, never raised. Each field check
yields an immutable ``ValidationResult``; object validation aggregates them
into an ``ObjectValidationResult`` carrying the sanitized payload and its
fingerprint.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class SecurityViolationKind(Enum):
    """Closed set of violations reported by the security scanner."""
    SQL_INJECTION = "SQL_INJECTION"
    OS_COMMAND_INJECTION = "OS_COMMAND_INJECTION"
    XSS = "XSS"
    NONE = "NONE"


class ValidationErrorKind(Enum):
    """Error taxonomy for field and object validation."""
    REQUIRED_FIELD = "REQUIRED_FIELD"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    EXCESSIVE_LENGTH = "EXCESSIVE_LENGTH"
    INVALID_FORMAT = "INVALID_FORMAT"
    UNKNOWN_FIELD = "UNKNOWN_FIELD"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"


class InputKind(Enum):
    ABSENT = "absent"
    TEXT = "text"
    OTHER = "other"


@dataclass(frozen=True)
class FieldInput:
    """
    Raw field value classified into absent, text or other.

    Numbers are promoted to text since their string form is unambiguous;
    every other non-string value stays ``OTHER`` and is rejected by the
    field validator in a single branch.
    """
    kind: InputKind
    text: Optional[str] = None
    type_name: Optional[str] = None

    @classmethod
    def from_value(cls, value: Any) -> "FieldInput":
        if value is None:
            return cls(InputKind.ABSENT)
        if isinstance(value, str):
            return cls(InputKind.TEXT, text=value)
        # bool is an int subclass but "True" is not a meaningful field value
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return cls(InputKind.TEXT, text=str(value))
        return cls(InputKind.OTHER, type_name=type(value).__name__)


@dataclass(frozen=True)
class ValidationResult:
    """
    Outcome of validating a single field.

    Attributes:
        field: Field name that was validated
        valid: Whether the value passed every check
        sanitized_value: Neutralised value, present only when valid
        error_kind: Failure category when invalid
        message: Human-readable explanation, never containing raw input
        violation_type: Scanner verdict for security violations
        actual_length: Input length for length violations
        max_length: Rule limit for length violations
        original_value: Promoted text of a successful validation
    """
    field: str
    valid: bool
    sanitized_value: Optional[str] = None
    error_kind: Optional[ValidationErrorKind] = None
    message: str = ""
    violation_type: Optional[SecurityViolationKind] = None
    actual_length: Optional[int] = None
    max_length: Optional[int] = None
    original_value: Optional[str] = None

    @classmethod
    def success(cls, field_name: str, sanitized_value: str,
                original_value: Optional[str] = None, message: str = "") -> "ValidationResult":
        return cls(
            field=field_name,
            valid=True,
            sanitized_value=sanitized_value,
            original_value=original_value,
            message=message,
        )

    @classmethod
    def failure(cls, field_name: str, error_kind: ValidationErrorKind,
                message: str, **details: Any) -> "ValidationResult":
        return cls(field=field_name, valid=False, error_kind=error_kind, message=message, **details)

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a JSON-friendly dictionary."""
        result: Dict[str, Any] = {'field': self.field, 'valid': self.valid}

        if self.valid:
            result['sanitized_value'] = self.sanitized_value
        else:
            result['error'] = self.error_kind.value
            result['message'] = self.message

        if self.violation_type is not None:
            result['violation_type'] = self.violation_type.value
        if self.actual_length is not None:
            result['actual_length'] = self.actual_length
        if self.max_length is not None:
            result['max_length'] = self.max_length

        return result


@dataclass(frozen=True)
class FieldError:
    """One entry in an object validation error list."""
    field: Optional[str]
    error_kind: ValidationErrorKind
    message: str
    violation_type: Optional[SecurityViolationKind] = None

    @classmethod
    def from_result(cls, result: ValidationResult) -> "FieldError":
        return cls(
            field=result.field,
            error_kind=result.error_kind,
            message=result.message,
            violation_type=result.violation_type,
        )

    def to_dict(self) -> Dict[str, Any]:
        error = {
            'field': self.field,
            'error': self.error_kind.value,
            'message': self.message,
        }
        if self.violation_type is not None:
            error['violation_type'] = self.violation_type.value
        return error


@dataclass
class ObjectValidationResult:
    """Aggregate outcome of validating a field-name to value mapping."""
    valid: bool
    errors: List[FieldError] = field(default_factory=list)
    sanitized_data: Dict[str, str] = field(default_factory=dict)
    data_hash: str = ""
    field_results: Dict[str, ValidationResult] = field(default_factory=dict)

    def errors_of(self, kind: ValidationErrorKind) -> List[FieldError]:
        return [error for error in self.errors if error.error_kind is kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'errors': [error.to_dict() for error in self.errors],
            'sanitized_data': dict(self.sanitized_data),
            'data_hash': self.data_hash,
        }
