"""
Field and object validation for IC card loss reports.

``DataValidator`` ties the rule registry, security scanner, sanitizer and
card classifier together. Validation never raises: every failure, including
unexpected internal faults, comes back as a result value with an error kind,
and every field check is counted in the validator's statistics.

Field validation order:
1. rule lookup (unknown field)
2. absent value handling (required / allow_empty)
3. promotion of numbers to text, rejection of other value types
4. security scan (SQL injection, OS command injection, XSS)
5. maximum length
6. required-but-blank
7. whole-value format pattern, then IC card recognition for card fields
8. sanitization
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

import structlog

from icguard.cards import UNKNOWN_CARD_TYPE, CardClassifier
from icguard.hashing import fingerprint
from icguard.logging import SecurityEventType, log_security_event
from icguard.results import (
    FieldError,
    FieldInput,
    InputKind,
    ObjectValidationResult,
    SecurityViolationKind,
    ValidationErrorKind,
    ValidationResult,
)
from icguard.rules import FieldRule, RuleRegistry
from icguard.sanitizer import Sanitizer, mask_sensitive_data
from icguard.scanner import SecurityScanner
from icguard.stats import StatsRecorder, ValidationStats

logger = structlog.get_logger("icguard.validator")

EMPTY_DATA_HASH = fingerprint({})

SECURITY_EVENTS = {
    SecurityViolationKind.SQL_INJECTION: SecurityEventType.SQL_INJECTION_ATTEMPT,
    SecurityViolationKind.OS_COMMAND_INJECTION: SecurityEventType.OS_COMMAND_ATTEMPT,
    SecurityViolationKind.XSS: SecurityEventType.XSS_ATTEMPT,
}


class DataValidator:
    """
    Validator for report fields and whole report payloads.

    Collaborators are injectable; by default each validator gets its own
    registry (seeded from the built-in rules), scanner, sanitizer, card
    classifier and statistics.
    """

    def __init__(
        self,
        registry: Optional[RuleRegistry] = None,
        scanner: Optional[SecurityScanner] = None,
        sanitizer: Optional[Sanitizer] = None,
        classifier: Optional[CardClassifier] = None
    ):
        self.registry = registry or RuleRegistry()
        self.scanner = scanner or SecurityScanner()
        self.sanitizer = sanitizer or Sanitizer()
        self.classifier = classifier or CardClassifier(scanner=self.scanner)
        self._stats = StatsRecorder()

    # ==================== FIELD VALIDATION ====================

    def validate_field(self, field_name: str, value: Any, allow_empty: bool = False) -> ValidationResult:
        """
        Validate a single field value against its rule.

        Args:
            field_name: Registered field name
            value: Raw value; strings and numbers are accepted
            allow_empty: Accept an absent value even for required fields

        Returns:
            ValidationResult carrying the sanitized value or the failure
        """
        try:
            result = self._validate_field(field_name, value, allow_empty)
        except Exception as e:
            logger.error(
                "Unexpected error during field validation",
                field=str(field_name),
                error_type=type(e).__name__,
                exc_info=True
            )
            result = ValidationResult.failure(
                str(field_name),
                ValidationErrorKind.VALIDATION_ERROR,
                "An error occurred during validation",
            )

        if result.valid:
            self._stats.record_success()
        else:
            self._stats.record_failure(result.error_kind, result.violation_type)

        return result

    def _validate_field(self, field_name: str, value: Any, allow_empty: bool) -> ValidationResult:
        rule = self.registry.get(field_name)
        if rule is None:
            return ValidationResult.failure(
                str(field_name),
                ValidationErrorKind.UNKNOWN_FIELD,
                f"Unknown field: {self.sanitizer.escape_html(str(field_name))}",
            )

        field_input = FieldInput.from_value(value)

        if field_input.kind is InputKind.ABSENT:
            if rule.required and not allow_empty:
                return ValidationResult.failure(
                    field_name,
                    ValidationErrorKind.REQUIRED_FIELD,
                    f"{rule.description} is required",
                )
            return ValidationResult.success(field_name, "", original_value="")

        if field_input.kind is InputKind.OTHER:
            return ValidationResult.failure(
                field_name,
                ValidationErrorKind.INVALID_FORMAT,
                f"{rule.description}: unsupported value type {field_input.type_name}",
            )

        text = field_input.text

        scan = self.scanner.scan(text)
        if not scan.is_safe:
            log_security_event(
                SECURITY_EVENTS[scan.violation],
                severity="high",
                field=field_name,
                violation_type=scan.violation.value,
                masked_preview=mask_sensitive_data(text),
            )
            return ValidationResult.failure(
                field_name,
                ValidationErrorKind.SECURITY_VIOLATION,
                f"{rule.description} contains a potentially dangerous pattern",
                violation_type=scan.violation,
            )

        if len(text) > rule.max_length:
            return ValidationResult.failure(
                field_name,
                ValidationErrorKind.EXCESSIVE_LENGTH,
                f"{rule.description} must be at most {rule.max_length} characters",
                actual_length=len(text),
                max_length=rule.max_length,
            )

        blank = not text.strip()
        if rule.required and blank:
            return ValidationResult.failure(
                field_name,
                ValidationErrorKind.REQUIRED_FIELD,
                f"{rule.description} is required",
            )

        if not blank:
            format_error = self._check_format(field_name, text, rule)
            if format_error is not None:
                return format_error

        sanitized = self.sanitizer.sanitize(text) if rule.sanitize else text
        return ValidationResult.success(field_name, sanitized, original_value=text)

    def _check_format(self, field_name: str, text: str, rule: FieldRule) -> Optional[ValidationResult]:
        if rule.pattern is not None and not rule.pattern.fullmatch(text):
            return ValidationResult.failure(
                field_name,
                ValidationErrorKind.INVALID_FORMAT,
                f"{rule.description} has an invalid format",
            )

        # Unknown type, non-digit input and unsupported lengths all leave the
        # card unrecognised; checksum failures are left to explicit classification
        if rule.card_number and self.classifier.detect_card_type(text) == UNKNOWN_CARD_TYPE:
            return ValidationResult.failure(
                field_name,
                ValidationErrorKind.INVALID_FORMAT,
                f"{rule.description} is not a supported IC card number",
            )

        return None

    # ==================== OBJECT VALIDATION ====================

    def validate_object(self, data: Any, required_fields: Iterable[str] = ()) -> ObjectValidationResult:
        """
        Validate every field of a report payload.

        Args:
            data: Mapping of field name to raw value
            required_fields: Names that must be present and not None

        Returns:
            ObjectValidationResult with per-field errors, the sanitized
            values of the fields that passed and their fingerprint
        """
        if not isinstance(data, Mapping):
            return self._object_failure("Report data must be an object")

        try:
            return self._validate_object(data, required_fields)
        except Exception as e:
            logger.error(
                "Unexpected error during object validation",
                error_type=type(e).__name__,
                exc_info=True
            )
            return self._object_failure("An error occurred during validation")

    def _validate_object(self, data: Mapping[str, Any], required_fields: Iterable[str]) -> ObjectValidationResult:
        errors: List[FieldError] = []
        sanitized_data: Dict[str, str] = {}
        field_results: Dict[str, ValidationResult] = {}

        for name in required_fields:
            if data.get(name) is None:
                errors.append(FieldError(
                    field=name,
                    error_kind=ValidationErrorKind.MISSING_REQUIRED_FIELD,
                    message=f"Missing required field: {name}",
                ))

        for name, value in data.items():
            result = self.validate_field(name, value)
            field_results[name] = result
            if result.valid:
                sanitized_data[name] = result.sanitized_value
            else:
                errors.append(FieldError.from_result(result))

        result = ObjectValidationResult(
            valid=not errors,
            errors=errors,
            sanitized_data=sanitized_data,
            data_hash=fingerprint(sanitized_data),
            field_results=field_results,
        )

        logger.info(
            "Report data validated",
            valid=result.valid,
            field_count=len(field_results),
            error_count=len(errors)
        )
        return result

    @staticmethod
    def _object_failure(message: str) -> ObjectValidationResult:
        return ObjectValidationResult(
            valid=False,
            errors=[FieldError(field=None, error_kind=ValidationErrorKind.VALIDATION_ERROR, message=message)],
            data_hash=EMPTY_DATA_HASH,
        )

    # ==================== RULES AND STATISTICS ====================

    def register_rule(self, field_name: str, descriptor: Union[FieldRule, Mapping[str, Any]]) -> bool:
        return self.registry.register(field_name, descriptor)

    def get_rule(self, field_name: str) -> Optional[FieldRule]:
        return self.registry.get(field_name)

    def supported_fields(self) -> List[Dict[str, Any]]:
        return self.registry.supported_fields()

    def get_stats(self) -> ValidationStats:
        return self._stats.snapshot()

    def reset_stats(self) -> None:
        self._stats.reset()
        logger.info("Validation statistics reset")
