"""
Field rule registry.

Maps field names to ``FieldRule`` descriptors. The built-in table covers the
fields of an IC card loss report; additional rules can be registered at
runtime. Descriptors are loaded through a marshmallow schema at the
registration boundary, so a malformed rule is rejected before it can reach
the validation path.
"""

import re
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Pattern, Union

import structlog
from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, validate

from icguard import patterns

logger = structlog.get_logger("icguard.rules")

FIELD_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]{0,63}")


@dataclass(frozen=True)
class FieldRule:
    """
    Validation rule for one named field.

    Attributes:
        max_length: Hard upper bound on accepted length
        required: Whether an empty or absent value is an error
        sanitize: Whether the value goes through the sanitizer
        description: Human-readable label used in messages
        pattern: Whole-value format; None means free text
        card_number: Whether the value must classify as a known IC card
    """
    max_length: int
    required: bool
    sanitize: bool
    description: str
    pattern: Optional[Pattern] = None
    card_number: bool = False

    def summary(self, name: str) -> Dict[str, Any]:
        return {
            'name': name,
            'description': self.description,
            'required': self.required,
            'max_length': self.max_length,
        }


class RegexField(fields.Field):
    """Accepts a regex source string or a compiled pattern."""

    default_error_messages = {
        'invalid': 'Not a valid regular expression.',
    }

    def _deserialize(self, value, attr, data, **kwargs):
        if isinstance(value, re.Pattern):
            return value
        if not isinstance(value, str):
            raise self.make_error('invalid')
        try:
            return re.compile(value)
        except re.error as error:
            raise ValidationError(f"Not a valid regular expression: {error}") from error

    def _serialize(self, value, attr, obj, **kwargs):
        return value.pattern if value is not None else None


class FieldRuleSchema(Schema):
    """Schema for runtime rule descriptors."""

    class Meta:
        unknown = EXCLUDE

    pattern = RegexField(allow_none=True, load_default=None)
    max_length = fields.Integer(required=True, strict=True, validate=validate.Range(min=1))
    required = fields.Boolean(required=True)
    sanitize = fields.Boolean(required=True)
    description = fields.String(required=True, validate=validate.Length(min=1))
    card_number = fields.Boolean(load_default=False)

    @post_load
    def make_rule(self, data, **kwargs):
        return FieldRule(**data)


DEFAULT_FIELD_RULES: Dict[str, FieldRule] = {
    # Personal information
    'employeeId': FieldRule(
        pattern=patterns.EMPLOYEE_ID, max_length=12, required=True, sanitize=True,
        description="Employee ID (6-12 alphanumeric characters)",
    ),
    'employeeName': FieldRule(
        pattern=patterns.EMPLOYEE_NAME, max_length=50, required=True, sanitize=True,
        description="Employee name (Japanese or Latin letters, up to 50 characters)",
    ),
    'department': FieldRule(
        pattern=patterns.DEPARTMENT, max_length=30, required=True, sanitize=True,
        description="Department (up to 30 characters)",
    ),
    'email': FieldRule(
        pattern=patterns.EMAIL, max_length=100, required=False, sanitize=True,
        description="Email address",
    ),
    'phoneNumber': FieldRule(
        pattern=patterns.PHONE_NUMBER, max_length=15, required=False, sanitize=True,
        description="Phone number",
    ),

    # IC card
    'icCardNumber': FieldRule(
        pattern=patterns.IC_CARD_NUMBER, max_length=20, required=True, sanitize=True,
        description="IC card number (4-20 digits)", card_number=True,
    ),
    'cardType': FieldRule(
        pattern=patterns.CARD_TYPE, max_length=20, required=True, sanitize=True,
        description="IC card type",
    ),

    # Date and time
    'lossDate': FieldRule(
        pattern=patterns.ISO_DATE, max_length=10, required=True, sanitize=True,
        description="Date of loss (YYYY-MM-DD)",
    ),
    'lossTime': FieldRule(
        pattern=patterns.CLOCK_TIME, max_length=5, required=False, sanitize=True,
        description="Time of loss (HH:MM)",
    ),

    # Location
    'lossLocation': FieldRule(
        pattern=patterns.LOCATION, max_length=100, required=True, sanitize=True,
        description="Place of loss (up to 100 characters)",
    ),
    'transportationProvider': FieldRule(
        pattern=patterns.TRANSPORTATION_PROVIDER, max_length=50, required=False, sanitize=True,
        description="Transportation provider (up to 50 characters)",
    ),

    # Report workflow
    'reportStatus': FieldRule(
        pattern=patterns.REPORT_STATUS, max_length=20, required=True, sanitize=True,
        description="Report status",
    ),
    'priority': FieldRule(
        pattern=patterns.PRIORITY, max_length=10, required=False, sanitize=True,
        description="Priority",
    ),

    # Free text
    'description': FieldRule(
        max_length=500, required=False, sanitize=True,
        description="Details (up to 500 characters)",
    ),
    'notes': FieldRule(
        max_length=1000, required=False, sanitize=True,
        description="Notes (up to 1000 characters)",
    ),
}


class RuleRegistry:
    """
    In-memory registry of field rules.

    Each instance starts from the built-in table. Registration is atomic:
    a rejected descriptor leaves the registry untouched, and the last
    successful registration for a name wins.
    """

    def __init__(self, rules: Optional[Mapping[str, FieldRule]] = None):
        self._lock = threading.Lock()
        self._rules: Dict[str, FieldRule] = dict(DEFAULT_FIELD_RULES if rules is None else rules)
        self._schema = FieldRuleSchema()

    def get(self, field_name: str) -> Optional[FieldRule]:
        return self._rules.get(field_name)

    def register(self, field_name: str, descriptor: Union[FieldRule, Mapping[str, Any]]) -> bool:
        """
        Register or replace the rule for ``field_name``.

        Args:
            field_name: Identifier-like, non-empty field name
            descriptor: FieldRule instance or mapping with at least
                max_length, required, sanitize and description

        Returns:
            True if the rule was registered
        """
        if not isinstance(field_name, str) or not FIELD_NAME.fullmatch(field_name):
            logger.warning("Rejected rule with invalid field name", field_type=type(field_name).__name__)
            return False

        if isinstance(descriptor, FieldRule):
            rule = descriptor
        elif isinstance(descriptor, Mapping):
            try:
                rule = self._schema.load(dict(descriptor))
            except ValidationError as error:
                logger.warning(
                    "Rejected malformed validation rule",
                    field=field_name,
                    errors=error.messages
                )
                return False
        else:
            logger.warning("Rejected rule descriptor of unsupported type", field=field_name)
            return False

        with self._lock:
            self._rules[field_name] = rule

        logger.info("Validation rule registered", field=field_name, description=rule.description)
        return True

    def supported_fields(self) -> List[Dict[str, Any]]:
        return [rule.summary(name) for name, rule in self._rules.items()]

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._rules

    def __len__(self) -> int:
        return len(self._rules)
