"""
icguard - validation and sanitisation core for IC card loss reports.

Public API:
- DataValidator: field and object validation with statistics
- CardClassifier: IC card type detection, Luhn checksum and masking
- SecurityScanner: SQL injection, OS command injection and XSS detection
- Sanitizer: markup neutralisation for accepted values
- SecureHashManager: PBKDF2 hashing of card numbers
"""

from icguard.cards import (
    CardClassification,
    CardClassifier,
    CardErrorKind,
    CardStats,
    luhn_check_digit,
    luhn_is_valid,
    mask_card_number,
)
from icguard.errors import ConfigurationError, HashingError, ICGuardError
from icguard.hashing import CardHash, HashConfig, SecureHashManager, fingerprint
from icguard.results import (
    FieldError,
    FieldInput,
    InputKind,
    ObjectValidationResult,
    SecurityViolationKind,
    ValidationErrorKind,
    ValidationResult,
)
from icguard.rules import DEFAULT_FIELD_RULES, FieldRule, FieldRuleSchema, RuleRegistry
from icguard.sanitizer import Sanitizer, mask_sensitive_data
from icguard.scanner import ScanResult, SecurityScanner
from icguard.stats import ValidationStats
from icguard.validator import DataValidator

__version__ = "1.0.0"

__all__ = [
    'CardClassification',
    'CardClassifier',
    'CardErrorKind',
    'CardHash',
    'CardStats',
    'ConfigurationError',
    'DataValidator',
    'DEFAULT_FIELD_RULES',
    'FieldError',
    'FieldInput',
    'FieldRule',
    'FieldRuleSchema',
    'HashConfig',
    'HashingError',
    'ICGuardError',
    'InputKind',
    'ObjectValidationResult',
    'RuleRegistry',
    'Sanitizer',
    'ScanResult',
    'SecureHashManager',
    'SecurityScanner',
    'SecurityViolationKind',
    'ValidationErrorKind',
    'ValidationResult',
    'ValidationStats',
    'fingerprint',
    'luhn_check_digit',
    'luhn_is_valid',
    'mask_card_number',
    'mask_sensitive_data',
]
