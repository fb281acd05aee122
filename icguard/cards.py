"""
IC card number classification.

Recognises transit and ID card numbers by issuer format, verifies the Luhn
check digit on formats that carry one, and masks numbers for display. The
classifier never raises for bad input: every outcome, including internal
faults, is reported through ``CardClassification``.

Format routing is table-driven (``icguard.patterns.CARD_FORMATS``): the
first format whose digit lengths and pattern both match decides the card
type, so issuer-prefixed formats are listed ahead of the generic ones.
"""

import re
import threading
import unicodedata
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import structlog

from icguard.logging import SecurityEventType, log_security_event
from icguard.patterns import (
    CARD_FORMATS,
    CARD_NUMBER_MAX_LENGTH,
    CARD_NUMBER_MIN_LENGTH,
    DIGITS,
    NATIONWIDE,
    CardFormat,
)
from icguard.scanner import SecurityScanner

logger = structlog.get_logger("icguard.cards")

UNKNOWN_CARD_TYPE = "UNKNOWN"

# Card types that share another issuer's number format
CARD_TYPE_ALIASES = {
    "PASMO": "SUICA",
}

UPDATABLE_FORMAT_FIELDS = frozenset({
    'pattern', 'lengths', 'has_checksum', 'description', 'issuer', 'regions',
})


class CardErrorKind(Enum):
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_LENGTH = "INVALID_LENGTH"
    UNKNOWN_CARD_TYPE = "UNKNOWN_CARD_TYPE"
    INVALID_CHECKSUM = "INVALID_CHECKSUM"
    VALIDATION_ERROR = "VALIDATION_ERROR"


@dataclass(frozen=True)
class CardClassification:
    """
    Outcome of classifying one card number.

    ``masked_number`` is the only representation of the number carried by
    the result; the raw input is never stored.
    """
    valid: bool
    card_type: str = UNKNOWN_CARD_TYPE
    issuer: Optional[str] = None
    description: Optional[str] = None
    regions: Tuple[str, ...] = ()
    checksum_valid: Optional[bool] = None
    masked_number: str = "****"
    error: Optional[CardErrorKind] = None
    message: str = ""
    security_violation: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'valid': self.valid,
            'card_type': self.card_type,
            'issuer': self.issuer,
            'description': self.description,
            'regions': list(self.regions),
            'checksum_valid': self.checksum_valid,
            'masked_number': self.masked_number,
            'message': self.message,
        }
        if self.error is not None:
            result['error'] = self.error.value
        if self.security_violation:
            result['security_violation'] = True
        return result


@dataclass(frozen=True)
class CardStats:
    """Point-in-time snapshot of classifier counters."""
    validation_count: int = 0
    valid_cards: int = 0
    invalid_cards: int = 0
    suspicious_attempts: int = 0
    last_validation: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        if not self.validation_count:
            return 0.0
        return round(self.valid_cards / self.validation_count * 100, 2)

    @property
    def suspicious_rate(self) -> float:
        if not self.validation_count:
            return 0.0
        return round(self.suspicious_attempts / self.validation_count * 100, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'validation_count': self.validation_count,
            'valid_cards': self.valid_cards,
            'invalid_cards': self.invalid_cards,
            'suspicious_attempts': self.suspicious_attempts,
            'last_validation': self.last_validation.isoformat() if self.last_validation else None,
            'success_rate': self.success_rate,
            'suspicious_rate': self.suspicious_rate,
        }


def mask_card_number(card_number: Any) -> str:
    """
    Mask a card number for display.

    Shows the first and last four characters of numbers longer than eight;
    an eight character number keeps only its first four, and anything
    shorter is fully hidden.
    """
    if not isinstance(card_number, str) or len(card_number) < 8:
        return "****"
    if len(card_number) == 8:
        return f"{card_number[:4]}****"
    return f"{card_number[:4]}{'*' * (len(card_number) - 8)}{card_number[-4:]}"


def _luhn_sum(digits: str, double_first: bool) -> int:
    total = 0
    double = double_first
    for char in reversed(digits):
        digit = int(char)
        if double:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
        double = not double
    return total


def luhn_is_valid(digits: str) -> bool:
    """Return True if ``digits`` carries a valid Luhn check digit."""
    if not isinstance(digits, str) or not DIGITS.fullmatch(digits):
        return False
    return _luhn_sum(digits, double_first=False) % 10 == 0


def luhn_check_digit(partial: str) -> str:
    """
    Compute the Luhn check digit to append to ``partial``.

    Raises:
        ValueError: If ``partial`` is not a non-empty digit string
    """
    if not isinstance(partial, str) or not DIGITS.fullmatch(partial):
        raise ValueError("partial card number must be a non-empty digit string")
    return str((10 - _luhn_sum(partial, double_first=True) % 10) % 10)


class CardClassifier:
    """
    Classifier for IC card numbers.

    Holds its own ordered format table and counters, so separate instances
    (or tests) never observe each other's state.
    """

    def __init__(self, formats: Tuple[CardFormat, ...] = CARD_FORMATS,
                 scanner: Optional[SecurityScanner] = None):
        self._lock = threading.Lock()
        self._formats: List[CardFormat] = list(formats)
        self._scanner = scanner or SecurityScanner()
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._validation_count = 0
        self._valid_cards = 0
        self._invalid_cards = 0
        self._suspicious_attempts = 0
        self._last_validation: Optional[datetime] = None

    def classify(self, card_number: Any) -> CardClassification:
        """
        Classify a card number and verify its checksum.

        Args:
            card_number: Raw card number; full-width digits and surrounding
                whitespace are accepted

        Returns:
            CardClassification describing the card or the failure
        """
        try:
            result = self._classify(card_number)
        except Exception as e:
            logger.error("Card classification failed", error=str(e), exc_info=True)
            result = CardClassification(
                valid=False,
                error=CardErrorKind.VALIDATION_ERROR,
                message="Card number could not be validated",
            )

        self._record(result)
        return result

    def _classify(self, card_number: Any) -> CardClassification:
        if not isinstance(card_number, str):
            return CardClassification(
                valid=False,
                error=CardErrorKind.INVALID_INPUT,
                message="Card number must be a string",
            )

        normalized = unicodedata.normalize("NFKC", card_number).strip()

        # Non-digit input is never echoed back, not even masked
        if not DIGITS.fullmatch(normalized):
            scan = self._scanner.scan(normalized)
            if not scan.is_safe:
                log_security_event(
                    SecurityEventType.SUSPICIOUS_CARD_INPUT,
                    severity="high",
                    violation_type=scan.violation.value,
                    input_length=len(normalized),
                )
            return CardClassification(
                valid=False,
                error=CardErrorKind.INVALID_INPUT,
                message="Card number must contain digits only",
                security_violation=not scan.is_safe,
            )

        masked = mask_card_number(normalized)

        if not CARD_NUMBER_MIN_LENGTH <= len(normalized) <= CARD_NUMBER_MAX_LENGTH:
            return CardClassification(
                valid=False,
                masked_number=masked,
                error=CardErrorKind.INVALID_LENGTH,
                message=(
                    f"Card number must be {CARD_NUMBER_MIN_LENGTH}-"
                    f"{CARD_NUMBER_MAX_LENGTH} digits"
                ),
            )

        card_format = self._match_format(normalized)
        if card_format is None:
            return CardClassification(
                valid=False,
                masked_number=masked,
                error=CardErrorKind.UNKNOWN_CARD_TYPE,
                message="Card number does not match any supported card type",
            )

        checksum_valid = luhn_is_valid(normalized) if card_format.has_checksum else True
        metadata = dict(
            card_type=card_format.card_type,
            issuer=card_format.issuer,
            description=card_format.description,
            regions=card_format.regions,
            checksum_valid=checksum_valid,
            masked_number=masked,
        )

        if checksum_valid is False:
            return CardClassification(
                valid=False,
                error=CardErrorKind.INVALID_CHECKSUM,
                message="Card number checksum is invalid",
                **metadata
            )

        return CardClassification(valid=True, message=f"Valid {card_format.description}", **metadata)

    def _match_format(self, digits: str) -> Optional[CardFormat]:
        with self._lock:
            formats = tuple(self._formats)
        for card_format in formats:
            if card_format.matches(digits):
                return card_format
        return None

    def _record(self, result: CardClassification) -> None:
        with self._lock:
            self._validation_count += 1
            if result.valid:
                self._valid_cards += 1
            else:
                self._invalid_cards += 1
            if result.security_violation:
                self._suspicious_attempts += 1
            self._last_validation = datetime.now(timezone.utc)

    def detect_card_type(self, card_number: Any) -> str:
        """Return the matching card type, or ``UNKNOWN``, without touching counters."""
        if not isinstance(card_number, str):
            return UNKNOWN_CARD_TYPE
        normalized = unicodedata.normalize("NFKC", card_number).strip()
        if not DIGITS.fullmatch(normalized):
            return UNKNOWN_CARD_TYPE
        card_format = self._match_format(normalized)
        return card_format.card_type if card_format else UNKNOWN_CARD_TYPE

    def get_format(self, card_type: str) -> Optional[CardFormat]:
        if not isinstance(card_type, str):
            return None
        name = card_type.upper()
        name = CARD_TYPE_ALIASES.get(name, name)
        with self._lock:
            for card_format in self._formats:
                if card_format.card_type == name:
                    return card_format
        return None

    def is_region_supported(self, card_type: str, region: str) -> bool:
        """
        Check whether a card type is usable in a region.

        Nationwide formats are supported everywhere; unknown card types are
        supported nowhere.
        """
        card_format = self.get_format(card_type)
        if card_format is None or not isinstance(region, str):
            return False
        regions = {name.casefold() for name in card_format.regions}
        return NATIONWIDE in regions or region.strip().casefold() in regions

    def supported_card_types(self) -> List[Dict[str, Any]]:
        with self._lock:
            formats = tuple(self._formats)
        return [
            {
                'type': card_format.card_type,
                'description': card_format.description,
                'issuer': card_format.issuer,
                'regions': list(card_format.regions),
                'lengths': list(card_format.lengths),
                'has_checksum': card_format.has_checksum,
            }
            for card_format in formats
        ]

    def update_format(self, card_type: str, /, **changes: Any) -> bool:
        """
        Replace metadata of an existing card format.

        Args:
            card_type: Card type to update
            **changes: New values for pattern, lengths, has_checksum,
                description, issuer or regions

        Returns:
            True if the format was updated
        """
        unknown = set(changes) - UPDATABLE_FORMAT_FIELDS
        if unknown:
            logger.warning("Rejected card format update", card_type=card_type, fields=sorted(unknown))
            return False
        if 'pattern' in changes and not isinstance(changes['pattern'], re.Pattern):
            logger.warning("Card format pattern must be a compiled expression", card_type=card_type)
            return False
        for name in ('lengths', 'regions'):
            if name in changes:
                changes[name] = tuple(changes[name])

        with self._lock:
            for index, card_format in enumerate(self._formats):
                if card_format.card_type == card_type:
                    self._formats[index] = replace(card_format, **changes)
                    break
            else:
                logger.warning("Unknown card type for format update", card_type=card_type)
                return False

        logger.info("Card format updated", card_type=card_type, fields=sorted(changes))
        return True

    def get_stats(self) -> CardStats:
        with self._lock:
            return CardStats(
                validation_count=self._validation_count,
                valid_cards=self._valid_cards,
                invalid_cards=self._invalid_cards,
                suspicious_attempts=self._suspicious_attempts,
                last_validation=self._last_validation,
            )

    def reset_stats(self) -> None:
        with self._lock:
            self._reset_counters()
        logger.info("Card statistics reset")
