"""
Pattern library for IC card loss report validation.

This module holds the canonical regular expressions used by the security
scanner, the sanitizer and the field rules. Nothing here has behaviour beyond
storage: the expressions themselves are the contract surface.

Pattern groups:
- SQL injection, OS command injection and XSS detection sets (scan order is
  SQL -> OS command -> XSS, see ``icguard.scanner``)
- Sanitizer expressions for neutralising markup that survived scanning
- Domain value formats (employee id, phone, email, date, time, ...)
- IC card number formats by issuer, with digit lengths and checksum flags

All domain patterns are written without anchors and are applied with
``Pattern.fullmatch``.
"""

import re
from dataclasses import dataclass
from typing import Pattern, Tuple


# ==================== SECURITY DETECTION ====================

# str patterns are Unicode-aware, so \b does not fire between a keyword and
# adjacent CJK characters ("DROP商店" is not a match).
SQL_INJECTION_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|UNION)\b", re.IGNORECASE),
    re.compile(r"(--|#|/\*|\*/)"),
    re.compile(r"\b(OR|AND)\b.*=", re.IGNORECASE),
    re.compile(r"(['\"]).*\b(OR|AND)\b.*\1", re.IGNORECASE),
)

OS_COMMAND_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"(\||;|&|`|\$\(|\$\{)"),
    re.compile(r"\b(rm|del|format|mkdir|rmdir|copy|move|exec|eval|system|shell_exec)\b", re.IGNORECASE),
    re.compile(r"(\.\./|\.\.\\)"),
    re.compile(r"(%2e|\.){2}(%2f|%5c|%252f|%255c)", re.IGNORECASE),
    re.compile(r"\b(sudo|su|chmod|chown)\b", re.IGNORECASE),
)

XSS_PATTERNS: Tuple[Pattern, ...] = (
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"<\s*iframe\b", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"vbscript\s*:", re.IGNORECASE),
    re.compile(r"data\s*:\s*text/html", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"<\s*(object|embed|applet|meta)\b", re.IGNORECASE),
)


# ==================== SANITIZATION ====================

CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")

DANGEROUS_ELEMENTS: Tuple[Pattern, ...] = (
    re.compile(r"<\s*script\b[^>]*>.*?<\s*/\s*script\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<\s*iframe\b[^>]*>.*?<\s*/\s*iframe\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<\s*object\b[^>]*>.*?<\s*/\s*object\s*>", re.IGNORECASE | re.DOTALL),
)

# Unpaired opening or closing tags left behind once complete elements are gone
DANGEROUS_TAGS = re.compile(r"<\s*/?\s*(script|iframe|object)\b[^>]*>?", re.IGNORECASE)

EVENT_HANDLER_ATTRIBUTES = re.compile(
    r"on\w+\s*=\s*(\"[^\"]*\"|'[^']*'|[^>\s]*)", re.IGNORECASE
)

SCRIPT_URL_SCHEMES = re.compile(r"(javascript|vbscript)\s*:", re.IGNORECASE)


# ==================== DOMAIN VALUES ====================

JAPANESE_TEXT = "ぁ-んァ-ヶー一-龠"

EMPLOYEE_ID = re.compile(r"[A-Za-z0-9]{6,12}")
EMPLOYEE_NAME = re.compile(rf"[{JAPANESE_TEXT}a-zA-Z\s]{{1,50}}")
DEPARTMENT = re.compile(rf"[{JAPANESE_TEXT}a-zA-Z0-9\s\-]{{1,30}}")
EMAIL = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_NUMBER = re.compile(r"[0-9\-()\s]{10,15}")
IC_CARD_NUMBER = re.compile(r"[0-9]{4,20}")
ISO_DATE = re.compile(r"[0-9]{4}-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])")
CLOCK_TIME = re.compile(r"([01][0-9]|2[0-3]):[0-5][0-9]")
LOCATION = re.compile(rf"[{JAPANESE_TEXT}a-zA-Z0-9\s\-()]{{1,100}}")
TRANSPORTATION_PROVIDER = re.compile(rf"[{JAPANESE_TEXT}a-zA-Z0-9\s\-]{{1,50}}")
REPORT_STATUS = re.compile(r"DRAFT|SUBMITTED|PROCESSING|COMPLETED|CANCELLED")
PRIORITY = re.compile(r"LOW|MEDIUM|HIGH|URGENT")

DIGITS = re.compile(r"[0-9]+")


# ==================== IC CARD FORMATS ====================

NATIONWIDE = "nationwide"

CARD_NUMBER_MIN_LENGTH = 4
CARD_NUMBER_MAX_LENGTH = 20


@dataclass(frozen=True)
class CardFormat:
    """Issuer format definition used by the card classifier."""
    card_type: str
    pattern: Pattern
    lengths: Tuple[int, ...]
    has_checksum: bool
    description: str
    issuer: str
    regions: Tuple[str, ...]

    def matches(self, digits: str) -> bool:
        return len(digits) in self.lengths and self.pattern.fullmatch(digits) is not None


# Ordered: the first format whose lengths and pattern both match wins, so the
# issuer-prefixed 16 digit formats must precede the generic SUICA entry.
CARD_FORMATS: Tuple[CardFormat, ...] = (
    CardFormat(
        card_type="MANACA",
        pattern=re.compile(r"2\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="manaca IC card",
        issuer="Nagoya City Transportation Bureau / Meitetsu",
        regions=("Nagoya", "Tokai"),
    ),
    CardFormat(
        card_type="TOICA",
        pattern=re.compile(r"3\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="TOICA IC card",
        issuer="JR Central",
        regions=("Tokai", "Shizuoka"),
    ),
    CardFormat(
        card_type="ICOCA",
        pattern=re.compile(r"4\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="ICOCA IC card",
        issuer="JR West / Kansai private railways",
        regions=("Kansai", "Chugoku", "Shikoku"),
    ),
    CardFormat(
        card_type="SUGOCA",
        pattern=re.compile(r"5\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="SUGOCA IC card",
        issuer="JR Kyushu / Fukuoka City Transportation Bureau",
        regions=("Kyushu", "Fukuoka"),
    ),
    CardFormat(
        card_type="KITACA",
        pattern=re.compile(r"6\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="Kitaca IC card",
        issuer="JR Hokkaido / Sapporo City Transportation Bureau",
        regions=("Hokkaido", "Sapporo"),
    ),
    CardFormat(
        card_type="HAYAKAKEN",
        pattern=re.compile(r"7\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="Hayakaken IC card",
        issuer="Fukuoka City Transportation Bureau",
        regions=("Fukuoka",),
    ),
    CardFormat(
        card_type="NIMOCA",
        pattern=re.compile(r"8\d{15}"),
        lengths=(16,),
        has_checksum=True,
        description="nimoca IC card",
        issuer="Nishi-Nippon Railroad",
        regions=("Kyushu", "Fukuoka", "Kumamoto"),
    ),
    CardFormat(
        card_type="SUICA",
        pattern=re.compile(r"\d{16}"),
        lengths=(16,),
        has_checksum=True,
        description="Suica/PASMO IC card",
        issuer="JR East / Kanto private railways",
        regions=("Kanto", "Tokai", "Sendai", "Niigata"),
    ),
    CardFormat(
        card_type="CORPORATE",
        pattern=re.compile(r"\d{10,12}"),
        lengths=(10, 11, 12),
        has_checksum=False,
        description="Corporate ID card",
        issuer="Companies and organisations",
        regions=(NATIONWIDE,),
    ),
    CardFormat(
        card_type="STUDENT",
        pattern=re.compile(r"\d{8,14}"),
        lengths=tuple(range(8, 15)),
        has_checksum=False,
        description="Student ID card",
        issuer="Educational institutions",
        regions=(NATIONWIDE,),
    ),
)

CARD_TYPES: Tuple[str, ...] = tuple(fmt.card_type for fmt in CARD_FORMATS) + ("PASMO",)

CARD_TYPE = re.compile("|".join(CARD_TYPES))
