"""
Security scanner for user-supplied strings.

Classifies a value against the dangerous-pattern sets of the pattern library
and reports a single violation kind. Sets are evaluated in a fixed order,
SQL injection first, then OS command injection, then XSS, and the first
match wins: the SQL and command sets are keyword-and-punctuation
combinations that are narrower than the broad tag/attribute XSS set.

The scanner is a heuristic blacklist, not a parser. Prose that happens to
contain SQL keywords as standalone English words is flagged; keywords glued
to Japanese text are not, because word boundaries are Unicode-aware.
"""

from dataclasses import dataclass
from typing import Optional, Pattern, Sequence, Tuple

from icguard.patterns import OS_COMMAND_PATTERNS, SQL_INJECTION_PATTERNS, XSS_PATTERNS
from icguard.results import SecurityViolationKind


VIOLATION_MESSAGES = {
    SecurityViolationKind.SQL_INJECTION: "Possible SQL injection",
    SecurityViolationKind.OS_COMMAND_INJECTION: "Possible OS command injection",
    SecurityViolationKind.XSS: "Possible cross-site scripting",
    SecurityViolationKind.NONE: "No dangerous pattern detected",
}


@dataclass(frozen=True)
class ScanResult:
    violation: SecurityViolationKind
    detail: str
    pattern: Optional[str] = None

    @property
    def is_safe(self) -> bool:
        return self.violation is SecurityViolationKind.NONE


SAFE = ScanResult(SecurityViolationKind.NONE, VIOLATION_MESSAGES[SecurityViolationKind.NONE])


class SecurityScanner:
    """
    Pure, deterministic classifier over the dangerous-pattern sets.

    Pattern sets can be injected to tune the precision boundary for a
    deployment; the evaluation order never changes.
    """

    def __init__(
        self,
        sql_patterns: Sequence[Pattern] = SQL_INJECTION_PATTERNS,
        os_command_patterns: Sequence[Pattern] = OS_COMMAND_PATTERNS,
        xss_patterns: Sequence[Pattern] = XSS_PATTERNS
    ):
        self._checks: Tuple[Tuple[SecurityViolationKind, Tuple[Pattern, ...]], ...] = (
            (SecurityViolationKind.SQL_INJECTION, tuple(sql_patterns)),
            (SecurityViolationKind.OS_COMMAND_INJECTION, tuple(os_command_patterns)),
            (SecurityViolationKind.XSS, tuple(xss_patterns)),
        )

    def scan(self, value: str) -> ScanResult:
        """
        Classify ``value`` against the pattern sets.

        Args:
            value: Input string to check

        Returns:
            ScanResult with the first matching violation, or NONE
        """
        if not isinstance(value, str) or not value:
            return SAFE

        for kind, patterns in self._checks:
            for pattern in patterns:
                if pattern.search(value):
                    return ScanResult(kind, VIOLATION_MESSAGES[kind], pattern.pattern)

        return SAFE

    # Single-set predicates, independent of the scan priority order

    def detect_sql_injection(self, value: str) -> bool:
        return self._matches(SecurityViolationKind.SQL_INJECTION, value)

    def detect_os_command(self, value: str) -> bool:
        return self._matches(SecurityViolationKind.OS_COMMAND_INJECTION, value)

    def detect_xss(self, value: str) -> bool:
        return self._matches(SecurityViolationKind.XSS, value)

    def _matches(self, kind: SecurityViolationKind, value: str) -> bool:
        if not isinstance(value, str):
            return False
        for check_kind, patterns in self._checks:
            if check_kind is kind:
                return any(pattern.search(value) for pattern in patterns)
        return False
