"""
Unit tests for the security scanner.

Covers classification of SQL injection, OS command injection and XSS payloads,
the fixed evaluation order between pattern sets, and the legitimate Japanese
inputs that must never be flagged.
"""

import re

import pytest

from icguard import SecurityScanner, SecurityViolationKind


SQL_INJECTION_PAYLOADS = [
    "'; DROP TABLE users; --",
    "1' OR '1'='1",
    "admin'--",
    "UNION SELECT * FROM cards",
    "1; DELETE FROM reports",
    "/* comment */ value",
]

OS_COMMAND_PAYLOADS = [
    "test; rm -rf /",
    "file && cat /etc/passwd",
    "| ls -la",
    "`whoami`",
    "$(id)",
    "${HOME}",
    "../../etc/passwd",
    "..\\..\\windows\\system32",
    "%2e%2e%2fetc",
    "..%252fetc",
    "sudo reboot",
]

XSS_PAYLOADS = [
    "<script>alert(1)</script>",
    "<img src=x onerror=alert(1)>",
    "javascript:alert(1)",
    '<iframe src="http://evil.example"></iframe>',
    "<svg onload=alert(1)>",
    "vbscript:msgbox(1)",
    "data:text/html,<b>x</b>",
    "<object data=x></object>",
    "x_onerror=alert(1)",
    "a_onload=1",
]

LEGITIMATE_INPUTS = [
    "田中太郎",
    "営業部",
    "名古屋駅で紛失",
    "田中SELECT（人事部）",
    "DROP商店",
    "EMP001234",
    "tanaka@example.co.jp",
    "090-1234-5678",
    "2024-01-15",
    "09:30",
]


class TestSecurityScanner:
    """Classification of individual values."""

    @pytest.mark.security
    @pytest.mark.parametrize("payload", SQL_INJECTION_PAYLOADS)
    def test_sql_injection_detected(self, scanner, payload):
        """SQL keywords, comment tokens and tautologies classify as SQL injection."""
        result = scanner.scan(payload)

        assert result.violation is SecurityViolationKind.SQL_INJECTION
        assert not result.is_safe
        assert result.pattern is not None

    @pytest.mark.security
    @pytest.mark.parametrize("payload", OS_COMMAND_PAYLOADS)
    def test_os_command_injection_detected(self, scanner, payload):
        """Shell metacharacters, command words and traversal classify as OS command injection."""
        assert scanner.scan(payload).violation is SecurityViolationKind.OS_COMMAND_INJECTION

    @pytest.mark.security
    @pytest.mark.parametrize("payload", XSS_PAYLOADS)
    def test_xss_detected(self, scanner, payload):
        """Script tags, handlers and script URL schemes classify as XSS."""
        assert scanner.scan(payload).violation is SecurityViolationKind.XSS

    @pytest.mark.parametrize("value", LEGITIMATE_INPUTS)
    def test_legitimate_input_is_safe(self, scanner, value):
        """Ordinary report values, including keywords glued to Japanese text, are not flagged."""
        result = scanner.scan(value)

        assert result.violation is SecurityViolationKind.NONE
        assert result.is_safe
        assert result.pattern is None

    @pytest.mark.parametrize("value", [None, "", 12345, ["<script>"]])
    def test_non_string_or_empty_is_safe(self, scanner, value):
        assert scanner.scan(value).is_safe

    def test_standalone_english_keyword_is_flagged(self, scanner):
        """Keywords used as English words are still flagged; the scanner is a blacklist."""
        assert scanner.scan("Please select your card").violation is SecurityViolationKind.SQL_INJECTION

    def test_detail_never_contains_input(self, scanner):
        payload = "'; DROP TABLE users; --"
        result = scanner.scan(payload)

        assert payload not in result.detail
        assert "DROP" not in result.detail


class TestScanOrder:
    """Evaluation order SQL -> OS command -> XSS."""

    def test_sql_wins_over_xss(self, scanner):
        assert scanner.scan("<script>DROP TABLE x</script>").violation is SecurityViolationKind.SQL_INJECTION

    def test_os_command_wins_over_xss(self, scanner):
        assert scanner.scan("<a onclick=x>; ls").violation is SecurityViolationKind.OS_COMMAND_INJECTION

    def test_scan_is_deterministic(self, scanner):
        payload = "1' OR '1'='1"
        assert scanner.scan(payload) == scanner.scan(payload)

    def test_single_set_predicates_ignore_order(self, scanner):
        """Each predicate checks one set regardless of higher-priority matches."""
        value = "<script>DROP TABLE x</script>"

        assert scanner.detect_sql_injection(value)
        assert scanner.detect_xss(value)
        assert not scanner.detect_os_command(value)


class TestInjectedPatternSets:

    def test_custom_sql_patterns_replace_defaults(self):
        """Deployments can narrow a pattern set without changing the order."""
        scanner = SecurityScanner(sql_patterns=(re.compile(r"\bDROP\s+TABLE\b", re.IGNORECASE),))

        assert scanner.scan("Please select your card").is_safe
        assert scanner.scan("DROP TABLE users").violation is SecurityViolationKind.SQL_INJECTION
        assert scanner.scan("test; ls").violation is SecurityViolationKind.OS_COMMAND_INJECTION
