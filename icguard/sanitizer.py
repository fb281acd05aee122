"""
Sanitization and masking utilities.

The sanitizer neutralises markup constructs that are unsafe for downstream
rendering without rejecting the input. It is a projection: applying it to
its own output changes nothing.
"""

from typing import Any

import bleach

from icguard.patterns import (
    CONTROL_CHARACTERS,
    DANGEROUS_ELEMENTS,
    DANGEROUS_TAGS,
    EVENT_HANDLER_ATTRIBUTES,
    SCRIPT_URL_SCHEMES,
)


class Sanitizer:
    """
    Security-focused string sanitizer.

    Removal steps:
    - control characters
    - complete <script>, <iframe> and <object> elements
    - stray opening or closing tags of those elements
    - on*= event handler attributes
    - javascript: and vbscript: URL schemes
    - surrounding whitespace
    """

    def sanitize(self, value: Any) -> str:
        """
        Sanitize a value for storage or rendering.

        Args:
            value: Value to sanitize; non-strings yield an empty string

        Returns:
            Sanitized string value
        """
        if not isinstance(value, str):
            return ""

        # A removal can splice together a new match ("jajavascript:vascript:").
        # Every changing pass only deletes characters, so this terminates.
        sanitized = value
        while True:
            cleaned = self._single_pass(sanitized)
            if cleaned == sanitized:
                return sanitized
            sanitized = cleaned

    @staticmethod
    def _single_pass(value: str) -> str:
        value = CONTROL_CHARACTERS.sub("", value)
        for element in DANGEROUS_ELEMENTS:
            value = element.sub("", value)
        value = DANGEROUS_TAGS.sub("", value)
        value = EVENT_HANDLER_ATTRIBUTES.sub("", value)
        value = SCRIPT_URL_SCHEMES.sub("", value)
        return value.strip()

    @staticmethod
    def escape_html(value: Any) -> str:
        """
        Escape markup for display contexts.

        Uses bleach with an empty tag allow-list, so every tag is rendered
        inert as text rather than stripped.
        """
        if not isinstance(value, str):
            return ""
        return bleach.clean(value, tags=set(), attributes={}, strip=False)


def mask_sensitive_data(value: Any) -> str:
    """
    Mask a value for safe logging.

    Keeps the first and last two characters; anything shorter than four
    characters collapses to ``***``.
    """
    if not isinstance(value, str) or len(value) < 4:
        return "***"
    return f"{value[:2]}{'*' * (len(value) - 4)}{value[-2:]}"
