"""
Hashing utilities for validated report data.

Two concerns live here:

- ``fingerprint``: a deterministic SHA-256 digest of sanitized report data,
  used to detect tampering between validation and submission. The digest is
  taken over canonical JSON (sorted keys, compact separators, UTF-8), so two
  mappings with the same content always produce the same value.
- ``SecureHashManager``: salted PBKDF2-HMAC hashing of card numbers for
  storage, built on the ``cryptography`` key derivation primitives. Only the
  derived hash, its salt and a masked number ever leave this module.
"""

import base64
import hashlib
import hmac
import json
import secrets
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

import structlog
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from icguard.errors import ConfigurationError, HashingError
from icguard.patterns import DIGITS

logger = structlog.get_logger("icguard.hashing")

MIN_ITERATIONS = 100_000
MIN_SALT_LENGTH = 16
MIN_KEY_LENGTH = 16

HASH_ALGORITHMS = {
    'SHA256': hashes.SHA256,
    'SHA512': hashes.SHA512,
}


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def fingerprint(data: Any) -> str:
    """
    Compute the SHA-256 hex digest of ``data`` in canonical JSON form.

    Args:
        data: JSON-serialisable value, typically a sanitized field mapping

    Returns:
        64 character lowercase hex digest
    """
    return hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class HashConfig:
    """
    PBKDF2 parameters for card number hashing.

    Raises:
        ConfigurationError: If a parameter is below the accepted minimum or
            the algorithm is not supported
    """
    iterations: int = MIN_ITERATIONS
    salt_length: int = 32
    key_length: int = 64
    algorithm: str = "SHA512"
    pepper: str = field(default="", repr=False)

    def __post_init__(self):
        if not isinstance(self.iterations, int) or self.iterations < MIN_ITERATIONS:
            raise ConfigurationError(
                f"Hash iterations must be at least {MIN_ITERATIONS}",
                details={'iterations': self.iterations}
            )
        if not isinstance(self.salt_length, int) or self.salt_length < MIN_SALT_LENGTH:
            raise ConfigurationError(
                f"Salt length must be at least {MIN_SALT_LENGTH} bytes",
                details={'salt_length': self.salt_length}
            )
        if not isinstance(self.key_length, int) or self.key_length < MIN_KEY_LENGTH:
            raise ConfigurationError(
                f"Key length must be at least {MIN_KEY_LENGTH} bytes",
                details={'key_length': self.key_length}
            )
        if not isinstance(self.algorithm, str) or self.algorithm.upper() not in HASH_ALGORITHMS:
            raise ConfigurationError(
                "Hash algorithm must be SHA256 or SHA512",
                details={'algorithm': self.algorithm}
            )
        object.__setattr__(self, 'algorithm', self.algorithm.upper())

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> "HashConfig":
        """Build from ``HASH_*`` keys of a Flask config or similar mapping."""
        defaults = cls.__dataclass_fields__
        try:
            return cls(
                iterations=int(config.get('HASH_ITERATIONS', defaults['iterations'].default)),
                salt_length=int(config.get('HASH_SALT_LENGTH', defaults['salt_length'].default)),
                key_length=int(config.get('HASH_KEY_LENGTH', defaults['key_length'].default)),
                algorithm=config.get('HASH_ALGORITHM', defaults['algorithm'].default),
                pepper=config.get('HASH_PEPPER') or "",
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid hash configuration: {e}") from e


@dataclass(frozen=True)
class CardHash:
    """Stored representation of a hashed card number."""
    hash: str
    salt: str
    algorithm: str
    iterations: int
    masked_number: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.hash,
            'salt': self.salt,
            'algorithm': self.algorithm,
            'iterations': self.iterations,
            'masked_number': self.masked_number,
            'created_at': self.created_at.isoformat(),
        }


def _mask_last_four(digits: str) -> str:
    return f"{'*' * max(len(digits) - 4, 0)}{digits[-4:]}"


class SecureHashManager:
    """
    Salted, peppered PBKDF2 hashing for card numbers.

    Each call draws a fresh random salt unless one is supplied, so hashing
    the same number twice yields different digests; verification recomputes
    the digest with the stored salt and compares in constant time.
    """

    def __init__(self, config: Optional[HashConfig] = None):
        self.config = config or HashConfig()

    def hash_card_number(self, card_number: str, salt: Union[str, bytes, None] = None) -> CardHash:
        """
        Hash a card number for storage.

        Args:
            card_number: Digit string; full-width digits and surrounding
                whitespace are normalised first
            salt: Optional salt as raw bytes or base64 text; a random salt
                of the configured length is generated when omitted

        Returns:
            CardHash with base64 hash and salt

        Raises:
            HashingError: If the card number or salt is not usable
        """
        digits = self._normalize(card_number)
        salt_bytes = self._salt_bytes(salt)

        derived = self._derive(digits, salt_bytes)

        logger.debug("Card number hashed", algorithm=self.algorithm_label)
        return CardHash(
            hash=base64.b64encode(derived).decode("ascii"),
            salt=base64.b64encode(salt_bytes).decode("ascii"),
            algorithm=self.algorithm_label,
            iterations=self.config.iterations,
            masked_number=_mask_last_four(digits),
            created_at=datetime.now(timezone.utc),
        )

    def verify_card_number(self, card_number: str, stored_hash: str, salt: Union[str, bytes]) -> bool:
        """
        Check a card number against a stored hash.

        Returns:
            True on match; False on mismatch or any malformed argument
        """
        try:
            candidate = self.hash_card_number(card_number, salt=salt)
            return hmac.compare_digest(candidate.hash.encode("ascii"), str(stored_hash).encode("ascii"))
        except Exception as e:
            logger.warning("Card hash verification failed", error_type=type(e).__name__)
            return False

    @property
    def algorithm_label(self) -> str:
        return f"PBKDF2-{self.config.algorithm}"

    def security_config(self) -> Dict[str, Any]:
        """Current parameters, without the pepper."""
        return {
            'algorithm': self.algorithm_label,
            'iterations': self.config.iterations,
            'salt_length': self.config.salt_length,
            'key_length': self.config.key_length,
            'pepper_configured': bool(self.config.pepper),
        }

    def _derive(self, digits: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=HASH_ALGORITHMS[self.config.algorithm](),
            length=self.config.key_length,
            salt=salt,
            iterations=self.config.iterations,
        )
        return kdf.derive(f"{digits}{self.config.pepper}".encode("utf-8"))

    @staticmethod
    def _normalize(card_number: Any) -> str:
        if not isinstance(card_number, str):
            raise HashingError("Card number must be a string")
        digits = unicodedata.normalize("NFKC", card_number).strip()
        if not DIGITS.fullmatch(digits):
            raise HashingError("Card number must contain digits only")
        return digits

    def _salt_bytes(self, salt: Union[str, bytes, None]) -> bytes:
        if salt is None:
            return secrets.token_bytes(self.config.salt_length)
        if isinstance(salt, bytes):
            salt_bytes = salt
        elif isinstance(salt, str):
            try:
                salt_bytes = base64.b64decode(salt.encode("ascii"), validate=True)
            except ValueError as e:
                raise HashingError("Salt must be valid base64") from e
        else:
            raise HashingError("Salt must be bytes or base64 text")
        if len(salt_bytes) < MIN_SALT_LENGTH:
            raise HashingError(f"Salt must be at least {MIN_SALT_LENGTH} bytes")
        return salt_bytes
