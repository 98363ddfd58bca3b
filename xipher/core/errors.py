"""
Xipher Error Taxonomy
=====================

Every failure raised by xipher derives from ``XipherError``.

Parsing failures also subclass ``ValueError`` so that callers treating
malformed input generically keep working.

Security Notice:
    Error messages describe sizes and algorithm tags only. They never
    include key bytes, passwords or derived secrets.
"""

from __future__ import annotations


class XipherError(Exception):
    """Base class for all xipher errors."""


class InvalidKeyLengthError(XipherError, ValueError):
    """Raised when key bytes handed to a parse function have the wrong size."""

    def __init__(self, kind: str, expected: int | str, actual: int) -> None:
        super().__init__(
            f"invalid {kind} length: expected {expected}, got {actual}"
        )
        self.kind = kind
        self.expected = expected
        self.actual = actual


class InvalidPublicKeyError(XipherError, ValueError):
    """Malformed public key payload, unknown algorithm tag or failed decode."""


class InvalidPrivateKeyError(XipherError, ValueError):
    """Malformed private key payload."""


class InvalidPasswordError(XipherError, ValueError):
    """Raised for an empty password."""


class KeyUnavailableForPasswordError(XipherError):
    """Raw export was requested for a password-derived private key."""

    def __init__(self) -> None:
        super().__init__(
            "private key is derived from a password; export the password "
            "and kdf spec instead"
        )


class RandomSourceError(XipherError):
    """The operating system random source failed. Fatal, never retried."""


class KdfSpecParseError(XipherError, ValueError):
    """The kdf spec region of a key or ciphertext is malformed."""


class InvalidCiphertextError(XipherError, ValueError):
    """Ciphertext framing is malformed or does not match the key type."""


class DecryptionError(XipherError):
    """Authenticated decryption failed (wrong key or tampered data)."""


class NonceExhaustedError(XipherError):
    """The nonce counter of a cipher context has no values left."""


__all__ = [
    "XipherError",
    "InvalidKeyLengthError",
    "InvalidPublicKeyError",
    "InvalidPrivateKeyError",
    "InvalidPasswordError",
    "KeyUnavailableForPasswordError",
    "RandomSourceError",
    "KdfSpecParseError",
    "InvalidCiphertextError",
    "DecryptionError",
    "NonceExhaustedError",
]
