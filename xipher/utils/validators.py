"""
Validation Utilities
====================

Input validation for key material and passwords.
"""

from __future__ import annotations

from typing import Union

from xipher.core.errors import InvalidPasswordError

BytesLike = Union[bytes, bytearray, memoryview]


class ValidationError(ValueError):
    """Raised when an argument fails validation."""
    pass


def validate_bytes(value: object, field_name: str = "value") -> bytes:
    """
    Validate a bytes-like argument and return an immutable copy.

    Raises:
        ValidationError: If ``value`` is not bytes-like
    """
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise ValidationError(f"{field_name} must be bytes-like, got {type(value).__name__}")
    return bytes(value)


def validate_password(password: Union[str, BytesLike]) -> bytes:
    """
    Normalize a password to bytes.

    ``str`` passwords are UTF-8 encoded; bytes are used as given.

    Raises:
        InvalidPasswordError: If the password is empty
        ValidationError: If the password is neither str nor bytes-like
    """
    if isinstance(password, str):
        password_bytes = password.encode("utf-8")
    else:
        password_bytes = validate_bytes(password, "password")
    if not password_bytes:
        raise InvalidPasswordError("password must not be empty")
    return password_bytes
