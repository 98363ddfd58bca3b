"""
Utils module - input validation helpers.
"""

from xipher.utils.validators import ValidationError, validate_bytes, validate_password

__all__ = ["ValidationError", "validate_bytes", "validate_password"]
