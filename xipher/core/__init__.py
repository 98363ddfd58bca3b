"""
Core module - configuration, logging, errors, keys and the envelope format.
"""

from xipher.core.config import XipherConfig
from xipher.core.logging import get_secure_logger, KeyMaterialFilter

__all__ = ["XipherConfig", "get_secure_logger", "KeyMaterialFilter"]
