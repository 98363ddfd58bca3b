"""
Security module - wire-format constants shared by the crypto core.
"""

from xipher.security import constants

__all__ = ["constants"]
