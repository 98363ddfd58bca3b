"""
Compression Envelope
====================

Optional zlib pre-processing applied to plaintext before encryption.

Format:
    flag (1) | payload
      0x00: payload is the data verbatim
      0x01: payload is a zlib stream

Compression is kept only when it strictly reduces size.
"""

from __future__ import annotations

import zlib
from typing import Final

from xipher.core.errors import InvalidCiphertextError

FLAG_STORED: Final[int] = 0
FLAG_COMPRESSED: Final[int] = 1


def compress(data: bytes, enabled: bool = True) -> bytes:
    """
    Wrap ``data`` in a compression envelope.

    Args:
        data: Plaintext bytes
        enabled: When False the data is always stored verbatim

    Returns:
        Flag byte followed by the stored or compressed payload
    """
    if enabled:
        compressed = zlib.compress(data)
        if len(compressed) < len(data):
            return bytes([FLAG_COMPRESSED]) + compressed
    return bytes([FLAG_STORED]) + data


def decompress(envelope: bytes) -> bytes:
    """
    Unwrap a compression envelope.

    Raises:
        InvalidCiphertextError: Empty envelope, unknown flag or corrupt stream
    """
    if not envelope:
        raise InvalidCiphertextError("empty compression envelope")
    flag, payload = envelope[0], envelope[1:]
    if flag == FLAG_STORED:
        return bytes(payload)
    if flag == FLAG_COMPRESSED:
        try:
            return zlib.decompress(payload)
        except zlib.error as e:
            raise InvalidCiphertextError(f"corrupt compressed payload: {e}") from e
    raise InvalidCiphertextError(f"unknown compression flag: {flag}")
