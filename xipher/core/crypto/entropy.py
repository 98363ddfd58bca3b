"""Operating system randomness."""

from __future__ import annotations

import secrets

from xipher.core.errors import RandomSourceError


def random_bytes(length: int) -> bytes:
    """
    Draw ``length`` bytes from the OS CSPRNG.

    Raises:
        RandomSourceError: If the random source is unavailable
    """
    try:
        return secrets.token_bytes(length)
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"random source failed: {e}") from e
