"""
Key Derivation Functions
========================

Argon2id password stretching described by a self-contained kdf spec.

Spec Encoding (19 bytes):
    salt (16) | iterations (1) | memory in MiB (1) | threads (1)

A zero cost byte means "use the default". Parsed specs resolve zero to
the built-in defaults (16 iterations, 64 MiB, 1 thread), never to
environment overrides, so every process derives the same key from the
same bytes. The bytes themselves are kept as written.

The spec travels inside password-based public keys and ciphertexts, so
anyone holding the password can re-derive the same key from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw

from xipher.core.config import (
    DEFAULT_KDF_ITERATIONS,
    DEFAULT_KDF_MEMORY_MB,
    DEFAULT_KDF_THREADS,
    XipherConfig,
)
from xipher.core.crypto.entropy import random_bytes
from xipher.core.errors import KdfSpecParseError
from xipher.core.logging import get_secure_logger
from xipher.security.constants import KDF_KEY_LENGTH, KDF_SALT_LENGTH, KDF_SPEC_LENGTH

logger = get_secure_logger(__name__)

_COST_MAX: Final[int] = 255
_KIB_PER_MIB: Final[int] = 1024
# Argon2 requires at least 8 KiB of memory per lane
_MIN_KIB_PER_THREAD: Final[int] = 8


def _resolve_costs(iterations: int, memory: int, threads: int) -> tuple[int, int, int]:
    return (
        iterations or DEFAULT_KDF_ITERATIONS,
        memory or DEFAULT_KDF_MEMORY_MB,
        threads or DEFAULT_KDF_THREADS,
    )


def _check_costs(iterations: int, memory: int, threads: int) -> None:
    for name, value in (("iterations", iterations), ("memory", memory), ("threads", threads)):
        if not 0 <= value <= _COST_MAX:
            raise ValueError(f"kdf {name} must be within 0..{_COST_MAX}, got {value}")
    _, memory, threads = _resolve_costs(iterations, memory, threads)
    if memory * _KIB_PER_MIB < threads * _MIN_KIB_PER_THREAD:
        raise ValueError(f"kdf memory of {memory} MiB is too small for {threads} threads")


@dataclass(frozen=True, slots=True)
class KdfSpec:
    """
    Immutable Argon2id parameter set.

    Attributes:
        salt: 16 random bytes
        iterations: Argon2 time cost as encoded, 0 for default
        memory: Argon2 memory cost in MiB as encoded, 0 for default
        threads: Argon2 parallelism as encoded, 0 for default
    """

    salt: bytes
    iterations: int
    memory: int
    threads: int

    def __post_init__(self) -> None:
        if len(self.salt) != KDF_SALT_LENGTH:
            raise ValueError(f"kdf salt must be {KDF_SALT_LENGTH} bytes")
        _check_costs(self.iterations, self.memory, self.threads)

    @classmethod
    def new(cls, iterations: int = 0, memory: int = 0, threads: int = 0) -> KdfSpec:
        """
        Create a spec with a fresh random salt.

        Zero cost values fall back to the configured defaults.

        Raises:
            ValueError: If a cost value does not fit the encoding
            RandomSourceError: If the salt cannot be drawn
        """
        defaults = XipherConfig.get_instance().kdf
        return cls(
            salt=random_bytes(KDF_SALT_LENGTH),
            iterations=iterations or defaults.iterations,
            memory=memory or defaults.memory_mb,
            threads=threads or defaults.threads,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> KdfSpec:
        """
        Parse a 19-byte spec region.

        Zero cost bytes are accepted and derive with the built-in defaults.

        Raises:
            KdfSpecParseError: On wrong length or inconsistent cost values
        """
        if len(data) != KDF_SPEC_LENGTH:
            raise KdfSpecParseError(
                f"kdf spec must be {KDF_SPEC_LENGTH} bytes, got {len(data)}"
            )
        iterations, memory, threads = data[KDF_SALT_LENGTH:]
        try:
            return cls(
                salt=bytes(data[:KDF_SALT_LENGTH]),
                iterations=iterations,
                memory=memory,
                threads=threads,
            )
        except ValueError as e:
            raise KdfSpecParseError(f"invalid kdf spec: {e}") from e

    def to_bytes(self) -> bytes:
        return self.salt + bytes([self.iterations, self.memory, self.threads])

    @property
    def effective_costs(self) -> tuple[int, int, int]:
        """(iterations, memory MiB, threads) with zero fields resolved to the built-in defaults."""
        return _resolve_costs(self.iterations, self.memory, self.threads)

    def derive_key(self, password: bytes) -> bytes:
        """
        Stretch ``password`` into a 32-byte key with Argon2id.

        Deterministic: same password and spec bytes give the same key.
        """
        iterations, memory, threads = self.effective_costs
        logger.debug(
            "deriving key: iterations=%d memory=%dMiB threads=%d",
            iterations, memory, threads,
        )
        try:
            return hash_secret_raw(
                secret=password,
                salt=self.salt,
                time_cost=iterations,
                memory_cost=memory * _KIB_PER_MIB,
                parallelism=threads,
                hash_len=KDF_KEY_LENGTH,
                type=Type.ID,
            )
        except HashingError as e:
            raise ValueError(f"argon2 derivation failed: {e}") from e

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KdfSpec):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"KdfSpec(iterations={self.iterations}, memory={self.memory}MiB, threads={self.threads})"
