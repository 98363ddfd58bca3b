"""
Algorithm-Agnostic Hybrid Keys
==============================

One 64-byte seed deterministically yields both a Curve25519 key and an
ML-KEM-1024 key. A public key is exactly one of the two and carries its
algorithm in a leading tag byte.

Derivation:
    seed (64 bytes)
      -> SHA-256(seed)           -> X25519 scalar
      -> ML-KEM key_derive(seed) -> Kyber key pair

Public key encoding:
    tag (1) || payload
      Algorithm.ECC:   32-byte curve point
      Algorithm.KYBER: 1568-byte encapsulation key
"""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from enum import IntEnum
from typing import Callable, Final, Optional, Union

from xipher.core.crypto import ecc
from xipher.core.crypto.entropy import random_bytes
from xipher.core.crypto.kyber_pqc import (
    KyberPrivateKey,
    KyberPublicKey as KyberKey,
    parse_kyber_public_key,
)
from xipher.core.crypto.registry import KeyRegistry, OnceCell, resolve_registry
from xipher.core.errors import (
    InvalidCiphertextError,
    InvalidKeyLengthError,
    InvalidPublicKeyError,
)
from xipher.security.constants import CURVE_KEY_LENGTH, HYBRID_SEED_LENGTH

PRIVATE_KEY_LENGTH: Final[int] = HYBRID_SEED_LENGTH
MIN_PUBLIC_KEY_LENGTH: Final[int] = 1 + CURVE_KEY_LENGTH

_PRIVATE_KIND: Final[str] = "asx-private"


class Algorithm(IntEnum):
    """Leading tag byte of hybrid public keys and ciphertexts."""

    ECC = 0
    KYBER = 1


class PublicKey(ABC):
    """A hybrid public key: exactly one of ``EccPublicKey`` or ``KyberPublicKey``."""

    __slots__ = ()

    algorithm: Algorithm

    @abstractmethod
    def payload(self) -> bytes:
        """Algorithm-specific key bytes (without the tag)."""

    @abstractmethod
    def encrypt(self, plaintext: bytes) -> bytes:
        """Encrypt to this key; the result starts with the algorithm tag."""

    def to_bytes(self) -> bytes:
        return bytes([self.algorithm]) + self.payload()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())


class EccPublicKey(PublicKey):
    __slots__ = ("key",)

    algorithm = Algorithm.ECC

    def __init__(self, key: ecc.PublicKey) -> None:
        self.key = key

    def payload(self) -> bytes:
        return self.key.to_bytes()

    def encrypt(self, plaintext: bytes) -> bytes:
        return bytes([self.algorithm]) + self.key.encrypt(plaintext)

    def __repr__(self) -> str:
        return "asx.EccPublicKey()"


class KyberPublicKey(PublicKey):
    __slots__ = ("key",)

    algorithm = Algorithm.KYBER

    def __init__(self, key: KyberKey) -> None:
        self.key = key

    def payload(self) -> bytes:
        return self.key.to_bytes()

    def encrypt(self, plaintext: bytes) -> bytes:
        return bytes([self.algorithm]) + self.key.encrypt(plaintext)

    def __repr__(self) -> str:
        return "asx.KyberPublicKey()"


HybridPublicKey = Union[EccPublicKey, KyberPublicKey]


class PrivateKey:
    """
    64-byte hybrid seed.

    Sub-keys and public keys are derived on first access and memoized;
    nothing is derived at construction.
    """

    __slots__ = ("_seed", "_registry", "_ecc_key", "_kyber_key", "_ecc_public", "_kyber_public")

    def __init__(self, seed: bytes, registry: KeyRegistry) -> None:
        self._seed = bytes(seed)
        self._registry = registry
        self._ecc_key: OnceCell[ecc.PrivateKey] = OnceCell()
        self._kyber_key: OnceCell[KyberPrivateKey] = OnceCell()
        self._ecc_public: OnceCell[EccPublicKey] = OnceCell()
        self._kyber_public: OnceCell[KyberPublicKey] = OnceCell()

    def to_bytes(self) -> bytes:
        return self._seed

    def ecc_private_key(self) -> ecc.PrivateKey:
        return self._ecc_key.get_or_init(
            lambda: ecc.parse_private_key(hashlib.sha256(self._seed).digest(), self._registry)
        )

    def kyber_private_key(self) -> KyberPrivateKey:
        return self._kyber_key.get_or_init(
            lambda: KyberPrivateKey.from_seed(self._seed, self._registry)
        )

    def public_key_ecc(self) -> EccPublicKey:
        return self._ecc_public.get_or_init(
            lambda: EccPublicKey(self.ecc_private_key().public_key())
        )

    def public_key_kyber(self) -> KyberPublicKey:
        return self._kyber_public.get_or_init(
            lambda: KyberPublicKey(self.kyber_private_key().public_key())
        )

    def public_key(self, algorithm: Algorithm = Algorithm.ECC) -> HybridPublicKey:
        if Algorithm(algorithm) is Algorithm.KYBER:
            return self.public_key_kyber()
        return self.public_key_ecc()

    def decrypt(self, message: bytes) -> bytes:
        """
        Open a message produced by ``PublicKey.encrypt``.

        Raises:
            InvalidCiphertextError: Empty message or unknown algorithm tag
            DecryptionError: If authentication fails
        """
        if not message:
            raise InvalidCiphertextError("empty hybrid ciphertext")
        try:
            algorithm = Algorithm(message[0])
        except ValueError as e:
            raise InvalidCiphertextError(f"unknown algorithm tag: {message[0]}") from e
        if algorithm is Algorithm.KYBER:
            return self.kyber_private_key().decrypt(message[1:])
        return self.ecc_private_key().decrypt(message[1:])

    def __repr__(self) -> str:
        return "asx.PrivateKey(<redacted>)"


def new_private_key(registry: Optional[KeyRegistry] = None) -> PrivateKey:
    """Generate a random 64-byte hybrid seed."""
    return parse_private_key(random_bytes(PRIVATE_KEY_LENGTH), registry)


def parse_private_key(key: bytes, registry: Optional[KeyRegistry] = None) -> PrivateKey:
    """
    Get the interned hybrid private key for the given seed.

    Raises:
        InvalidKeyLengthError: Unless exactly 64 bytes are given
    """
    if len(key) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyLengthError("hybrid private key", PRIVATE_KEY_LENGTH, len(key))
    registry = resolve_registry(registry)
    return registry.intern(_PRIVATE_KIND, key, lambda: PrivateKey(key, registry))


def _decode_ecc(payload: bytes, registry: KeyRegistry) -> EccPublicKey:
    try:
        return EccPublicKey(ecc.parse_public_key(payload, registry))
    except InvalidKeyLengthError as e:
        raise InvalidPublicKeyError(f"invalid ecc payload: {e}") from e


def _decode_kyber(payload: bytes, registry: KeyRegistry) -> KyberPublicKey:
    return KyberPublicKey(parse_kyber_public_key(payload, registry))


_DECODERS: Final[dict[Algorithm, Callable[[bytes, KeyRegistry], HybridPublicKey]]] = {
    Algorithm.ECC: _decode_ecc,
    Algorithm.KYBER: _decode_kyber,
}


def parse_public_key(key: bytes, registry: Optional[KeyRegistry] = None) -> HybridPublicKey:
    """
    Parse ``tag || payload`` into the matching public key variant.

    The tag is resolved before any payload decoding.

    Raises:
        InvalidKeyLengthError: If shorter than tag + 32 bytes
        InvalidPublicKeyError: Unknown tag or payload decode failure
    """
    if len(key) < MIN_PUBLIC_KEY_LENGTH:
        raise InvalidKeyLengthError("hybrid public key", f">= {MIN_PUBLIC_KEY_LENGTH}", len(key))
    try:
        algorithm = Algorithm(key[0])
    except ValueError as e:
        raise InvalidPublicKeyError(f"unknown algorithm tag: {key[0]}") from e
    return _DECODERS[algorithm](bytes(key[1:]), resolve_registry(registry))
