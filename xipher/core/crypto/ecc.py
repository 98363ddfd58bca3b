"""
Curve25519 Key Agreement
========================

X25519 private/public keys and the ECIES encrypter built on them.

ECIES Flow:
    sender:   ephemeral scalar e, E = e*G, S = X25519(e, recipient)
              ciphertext = E || nonce || ChaCha20-Poly1305(S, nonce, data)
    receiver: S = X25519(recipient scalar, E), open

Each public-key object creates its ephemeral key pair once and reuses it
for every message; the encrypter's counter nonce keeps each message under
a distinct nonce.

Security Properties:
    - Keys are interned: equal bytes map to one object per registry
    - Low-order peer points are rejected (all-zero shared secret)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Optional

from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)

from xipher.core.crypto.entropy import random_bytes
from xipher.core.crypto.registry import KeyRegistry, OnceCell, resolve_registry
from xipher.core.crypto.symmetric import SealedMessage, SymmetricCipher
from xipher.core.errors import (
    InvalidCiphertextError,
    InvalidKeyLengthError,
    InvalidPublicKeyError,
)
from xipher.core.logging import get_secure_logger
from xipher.security.constants import CURVE_KEY_LENGTH, NONCE_LENGTH, TAG_LENGTH

logger = get_secure_logger(__name__)

PRIVATE_KEY_LENGTH: Final[int] = CURVE_KEY_LENGTH
PUBLIC_KEY_LENGTH: Final[int] = CURVE_KEY_LENGTH
MIN_MESSAGE_LENGTH: Final[int] = PUBLIC_KEY_LENGTH + NONCE_LENGTH + TAG_LENGTH

_PRIVATE_KIND: Final[str] = "ecc-private"
_PUBLIC_KIND: Final[str] = "ecc-public"


def _agree(scalar: bytes, peer: bytes) -> bytes:
    try:
        return X25519PrivateKey.from_private_bytes(scalar).exchange(
            X25519PublicKey.from_public_bytes(peer)
        )
    except ValueError as e:
        # cryptography rejects an all-zero result (low-order point)
        raise InvalidPublicKeyError("key agreement failed: low-order or malformed public key") from e


def _base_point_mult(scalar: bytes) -> bytes:
    return X25519PrivateKey.from_private_bytes(scalar).public_key().public_bytes_raw()


@dataclass(frozen=True, slots=True)
class Encrypter:
    """
    Ephemeral key pair plus the cipher keyed by its shared secret.

    Attributes:
        ephemeral_public_key: Sent with every ciphertext so the recipient
            can recompute the shared secret
    """

    ephemeral_public_key: bytes
    cipher: SymmetricCipher

    def encrypt(self, plaintext: bytes, aad: Optional[bytes] = None) -> SealedMessage:
        """Seal ``plaintext`` under a nonce never used before by this encrypter."""
        return self.cipher.seal(plaintext, aad)

    def seal(self, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
        """Return ``ephemeral_public_key || nonce || ciphertext``."""
        return self.ephemeral_public_key + self.encrypt(plaintext, aad).to_bytes()

    def __repr__(self) -> str:
        return f"Encrypter(messages_sealed={self.cipher.messages_sealed})"


class PublicKey:
    """X25519 public key (32-byte curve point)."""

    __slots__ = ("_key", "_encrypter")

    def __init__(self, key: bytes) -> None:
        self._key = bytes(key)
        self._encrypter: OnceCell[Encrypter] = OnceCell()

    def to_bytes(self) -> bytes:
        return self._key

    def encrypter(self) -> Encrypter:
        """
        Get the memoized ephemeral encrypter for this public key.

        Raises:
            InvalidPublicKeyError: If this key is a low-order point
            RandomSourceError: If the ephemeral scalar cannot be drawn
        """
        return self._encrypter.get_or_init(self._new_encrypter)

    def _new_encrypter(self) -> Encrypter:
        ephemeral_scalar = random_bytes(PRIVATE_KEY_LENGTH)
        shared_secret = _agree(ephemeral_scalar, self._key)
        logger.debug("created ephemeral encrypter")
        return Encrypter(
            ephemeral_public_key=_base_point_mult(ephemeral_scalar),
            cipher=SymmetricCipher(shared_secret),
        )

    def encrypt(self, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
        """ECIES-encrypt ``plaintext`` to this key."""
        return self.encrypter().seal(plaintext, aad)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash((_PUBLIC_KIND, self._key))

    def __repr__(self) -> str:
        return "ecc.PublicKey()"


class PrivateKey:
    """X25519 private key (32-byte scalar)."""

    __slots__ = ("_key", "_registry", "_public_key")

    def __init__(self, key: bytes, registry: KeyRegistry) -> None:
        self._key = bytes(key)
        self._registry = registry
        self._public_key: OnceCell[PublicKey] = OnceCell()

    def to_bytes(self) -> bytes:
        return self._key

    def public_key(self) -> PublicKey:
        """Derive (once) the public key by base-point multiplication."""
        return self._public_key.get_or_init(
            lambda: parse_public_key(_base_point_mult(self._key), self._registry)
        )

    def shared_secret(self, peer_public_key: bytes) -> bytes:
        """X25519 agreement with a peer's raw public key."""
        if len(peer_public_key) != PUBLIC_KEY_LENGTH:
            raise InvalidKeyLengthError("public key", PUBLIC_KEY_LENGTH, len(peer_public_key))
        return _agree(self._key, peer_public_key)

    def decrypt(self, message: bytes, aad: Optional[bytes] = None) -> bytes:
        """
        Open an ECIES message produced by ``PublicKey.encrypt``.

        Raises:
            InvalidCiphertextError: If the message is truncated
            InvalidPublicKeyError: If the embedded ephemeral key is low-order
            DecryptionError: If authentication fails
        """
        if len(message) < MIN_MESSAGE_LENGTH:
            raise InvalidCiphertextError(
                f"ecies message too short: expected at least {MIN_MESSAGE_LENGTH}, got {len(message)}"
            )
        ephemeral_public_key = message[:PUBLIC_KEY_LENGTH]
        cipher = SymmetricCipher(self.shared_secret(ephemeral_public_key))
        return cipher.open_message(message[PUBLIC_KEY_LENGTH:], aad)

    def __repr__(self) -> str:
        return "ecc.PrivateKey(<redacted>)"


def new_private_key(registry: Optional[KeyRegistry] = None) -> PrivateKey:
    """Generate a random private key."""
    return parse_private_key(random_bytes(PRIVATE_KEY_LENGTH), registry)


def parse_private_key(key: bytes, registry: Optional[KeyRegistry] = None) -> PrivateKey:
    """
    Get the interned private key for the given 32 bytes.

    Raises:
        InvalidKeyLengthError: Unless exactly 32 bytes are given
    """
    if len(key) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyLengthError("private key", PRIVATE_KEY_LENGTH, len(key))
    registry = resolve_registry(registry)
    return registry.intern(_PRIVATE_KIND, key, lambda: PrivateKey(key, registry))


def parse_public_key(key: bytes, registry: Optional[KeyRegistry] = None) -> PublicKey:
    """
    Get the interned public key for the given 32 bytes.

    Raises:
        InvalidKeyLengthError: Unless exactly 32 bytes are given
    """
    if len(key) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyLengthError("public key", PUBLIC_KEY_LENGTH, len(key))
    registry = resolve_registry(registry)
    return registry.intern(_PUBLIC_KIND, key, lambda: PublicKey(key))
