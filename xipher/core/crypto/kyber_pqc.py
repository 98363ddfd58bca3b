"""
CRYSTALS-Kyber Post-Quantum Key Encapsulation
==============================================

ML-KEM-1024 (FIPS 203, Kyber1024) keys and the KEM-based encrypter.

Security Properties:
    - NIST Security Level 5
    - IND-CCA2 secure key encapsulation
    - Deterministic key pair from a 64-byte seed (d || z)

Algorithm Details (ML-KEM-1024):
    - Public key: 1568 bytes
    - Secret key: 3168 bytes
    - Ciphertext: 1568 bytes
    - Shared secret: 32 bytes

Usage Pattern:
    1. Expand a seed into a key pair
    2. Sender encapsulates once per public-key object and reuses the
       shared secret with a counter nonce for every message
    3. Recipient decapsulates the KEM ciphertext carried by each message
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Optional

from kyber_py.ml_kem import ML_KEM_1024

from xipher.core.crypto.registry import KeyRegistry, OnceCell, resolve_registry
from xipher.core.crypto.symmetric import SealedMessage, SymmetricCipher
from xipher.core.errors import (
    InvalidCiphertextError,
    InvalidKeyLengthError,
    InvalidPrivateKeyError,
    InvalidPublicKeyError,
)
from xipher.core.logging import get_secure_logger
from xipher.security.constants import (
    KYBER_CIPHERTEXT_LENGTH,
    KYBER_MODULUS,
    KYBER_POLYVEC_LENGTH,
    KYBER_PUBLIC_KEY_LENGTH,
    KYBER_SECRET_KEY_LENGTH,
    KYBER_SEED_LENGTH,
    NONCE_LENGTH,
    TAG_LENGTH,
)

logger = get_secure_logger(__name__)

SHARED_SECRET_SIZE: Final[int] = 32
MIN_MESSAGE_LENGTH: Final[int] = KYBER_CIPHERTEXT_LENGTH + NONCE_LENGTH + TAG_LENGTH

_PUBLIC_KIND: Final[str] = "kyber-public"


@dataclass(frozen=True, slots=True)
class KyberKeypair:
    """
    Immutable Kyber keypair.

    Attributes:
        public_key: Encapsulation key (can be shared)
        secret_key: Decapsulation key (must be kept secret)
    """

    public_key: bytes
    secret_key: bytes

    def __repr__(self) -> str:
        return f"KyberKeypair(pk_len={len(self.public_key)})"


@dataclass(frozen=True, slots=True)
class EncapsulationResult:
    """
    Result of Kyber key encapsulation.

    Attributes:
        shared_secret: 32-byte shared secret for symmetric encryption
        ciphertext: Encapsulated key ciphertext (send to recipient)
    """

    shared_secret: bytes
    ciphertext: bytes

    def __repr__(self) -> str:
        return f"EncapsulationResult(ct_len={len(self.ciphertext)})"


class KyberKEM:
    """
    ML-KEM-1024 key encapsulation mechanism.

    Thin adapter over ``kyber_py`` that translates its errors into the
    xipher taxonomy.
    """

    __slots__ = ()

    @staticmethod
    def key_derive(seed: bytes) -> KyberKeypair:
        """
        Expand a 64-byte seed into a key pair.

        Raises:
            InvalidKeyLengthError: Unless exactly 64 bytes are given
        """
        if len(seed) != KYBER_SEED_LENGTH:
            raise InvalidKeyLengthError("kyber seed", KYBER_SEED_LENGTH, len(seed))
        public_key, secret_key = ML_KEM_1024.key_derive(bytes(seed))
        return KyberKeypair(public_key=public_key, secret_key=secret_key)

    @staticmethod
    def encapsulate(public_key: bytes) -> EncapsulationResult:
        """
        Encapsulate a fresh shared secret to ``public_key``.

        Raises:
            InvalidPublicKeyError: If the encapsulation key fails validation
        """
        try:
            shared_secret, ciphertext = ML_KEM_1024.encaps(public_key)
        except ValueError as e:
            raise InvalidPublicKeyError(f"kyber public key rejected: {e}") from e
        return EncapsulationResult(shared_secret=shared_secret, ciphertext=ciphertext)

    @staticmethod
    def decapsulate(ciphertext: bytes, secret_key: bytes) -> bytes:
        """
        Recover the shared secret from ``ciphertext``.

        Invalid ciphertexts yield a pseudo-random secret (implicit
        rejection), which then fails AEAD authentication.
        """
        if len(ciphertext) != KYBER_CIPHERTEXT_LENGTH:
            raise InvalidCiphertextError(
                f"kyber ciphertext must be {KYBER_CIPHERTEXT_LENGTH} bytes, got {len(ciphertext)}"
            )
        try:
            return ML_KEM_1024.decaps(secret_key, ciphertext)
        except ValueError as e:
            raise InvalidPrivateKeyError(f"kyber decapsulation failed: {e}") from e


@dataclass(frozen=True, slots=True)
class KyberEncrypter:
    """Memoized encapsulation plus counter-nonce cipher for one public key."""

    kem_ciphertext: bytes
    cipher: SymmetricCipher

    def encrypt(self, plaintext: bytes, aad: Optional[bytes] = None) -> SealedMessage:
        return self.cipher.seal(plaintext, aad)

    def seal(self, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
        """Return ``kem_ciphertext || nonce || ciphertext``."""
        return self.kem_ciphertext + self.encrypt(plaintext, aad).to_bytes()


class KyberPublicKey:
    """ML-KEM-1024 encapsulation key."""

    __slots__ = ("_key", "_encrypter")

    def __init__(self, key: bytes) -> None:
        self._key = bytes(key)
        self._encrypter: OnceCell[KyberEncrypter] = OnceCell()

    def to_bytes(self) -> bytes:
        return self._key

    def encrypter(self) -> KyberEncrypter:
        return self._encrypter.get_or_init(self._new_encrypter)

    def _new_encrypter(self) -> KyberEncrypter:
        result = KyberKEM.encapsulate(self._key)
        logger.debug("created kyber encrypter")
        return KyberEncrypter(
            kem_ciphertext=result.ciphertext,
            cipher=SymmetricCipher(result.shared_secret),
        )

    def encrypt(self, plaintext: bytes, aad: Optional[bytes] = None) -> bytes:
        return self.encrypter().seal(plaintext, aad)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, KyberPublicKey):
            return NotImplemented
        return self._key == other._key

    def __hash__(self) -> int:
        return hash((_PUBLIC_KIND, self._key))

    def __repr__(self) -> str:
        return f"KyberPublicKey(len={len(self._key)})"


class KyberPrivateKey:
    """ML-KEM-1024 key pair expanded from a seed."""

    __slots__ = ("_keypair", "_registry", "_public_key")

    def __init__(self, keypair: KyberKeypair, registry: KeyRegistry) -> None:
        if len(keypair.secret_key) != KYBER_SECRET_KEY_LENGTH:
            raise InvalidPrivateKeyError("kyber secret key has an unexpected length")
        self._keypair = keypair
        self._registry = registry
        self._public_key: OnceCell[KyberPublicKey] = OnceCell()

    @classmethod
    def from_seed(cls, seed: bytes, registry: Optional[KeyRegistry] = None) -> KyberPrivateKey:
        return cls(KyberKEM.key_derive(seed), resolve_registry(registry))

    def public_key(self) -> KyberPublicKey:
        return self._public_key.get_or_init(
            lambda: parse_kyber_public_key(self._keypair.public_key, self._registry)
        )

    def decrypt(self, message: bytes, aad: Optional[bytes] = None) -> bytes:
        """
        Open a message produced by ``KyberPublicKey.encrypt``.

        Raises:
            InvalidCiphertextError: If the message is truncated
            DecryptionError: If authentication fails
        """
        if len(message) < MIN_MESSAGE_LENGTH:
            raise InvalidCiphertextError(
                f"kyber message too short: expected at least {MIN_MESSAGE_LENGTH}, got {len(message)}"
            )
        shared_secret = KyberKEM.decapsulate(message[:KYBER_CIPHERTEXT_LENGTH], self._keypair.secret_key)
        return SymmetricCipher(shared_secret).open_message(message[KYBER_CIPHERTEXT_LENGTH:], aad)

    def __repr__(self) -> str:
        return "KyberPrivateKey(<redacted>)"


def _check_encapsulation_key(key: bytes) -> None:
    # FIPS 203 modulus check: every packed 12-bit coefficient must be below q
    for i in range(0, KYBER_POLYVEC_LENGTH, 3):
        b0, b1, b2 = key[i], key[i + 1], key[i + 2]
        if (b0 | ((b1 & 0x0F) << 8)) >= KYBER_MODULUS or ((b1 >> 4) | (b2 << 4)) >= KYBER_MODULUS:
            raise InvalidPublicKeyError(
                f"kyber public key coefficient out of range at byte {i}"
            )


def parse_kyber_public_key(key: bytes, registry: Optional[KeyRegistry] = None) -> KyberPublicKey:
    """
    Get the interned Kyber public key for the given bytes.

    Raises:
        InvalidPublicKeyError: Unless the bytes are a valid 1568-byte
            encapsulation key
    """
    if len(key) != KYBER_PUBLIC_KEY_LENGTH:
        raise InvalidPublicKeyError(
            f"kyber public key must be {KYBER_PUBLIC_KEY_LENGTH} bytes, got {len(key)}"
        )
    _check_encapsulation_key(key)
    registry = resolve_registry(registry)
    return registry.intern(_PUBLIC_KIND, key, lambda: KyberPublicKey(key))
