"""
Xipher Keys
===========

Private keys that are either random 32-byte curve scalars or derived from
a password, and public keys that say which of the two they came from.

Public key encoding (51 bytes):
    curve public key (32) | kdf spec (19)
    an all-zero kdf spec region means "not password based"

Security Notice:
    A password-derived private key never exports its raw scalar. Export
    the password and kdf spec and re-derive instead.
"""

from __future__ import annotations

import threading
from typing import Final, Optional, Union

from xipher.core.crypto import ecc
from xipher.core.crypto.entropy import random_bytes
from xipher.core.crypto.kdf import KdfSpec
from xipher.core.crypto.registry import KeyRegistry, OnceCell, resolve_registry
from xipher.core.crypto.symmetric import SymmetricCipher, derive_message_key
from xipher.core.config import XipherConfig
from xipher.core.errors import (
    InvalidKeyLengthError,
    InvalidPrivateKeyError,
    KeyUnavailableForPasswordError,
)
from xipher.core.logging import get_secure_logger
from xipher.security.constants import (
    CURVE_KEY_LENGTH,
    KDF_SPEC_LENGTH,
    XIPHER_PRIVATE_KEY_LENGTH,
    XIPHER_PUBLIC_KEY_LENGTH,
)
from xipher.utils.validators import BytesLike, validate_bytes, validate_password

logger = get_secure_logger(__name__)

PRIVATE_KEY_LENGTH: Final[int] = XIPHER_PRIVATE_KEY_LENGTH
PUBLIC_KEY_LENGTH: Final[int] = XIPHER_PUBLIC_KEY_LENGTH

_KEY_KIND: Final[str] = "xipher-key"
_PASSWORD_KIND: Final[str] = "xipher-password"
_EMPTY_SPEC: Final[bytes] = bytes(KDF_SPEC_LENGTH)


class PublicKey:
    """Curve public key plus the kdf spec of its private key, if any."""

    __slots__ = ("_key", "_spec")

    def __init__(self, key: ecc.PublicKey, spec: Optional[KdfSpec] = None) -> None:
        self._key = key
        self._spec = spec

    @property
    def ecc_public_key(self) -> ecc.PublicKey:
        return self._key

    @property
    def kdf_spec(self) -> Optional[KdfSpec]:
        return self._spec

    @property
    def is_password_based(self) -> bool:
        return self._spec is not None

    def to_bytes(self) -> bytes:
        spec_bytes = self._spec.to_bytes() if self._spec is not None else _EMPTY_SPEC
        return self._key.to_bytes() + spec_bytes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_bytes() == other.to_bytes()

    def __hash__(self) -> int:
        return hash(self.to_bytes())

    def __repr__(self) -> str:
        return f"PublicKey(password_based={self.is_password_based})"


class PrivateKey:
    """
    Xipher private key.

    A random key holds its 32-byte scalar. A password key holds the
    password, the kdf spec it was created with, and every key derived
    from that password so far, keyed by spec bytes.
    """

    __slots__ = (
        "_key", "_password", "_spec", "_spec_keys", "_spec_lock",
        "_registry", "_public_key",
    )

    def __init__(
        self,
        key: bytes,
        registry: KeyRegistry,
        password: Optional[bytes] = None,
        spec: Optional[KdfSpec] = None,
    ) -> None:
        if (password is None) != (spec is None):
            raise InvalidPrivateKeyError("password and kdf spec must be given together")
        self._key = bytes(key)
        self._password = password
        self._spec = spec
        self._spec_lock = threading.Lock()
        self._spec_keys: dict[bytes, OnceCell[bytes]] = {}
        if spec is not None:
            own: OnceCell[bytes] = OnceCell()
            own.get_or_init(lambda: self._key)
            self._spec_keys[spec.to_bytes()] = own
        self._registry = registry
        self._public_key: OnceCell[PublicKey] = OnceCell()

    @property
    def is_password_based(self) -> bool:
        return self._password is not None and self._spec is not None

    @property
    def kdf_spec(self) -> Optional[KdfSpec]:
        return self._spec

    def to_bytes(self) -> bytes:
        """
        Export the raw private key.

        Raises:
            KeyUnavailableForPasswordError: If the key is password based
        """
        if self._password is not None or self._spec is not None:
            raise KeyUnavailableForPasswordError()
        return self._key

    def open_sealed(self, body: bytes, spec: Optional[KdfSpec] = None) -> bytes:
        """
        Open an ECIES body sealed to this key's public key.

        Args:
            body: ephemeral public key | nonce | ciphertext
            spec: Kdf spec found in a ciphertext; None means this key's own

        Raises:
            InvalidPrivateKeyError: If a spec is given for a random key
            DecryptionError: Wrong key or tampered data
        """
        return self._ecc_private_key(spec).decrypt(body)

    def message_cipher(self, salt: bytes, spec: Optional[KdfSpec] = None) -> SymmetricCipher:
        """
        Build the AEAD context for one symmetric message.

        The cipher is keyed with an HKDF message key derived from ``salt``.
        """
        return SymmetricCipher(derive_message_key(self._key_for_spec(spec), salt))

    def _key_for_spec(self, spec: Optional[KdfSpec] = None) -> bytes:
        # derived keys are cached per spec bytes and never leave this object
        if spec is None:
            return self._key
        if not self.is_password_based:
            raise InvalidPrivateKeyError("private key is not password based")
        spec_bytes = spec.to_bytes()
        with self._spec_lock:
            cell = self._spec_keys.get(spec_bytes)
            if cell is None:
                cell = self._spec_keys[spec_bytes] = OnceCell()
        return cell.get_or_init(lambda: spec.derive_key(self._password))

    def _ecc_private_key(self, spec: Optional[KdfSpec] = None) -> ecc.PrivateKey:
        return ecc.parse_private_key(self._key_for_spec(spec), self._registry)

    def public_key(self) -> PublicKey:
        """Derive (once) the self-describing public key."""
        return self._public_key.get_or_init(
            lambda: PublicKey(self._ecc_private_key().public_key(), self._spec)
        )

    def __repr__(self) -> str:
        return f"PrivateKey(password_based={self.is_password_based})"


def new_private_key(registry: Optional[KeyRegistry] = None) -> PrivateKey:
    """Generate a random private key."""
    return parse_private_key(random_bytes(PRIVATE_KEY_LENGTH), registry)


def parse_private_key(key: BytesLike, registry: Optional[KeyRegistry] = None) -> PrivateKey:
    """
    Get the interned private key for the given 32 bytes.

    Raises:
        InvalidKeyLengthError: Unless exactly 32 bytes are given
    """
    key = validate_bytes(key, "private key")
    if len(key) != PRIVATE_KEY_LENGTH:
        raise InvalidKeyLengthError("private key", PRIVATE_KEY_LENGTH, len(key))
    registry = resolve_registry(registry)
    return registry.intern(_KEY_KIND, key, lambda: PrivateKey(key, registry))


def new_private_key_for_password(
    password: Union[str, BytesLike],
    registry: Optional[KeyRegistry] = None,
) -> PrivateKey:
    """
    Create (or fetch) the private key for ``password`` with default kdf costs.

    Raises:
        InvalidPasswordError: If the password is empty
    """
    return new_private_key_for_password_and_spec(password, 0, 0, 0, registry)


def new_private_key_for_password_and_spec(
    password: Union[str, BytesLike],
    iterations: int,
    memory: int,
    threads: int,
    registry: Optional[KeyRegistry] = None,
) -> PrivateKey:
    """
    Create (or fetch) the private key for ``password`` with explicit kdf costs.

    Zero cost values fall back to the configured defaults. Keys are
    interned by password bytes, one namespace per resolved cost profile:
    the same password and costs return the same object, salt and derived
    key, and Argon2 runs once even when first calls race.

    Args:
        password: Non-empty password (str is UTF-8 encoded)
        iterations: Argon2 time cost, 0 for default
        memory: Argon2 memory in MiB, 0 for default
        threads: Argon2 parallelism, 0 for default

    Raises:
        InvalidPasswordError: If the password is empty
        ValueError: If a cost value does not fit in one byte
    """
    password_bytes = validate_password(password)
    defaults = XipherConfig.get_instance().kdf
    costs = (
        iterations or defaults.iterations,
        memory or defaults.memory_mb,
        threads or defaults.threads,
    )
    registry = resolve_registry(registry)

    def build() -> PrivateKey:
        spec = KdfSpec.new(*costs)
        logger.debug("deriving password key")
        return PrivateKey(spec.derive_key(password_bytes), registry, password_bytes, spec)

    kind = f"{_PASSWORD_KIND}/{costs[0]}-{costs[1]}-{costs[2]}"
    return registry.intern(kind, password_bytes, build)


def parse_public_key(key: BytesLike, registry: Optional[KeyRegistry] = None) -> PublicKey:
    """
    Parse a 51-byte public key.

    Raises:
        InvalidKeyLengthError: Unless exactly 51 bytes are given
        KdfSpecParseError: If a non-zero kdf spec region is malformed
    """
    key = validate_bytes(key, "public key")
    if len(key) != PUBLIC_KEY_LENGTH:
        raise InvalidKeyLengthError("public key", PUBLIC_KEY_LENGTH, len(key))
    ecc_key = ecc.parse_public_key(key[:CURVE_KEY_LENGTH], registry)
    spec_bytes = key[CURVE_KEY_LENGTH:]
    spec = KdfSpec.from_bytes(spec_bytes) if spec_bytes != _EMPTY_SPEC else None
    return PublicKey(ecc_key, spec)
