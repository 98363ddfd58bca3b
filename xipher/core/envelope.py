"""
Encryption Envelope
===================

Encrypts data to a xipher public key (asymmetric) or directly with a
xipher private key (symmetric), for both random and password keys.

Format:
    type (1) | kdf spec (19, password types only) | body

    asymmetric body: ephemeral public key (32) | nonce (12) | ciphertext
    symmetric body:  salt (16) | nonce (12) | ciphertext

The AEAD plaintext is the compression envelope of the caller's data.

Decryption Flow:
    type byte -> must match the private key kind (random / password)
    kdf spec  -> re-derive the password key for that spec (memoized)
    body      -> ECIES open, or HKDF message key + AEAD open
    plaintext -> decompress
"""

from __future__ import annotations

from enum import IntEnum
from typing import Final, Optional

from xipher.core.crypto.compression import compress as compress_envelope, decompress
from xipher.core.crypto.entropy import random_bytes
from xipher.core.crypto.kdf import KdfSpec
from xipher.core.errors import InvalidCiphertextError
from xipher.core.keys import PrivateKey, PublicKey
from xipher.core.logging import get_secure_logger
from xipher.security.constants import KDF_SPEC_LENGTH, MESSAGE_SALT_LENGTH

logger = get_secure_logger(__name__)


class CiphertextType(IntEnum):
    """Leading byte of every xipher ciphertext."""

    KEY_ASYMMETRIC = 0
    KEY_SYMMETRIC = 1
    PWD_ASYMMETRIC = 2
    PWD_SYMMETRIC = 3

    @property
    def is_password_based(self) -> bool:
        return self in (CiphertextType.PWD_ASYMMETRIC, CiphertextType.PWD_SYMMETRIC)

    @property
    def is_asymmetric(self) -> bool:
        return self in (CiphertextType.KEY_ASYMMETRIC, CiphertextType.PWD_ASYMMETRIC)


_HEADER_LENGTH: Final[int] = 1


def _header(ct_type: CiphertextType, spec: Optional[KdfSpec]) -> bytes:
    return bytes([ct_type]) + (spec.to_bytes() if spec is not None else b"")


def encrypt_with_public_key(public_key: PublicKey, data: bytes, compress: bool = True) -> bytes:
    """
    Encrypt ``data`` to ``public_key``.

    Messages to the same public-key object share its ephemeral key pair
    and are kept apart by the encrypter's nonce counter.

    Args:
        public_key: Recipient public key
        data: Plaintext
        compress: Try zlib compression before encrypting

    Returns:
        Ciphertext bytes
    """
    spec = public_key.kdf_spec
    ct_type = CiphertextType.PWD_ASYMMETRIC if spec is not None else CiphertextType.KEY_ASYMMETRIC
    body = public_key.ecc_public_key.encrypt(compress_envelope(data, compress))
    return _header(ct_type, spec) + body


def encrypt_with_private_key(private_key: PrivateKey, data: bytes, compress: bool = True) -> bytes:
    """
    Encrypt ``data`` symmetrically with ``private_key``.

    A fresh salt gives every message its own HKDF-derived key.
    """
    spec = private_key.kdf_spec
    ct_type = CiphertextType.PWD_SYMMETRIC if spec is not None else CiphertextType.KEY_SYMMETRIC
    salt = random_bytes(MESSAGE_SALT_LENGTH)
    sealed = private_key.message_cipher(salt).seal(compress_envelope(data, compress))
    return _header(ct_type, spec) + salt + sealed.to_bytes()


def parse_ciphertext_type(ciphertext: bytes) -> CiphertextType:
    """
    Read the type byte of a ciphertext.

    Raises:
        InvalidCiphertextError: If empty or the type is unknown
    """
    if len(ciphertext) < _HEADER_LENGTH:
        raise InvalidCiphertextError("empty ciphertext")
    try:
        return CiphertextType(ciphertext[0])
    except ValueError as e:
        raise InvalidCiphertextError(f"unknown ciphertext type: {ciphertext[0]}") from e


def decrypt(private_key: PrivateKey, ciphertext: bytes) -> bytes:
    """
    Decrypt a ciphertext produced by either encrypt function.

    Raises:
        InvalidCiphertextError: Malformed framing, or the ciphertext type
            does not match the key kind (random vs password)
        KdfSpecParseError: If the embedded kdf spec is malformed
        DecryptionError: Wrong key or tampered data
    """
    ct_type = parse_ciphertext_type(ciphertext)
    if ct_type.is_password_based != private_key.is_password_based:
        raise InvalidCiphertextError(
            f"ciphertext type {ct_type.name} does not match a "
            f"{'password' if private_key.is_password_based else 'random'} private key"
        )

    offset = _HEADER_LENGTH
    spec: Optional[KdfSpec] = None
    if ct_type.is_password_based:
        spec_bytes = ciphertext[offset:offset + KDF_SPEC_LENGTH]
        if len(spec_bytes) != KDF_SPEC_LENGTH:
            raise InvalidCiphertextError("ciphertext truncated inside kdf spec")
        spec = KdfSpec.from_bytes(spec_bytes)
        offset += KDF_SPEC_LENGTH
    body = ciphertext[offset:]

    if ct_type.is_asymmetric:
        envelope = private_key.open_sealed(body, spec)
    else:
        if len(body) < MESSAGE_SALT_LENGTH:
            raise InvalidCiphertextError("ciphertext truncated inside message salt")
        salt, message = body[:MESSAGE_SALT_LENGTH], body[MESSAGE_SALT_LENGTH:]
        envelope = private_key.message_cipher(salt, spec).open_message(message)

    logger.debug("decrypted %s ciphertext", ct_type.name)
    return decompress(envelope)
