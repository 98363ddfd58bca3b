"""
ChaCha20-Poly1305 Cipher Context
================================

AEAD cipher bound to one key, with nonces drawn from a counter.

Security Properties:
    - 256-bit key, 96-bit nonce, 128-bit Poly1305 tag (RFC 8439)
    - Nonces are a strictly increasing 96-bit counter per context, so a
      context never seals two messages under the same nonce
    - Counter increments are serialized by a lock

WARNING:
    - A counter only guarantees uniqueness within one context. Keys that
      outlive a context (long-lived symmetric keys) must go through
      ``derive_message_key`` to get a fresh key per message.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Final, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from xipher.core.errors import DecryptionError, InvalidCiphertextError, NonceExhaustedError
from xipher.security.constants import CIPHER_KEY_LENGTH, NONCE_LENGTH, TAG_LENGTH

_NONCE_LIMIT: Final[int] = 1 << (8 * NONCE_LENGTH)
_MESSAGE_KEY_INFO: Final[bytes] = b"xipher/message-key"


@dataclass(frozen=True, slots=True)
class SealedMessage:
    """
    Result of one AEAD seal.

    Attributes:
        nonce: The 12-byte nonce used
        ciphertext: Encrypted data with appended Poly1305 tag
    """

    nonce: bytes
    ciphertext: bytes

    def to_bytes(self) -> bytes:
        return self.nonce + self.ciphertext

    def __repr__(self) -> str:
        return f"SealedMessage(ciphertext_len={len(self.ciphertext)})"


class NonceSequence:
    """Thread-safe 96-bit big-endian nonce counter starting at zero."""

    __slots__ = ("_lock", "_next")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._next = 0

    def next_nonce(self) -> bytes:
        with self._lock:
            if self._next >= _NONCE_LIMIT:
                raise NonceExhaustedError("nonce counter exhausted for this cipher context")
            value = self._next
            self._next += 1
        return value.to_bytes(NONCE_LENGTH, "big")

    @property
    def issued(self) -> int:
        with self._lock:
            return self._next


class SymmetricCipher:
    """
    ChaCha20-Poly1305 bound to one key and one nonce sequence.

    Usage:
        cipher = SymmetricCipher(shared_secret)
        sealed = cipher.seal(b"data")
        plaintext = cipher.open(sealed.nonce, sealed.ciphertext)
    """

    __slots__ = ("_aead", "_nonces")

    def __init__(self, key: bytes) -> None:
        if len(key) != CIPHER_KEY_LENGTH:
            raise ValueError(f"Key must be exactly {CIPHER_KEY_LENGTH} bytes")
        self._aead = ChaCha20Poly1305(bytes(key))
        self._nonces = NonceSequence()

    @property
    def messages_sealed(self) -> int:
        return self._nonces.issued

    def seal(self, plaintext: bytes, aad: Optional[bytes] = None) -> SealedMessage:
        """
        Encrypt ``plaintext`` under the next nonce of this context.

        Raises:
            NonceExhaustedError: If the counter has wrapped
        """
        nonce = self._nonces.next_nonce()
        return SealedMessage(nonce=nonce, ciphertext=self._aead.encrypt(nonce, plaintext, aad))

    def open(self, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
        """
        Decrypt and verify a message sealed under this key.

        Raises:
            InvalidCiphertextError: If the nonce or ciphertext is truncated
            DecryptionError: If authentication fails
        """
        if len(nonce) != NONCE_LENGTH:
            raise InvalidCiphertextError(f"Nonce must be exactly {NONCE_LENGTH} bytes")
        if len(ciphertext) < TAG_LENGTH:
            raise InvalidCiphertextError("Ciphertext too short (missing authentication tag)")
        try:
            return self._aead.decrypt(nonce, ciphertext, aad)
        except InvalidTag as e:
            raise DecryptionError("authentication failed: wrong key or tampered data") from e

    def open_message(self, message: bytes, aad: Optional[bytes] = None) -> bytes:
        """Decrypt a ``nonce || ciphertext`` blob."""
        return self.open(message[:NONCE_LENGTH], message[NONCE_LENGTH:], aad)


def derive_message_key(key: bytes, salt: bytes) -> bytes:
    """
    Expand a long-lived key and a per-message salt into a one-time key.

    Args:
        key: Long-lived 32-byte key
        salt: Fresh random salt stored alongside the message

    Returns:
        32-byte message key
    """
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=CIPHER_KEY_LENGTH,
        salt=salt,
        info=_MESSAGE_KEY_INFO,
    )
    return hkdf.derive(key)
