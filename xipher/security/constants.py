"""
Cryptographic Constants
=======================

Fixed sizes of every byte encoding used by xipher. These values define
the wire format and must not change without a format version bump.
"""

from typing import Final

# Curve25519 / X25519
CURVE_KEY_LENGTH: Final[int] = 32  # scalar and point size

# Hybrid (asx) seed
HYBRID_SEED_LENGTH: Final[int] = 64

# ML-KEM-1024 (Kyber1024)
KYBER_SEED_LENGTH: Final[int] = 64
KYBER_PUBLIC_KEY_LENGTH: Final[int] = 1568
KYBER_SECRET_KEY_LENGTH: Final[int] = 3168
KYBER_CIPHERTEXT_LENGTH: Final[int] = 1568
KYBER_MODULUS: Final[int] = 3329
# k=4 polynomials of 256 packed 12-bit coefficients, then the 32-byte rho
KYBER_POLYVEC_LENGTH: Final[int] = 1536

# ChaCha20-Poly1305 (RFC 8439)
CIPHER_KEY_LENGTH: Final[int] = 32
NONCE_LENGTH: Final[int] = 12
TAG_LENGTH: Final[int] = 16

# Argon2id kdf spec: salt || iterations || memory || threads
KDF_SALT_LENGTH: Final[int] = 16
KDF_SPEC_LENGTH: Final[int] = KDF_SALT_LENGTH + 3
KDF_KEY_LENGTH: Final[int] = 32

# Password-scheme keys
XIPHER_PRIVATE_KEY_LENGTH: Final[int] = CURVE_KEY_LENGTH
XIPHER_PUBLIC_KEY_LENGTH: Final[int] = CURVE_KEY_LENGTH + KDF_SPEC_LENGTH

# Per-message salt for symmetric envelopes
MESSAGE_SALT_LENGTH: Final[int] = 16
