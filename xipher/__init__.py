"""
xipher - Hybrid Public-Key Encryption
=====================================

Key identities (Curve25519, ML-KEM-1024 and password-derived keys) and
ECIES-style envelope encryption.

Security Notice:
- No key material is logged
- Password-derived private keys never export their raw scalar
- Every ciphertext produced through one encrypter uses a distinct nonce
"""

from xipher.core.config import XipherConfig
from xipher.core.envelope import (
    CiphertextType,
    decrypt,
    encrypt_with_private_key,
    encrypt_with_public_key,
)
from xipher.core.errors import XipherError
from xipher.core.keys import (
    PrivateKey,
    PublicKey,
    new_private_key,
    new_private_key_for_password,
    new_private_key_for_password_and_spec,
    parse_private_key,
    parse_public_key,
)

__version__ = "0.1.0"

__all__ = [
    "XipherConfig",
    "XipherError",
    "CiphertextType",
    "PrivateKey",
    "PublicKey",
    "new_private_key",
    "new_private_key_for_password",
    "new_private_key_for_password_and_spec",
    "parse_private_key",
    "parse_public_key",
    "encrypt_with_public_key",
    "encrypt_with_private_key",
    "decrypt",
    "__version__",
]
