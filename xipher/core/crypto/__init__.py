"""
Xipher Cryptographic Core
=========================

Architecture:
    1. X25519: classical key agreement (ECIES)
    2. ML-KEM-1024: post-quantum key encapsulation
    3. ChaCha20-Poly1305: authenticated symmetric layer
    4. Argon2id: password-derived keys

Security Properties:
    - All encryption is authenticated (AEAD)
    - Counter nonces per cipher context, never reused
    - Keys are interned and their derivations computed once
    - Secure RNG for all random values

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from xipher.core.crypto.registry import KeyRegistry, OnceCell, default_registry
from xipher.core.crypto.symmetric import SealedMessage, SymmetricCipher
from xipher.core.crypto.kdf import KdfSpec

__all__ = [
    "KeyRegistry",
    "OnceCell",
    "default_registry",
    "SealedMessage",
    "SymmetricCipher",
    "KdfSpec",
]
