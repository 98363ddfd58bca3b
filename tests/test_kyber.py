import os

import pytest

from xipher.core.crypto.kyber_pqc import (
    KyberKEM,
    KyberPrivateKey,
    parse_kyber_public_key,
)
from xipher.core.crypto.registry import KeyRegistry
from xipher.core.errors import (
    DecryptionError,
    InvalidCiphertextError,
    InvalidKeyLengthError,
    InvalidPublicKeyError,
)
from xipher.security.constants import KYBER_CIPHERTEXT_LENGTH, KYBER_PUBLIC_KEY_LENGTH


@pytest.fixture(scope="module")
def seed():
    return os.urandom(64)


def test_key_derive_is_deterministic(seed):
    first = KyberKEM.key_derive(seed)
    second = KyberKEM.key_derive(seed)
    assert first.public_key == second.public_key
    assert len(first.public_key) == KYBER_PUBLIC_KEY_LENGTH


def test_key_derive_rejects_short_seed():
    with pytest.raises(InvalidKeyLengthError):
        KyberKEM.key_derive(b"\x00" * 32)


def test_encapsulation_roundtrip(seed):
    keypair = KyberKEM.key_derive(seed)
    result = KyberKEM.encapsulate(keypair.public_key)
    assert len(result.ciphertext) == KYBER_CIPHERTEXT_LENGTH
    assert KyberKEM.decapsulate(result.ciphertext, keypair.secret_key) == result.shared_secret


def test_public_key_memoized_and_interned(seed, registry):
    private = KyberPrivateKey.from_seed(seed, registry)
    public = private.public_key()
    assert private.public_key() is public
    assert parse_kyber_public_key(public.to_bytes(), registry) is public


def test_parse_rejects_wrong_length(registry):
    with pytest.raises(InvalidPublicKeyError):
        parse_kyber_public_key(b"\x00" * 100, registry)


def test_encrypt_decrypt_roundtrip(seed, registry):
    private = KyberPrivateKey.from_seed(seed, registry)
    public = private.public_key()
    first = public.encrypt(b"post-quantum hello")
    second = public.encrypt(b"again")
    assert public.encrypter() is public.encrypter()
    assert first[:KYBER_CIPHERTEXT_LENGTH] == second[:KYBER_CIPHERTEXT_LENGTH]
    assert private.decrypt(first) == b"post-quantum hello"
    assert private.decrypt(second) == b"again"


def test_other_seed_cannot_decrypt(seed):
    message = KyberPrivateKey.from_seed(seed, KeyRegistry("a")).public_key().encrypt(b"data")
    with pytest.raises(DecryptionError):
        KyberPrivateKey.from_seed(os.urandom(64), KeyRegistry("b")).decrypt(message)


def test_truncated_message_rejected(seed, registry):
    with pytest.raises(InvalidCiphertextError):
        KyberPrivateKey.from_seed(seed, registry).decrypt(b"\x00" * 100)


def test_parse_rejects_out_of_range_coefficients(seed, registry):
    with pytest.raises(InvalidPublicKeyError):
        parse_kyber_public_key(b"\xff" * KYBER_PUBLIC_KEY_LENGTH, registry)

    tampered = bytearray(KyberKEM.key_derive(seed).public_key)
    tampered[0] = 0xFF
    tampered[1] |= 0x0F
    with pytest.raises(InvalidPublicKeyError):
        parse_kyber_public_key(bytes(tampered), registry)
    assert len(registry) == 0


def test_parse_accepts_coefficients_below_modulus(registry):
    # packs q - 1 = 3328 into the first two coefficients
    key = bytes([0x00, 0x0D, 0xD0]) + bytes(KYBER_PUBLIC_KEY_LENGTH - 3)
    assert parse_kyber_public_key(key, registry).to_bytes() == key
