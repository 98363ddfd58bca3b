import os
import threading

import pytest

from xipher.core.crypto import ecc
from xipher.core.errors import (
    DecryptionError,
    InvalidCiphertextError,
    InvalidKeyLengthError,
    InvalidPublicKeyError,
)


def test_private_key_roundtrip(registry):
    raw = os.urandom(32)
    key = ecc.parse_private_key(raw, registry)
    assert key.to_bytes() == raw


def test_private_keys_are_interned(registry):
    raw = os.urandom(32)
    assert ecc.parse_private_key(raw, registry) is ecc.parse_private_key(bytes(raw), registry)
    assert ecc.parse_private_key(os.urandom(32), registry) is not ecc.parse_private_key(raw, registry)


def test_new_private_key_is_registered(registry):
    key = ecc.new_private_key(registry)
    assert ecc.parse_private_key(key.to_bytes(), registry) is key


@pytest.mark.parametrize("length", [0, 31, 33, 64])
def test_invalid_lengths(registry, length):
    with pytest.raises(InvalidKeyLengthError):
        ecc.parse_private_key(b"\x01" * length, registry)
    with pytest.raises(InvalidKeyLengthError):
        ecc.parse_public_key(b"\x01" * length, registry)


def test_public_key_derivation_is_memoized_and_interned(registry):
    key = ecc.new_private_key(registry)
    public = key.public_key()
    assert len(public.to_bytes()) == 32
    assert key.public_key() is public
    assert ecc.parse_public_key(public.to_bytes(), registry) is public


def test_public_key_matches_known_vector(registry):
    # RFC 7748 section 6.1 (Alice)
    scalar = bytes.fromhex("77076d0a7318a57d3c16c17251b26645df4c2f87ebc0992ab177fba51db92c2a")
    expected = bytes.fromhex("8520f0098930a754748b7ddcb43ef75a0dbf3a0d26381af4eba4a98eaa9b4e6a")
    assert ecc.parse_private_key(scalar, registry).public_key().to_bytes() == expected


def test_encrypter_is_memoized(registry):
    public = ecc.new_private_key(registry).public_key()
    encrypter = public.encrypter()
    assert public.encrypter() is encrypter
    assert len(encrypter.ephemeral_public_key) == 32


def test_encrypter_nonces_are_distinct(registry):
    encrypter = ecc.new_private_key(registry).public_key().encrypter()
    nonces = [encrypter.encrypt(b"message").nonce for _ in range(100)]
    assert len(set(nonces)) == 100


def test_concurrent_encrypts_never_share_a_nonce(registry):
    public = ecc.new_private_key(registry).public_key()
    nonces = []
    lock = threading.Lock()

    def worker():
        local = [public.encrypter().encrypt(b"m").nonce for _ in range(50)]
        with lock:
            nonces.extend(local)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(nonces)) == 200


def test_encrypt_decrypt_roundtrip(registry):
    private = ecc.new_private_key(registry)
    message = private.public_key().encrypt(b"attack at dawn")
    assert message[:32] == private.public_key().encrypter().ephemeral_public_key
    assert private.decrypt(message) == b"attack at dawn"


def test_reused_ephemeral_key_still_decrypts_every_message(registry):
    private = ecc.new_private_key(registry)
    public = private.public_key()
    messages = [public.encrypt(f"msg {i}".encode()) for i in range(5)]
    assert [private.decrypt(m) for m in messages] == [f"msg {i}".encode() for i in range(5)]


def test_wrong_key_cannot_decrypt(registry):
    message = ecc.new_private_key(registry).public_key().encrypt(b"secret")
    with pytest.raises(DecryptionError):
        ecc.new_private_key(registry).decrypt(message)


def test_truncated_message_rejected(registry):
    with pytest.raises(InvalidCiphertextError):
        ecc.new_private_key(registry).decrypt(b"\x00" * 40)


def test_low_order_public_key_rejected(registry):
    public = ecc.parse_public_key(bytes(32), registry)
    with pytest.raises(InvalidPublicKeyError):
        public.encrypter()


def test_shared_secret_is_symmetric(registry):
    a = ecc.new_private_key(registry)
    b = ecc.new_private_key(registry)
    assert a.shared_secret(b.public_key().to_bytes()) == b.shared_secret(a.public_key().to_bytes())


def test_separate_registries_do_not_share_objects(registry):
    from xipher.core.crypto.registry import KeyRegistry

    raw = os.urandom(32)
    assert ecc.parse_private_key(raw, registry) is not ecc.parse_private_key(raw, KeyRegistry("other"))
