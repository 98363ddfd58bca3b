import pytest

from xipher.core.config import (
    DEFAULT_KDF_ITERATIONS,
    DEFAULT_KDF_MEMORY_MB,
    DEFAULT_KDF_THREADS,
)
from xipher.core.crypto.kdf import KdfSpec
from xipher.core.errors import KdfSpecParseError
from xipher.security.constants import KDF_SPEC_LENGTH


def test_new_spec_uses_configured_defaults(fast_kdf):
    spec = KdfSpec.new()
    assert (spec.iterations, spec.memory, spec.threads) == (
        fast_kdf.iterations, fast_kdf.memory_mb, fast_kdf.threads,
    )
    assert len(spec.salt) == 16


def test_explicit_costs_override_defaults():
    spec = KdfSpec.new(iterations=3, memory=2, threads=2)
    assert (spec.iterations, spec.memory, spec.threads) == (3, 2, 2)


def test_zero_costs_fall_back(fast_kdf):
    spec = KdfSpec.new(iterations=2, memory=0, threads=0)
    assert spec.iterations == 2
    assert spec.memory == fast_kdf.memory_mb


def test_encoding_roundtrip():
    spec = KdfSpec.new(iterations=2, memory=1, threads=1)
    data = spec.to_bytes()
    assert len(data) == KDF_SPEC_LENGTH
    assert data[16:] == bytes([2, 1, 1])
    assert KdfSpec.from_bytes(data) == spec


def test_salts_differ_between_specs():
    assert KdfSpec.new() != KdfSpec.new()


@pytest.mark.parametrize("data", [b"", b"\x01" * 18, b"\x01" * 20])
def test_parse_rejects_wrong_length(data):
    with pytest.raises(KdfSpecParseError):
        KdfSpec.from_bytes(data)


def test_parse_accepts_zero_costs_as_builtin_defaults(fast_kdf):
    data = b"\x01" * 16 + bytes([0, 0, 0])
    spec = KdfSpec.from_bytes(data)
    assert spec.to_bytes() == data
    assert spec.effective_costs == (
        DEFAULT_KDF_ITERATIONS, DEFAULT_KDF_MEMORY_MB, DEFAULT_KDF_THREADS,
    )
    # environment overrides never leak into parsed specs
    assert spec.effective_costs != (
        fast_kdf.iterations, fast_kdf.memory_mb, fast_kdf.threads,
    )


def test_zero_cost_field_derives_like_the_default():
    salt = b"\x02" * 16
    implicit = KdfSpec.from_bytes(salt + bytes([0, 1, 0]))
    explicit = KdfSpec(salt, DEFAULT_KDF_ITERATIONS, 1, DEFAULT_KDF_THREADS)
    assert implicit != explicit
    assert implicit.derive_key(b"pw") == explicit.derive_key(b"pw")


def test_parse_rejects_inconsistent_costs():
    with pytest.raises(KdfSpecParseError):
        KdfSpec.from_bytes(b"\x01" * 16 + bytes([1, 1, 255]))


def test_cost_values_must_fit_one_byte():
    with pytest.raises(ValueError):
        KdfSpec.new(iterations=256)


def test_derive_key_is_deterministic():
    spec = KdfSpec.new(iterations=1, memory=1, threads=1)
    key = spec.derive_key(b"correct horse")
    assert len(key) == 32
    assert KdfSpec.from_bytes(spec.to_bytes()).derive_key(b"correct horse") == key
    assert spec.derive_key(b"battery staple") != key


def test_repr_hides_salt():
    spec = KdfSpec.new()
    assert spec.salt.hex() not in repr(spec)
