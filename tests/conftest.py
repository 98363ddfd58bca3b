"""
Shared fixtures.

Argon2 costs are lowered through the environment configuration so
password-key tests stay fast; every test gets its own key registry.
"""

import pytest

from xipher.core.config import XipherConfig
from xipher.core.crypto.registry import KeyRegistry


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    monkeypatch.setenv("XIPHER_KDF__ITERATIONS", "1")
    monkeypatch.setenv("XIPHER_KDF__MEMORY_MB", "1")
    monkeypatch.setenv("XIPHER_KDF__THREADS", "1")
    XipherConfig.reset_instance()
    yield XipherConfig.get_instance().kdf
    XipherConfig.reset_instance()


@pytest.fixture
def registry():
    return KeyRegistry("test")
