import json
import logging

import pytest

from xipher.core.config import KdfConfig, LoggingConfig, XipherConfig
from xipher.core.logging import KeyMaterialFilter, get_secure_logger


def test_env_overrides_kdf_defaults(fast_kdf):
    assert (fast_kdf.iterations, fast_kdf.memory_mb, fast_kdf.threads) == (1, 1, 1)


def test_builtin_defaults(monkeypatch):
    for name in ("ITERATIONS", "MEMORY_MB", "THREADS"):
        monkeypatch.delenv(f"XIPHER_KDF__{name}", raising=False)
    config = XipherConfig.load()
    assert (config.kdf.iterations, config.kdf.memory_mb, config.kdf.threads) == (16, 64, 1)


def test_sensitive_env_keys_are_ignored(monkeypatch):
    monkeypatch.setenv("XIPHER_KDF__SALT", "abc")
    monkeypatch.setenv("XIPHER_LOGGING__LEVEL", "debug")
    overrides = XipherConfig._parse_env_overrides("XIPHER")
    assert "kdf.salt" not in overrides
    assert overrides["logging.level"] == "debug"


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        KdfConfig(iterations=0)
    with pytest.raises(ValueError):
        KdfConfig(memory_mb=256)
    with pytest.raises(ValueError):
        LoggingConfig(level="LOUD")


def test_config_is_immutable():
    config = XipherConfig()
    with pytest.raises(AttributeError):
        config.foo = 1
    assert config.config_hash in repr(config)


def test_filter_redacts_key_material():
    sanitized = KeyMaterialFilter.sanitize("derived " + "ab" * 32 + " password=hunter2")
    assert "ab" * 32 not in sanitized
    assert "hunter2" not in sanitized
    assert "[REDACTED]" in sanitized


def test_filter_scrubs_bytes_arguments():
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "key %s", (b"\x01" * 32,), None)
    KeyMaterialFilter().filter(record)
    assert record.getMessage() == "key <32 bytes>"


def test_file_logging_writes_redacted_json(tmp_path):
    name = "xipher.tests.file_logging"
    config = LoggingConfig(level="DEBUG", log_dir=tmp_path, enable_console=False, enable_json=True)
    logger = get_secure_logger(name, config)
    try:
        logger.info("unlocking with password=hunter2")
        for handler in logger.handlers:
            handler.flush()
        line = (tmp_path / "xipher_tests_file_logging.log").read_text().strip()
        record = json.loads(line)
        assert record["level"] == "INFO"
        assert "hunter2" not in record["message"]
        assert get_secure_logger(name) is logger
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
