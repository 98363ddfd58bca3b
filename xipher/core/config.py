"""
Xipher Configuration
====================

Immutable, environment-aware configuration with security-first defaults.

Features:
- Immutable configuration after initialization
- Environment variable overrides (``XIPHER_<SECTION>__<KEY>``)
- Sensitive keys are never read from the environment
- Validated key-derivation cost defaults
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Optional


_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "token", "private", "credential", "salt", "seed",
})

# Argon2id cost defaults used by password-derived keys
DEFAULT_KDF_ITERATIONS: Final[int] = 16
DEFAULT_KDF_MEMORY_MB: Final[int] = 64
DEFAULT_KDF_THREADS: Final[int] = 1

_BYTE_MAX: Final[int] = 255


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


@dataclass(frozen=True, slots=True)
class KdfConfig:
    """
    Default Argon2id costs applied when a kdf spec leaves a value at zero.

    Every value is encoded in a single byte inside the kdf spec, so each
    must stay within 1..255. Memory is expressed in MiB.
    """

    iterations: int = DEFAULT_KDF_ITERATIONS
    memory_mb: int = DEFAULT_KDF_MEMORY_MB
    threads: int = DEFAULT_KDF_THREADS

    def __post_init__(self) -> None:
        for field_name in ("iterations", "memory_mb", "threads"):
            value = getattr(self, field_name)
            if not 1 <= value <= _BYTE_MAX:
                raise ValueError(f"kdf {field_name} must be within 1..{_BYTE_MAX}: {value}")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "WARNING"
    log_dir: Optional[Path] = None
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    backup_count: int = 5
    enable_console: bool = True
    enable_json: bool = False

    def __post_init__(self) -> None:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.log_dir is not None and not self.log_dir.is_absolute():
            raise ValueError(f"log_dir must be an absolute path: {self.log_dir}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Immutable application identity."""

    app_name: str = "xipher"
    version: str = "0.1.0"


class XipherConfig:
    """
    Centralized, immutable configuration loader with environment overrides.

    Usage:
        config = XipherConfig.load()
        iterations = config.kdf.iterations

    Environment examples:
        XIPHER_KDF__ITERATIONS=4
        XIPHER_KDF__MEMORY_MB=16
        XIPHER_LOGGING__LEVEL=DEBUG
        XIPHER_LOGGING__LOG_DIR=/var/log/xipher
    """

    __slots__ = ("_kdf", "_logging", "_app", "_frozen", "_config_hash")

    _instance: Optional[XipherConfig] = None

    def __init__(
        self,
        kdf: Optional[KdfConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        """Initialize configuration. Use XipherConfig.load() for standard initialization."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_kdf", kdf or KdfConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_app", app or AppConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        config_str = f"{self._kdf}|{self._logging}|{self._app}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def kdf(self) -> KdfConfig:
        """Get key-derivation defaults."""
        return self._kdf

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._logging

    @property
    def app(self) -> AppConfig:
        """Get application configuration."""
        return self._app

    @property
    def config_hash(self) -> str:
        """Get configuration integrity hash."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "XIPHER") -> XipherConfig:
        """
        Load configuration with environment variable overrides.

        Args:
            env_prefix: Prefix for environment variables (default: XIPHER)

        Returns:
            Configured XipherConfig instance

        Raises:
            ValueError: If an override is not a valid value for its field
        """
        env_overrides = cls._parse_env_overrides(env_prefix)

        kdf_kwargs: dict[str, Any] = {}
        for name in ("iterations", "memory_mb", "threads"):
            key = f"kdf.{name}"
            if key in env_overrides:
                kdf_kwargs[name] = int(env_overrides[key])

        logging_kwargs: dict[str, Any] = {}
        if "logging.level" in env_overrides:
            logging_kwargs["level"] = env_overrides["logging.level"]
        if "logging.log_dir" in env_overrides:
            logging_kwargs["log_dir"] = Path(env_overrides["logging.log_dir"])
        if "logging.enable_console" in env_overrides:
            logging_kwargs["enable_console"] = env_overrides["logging.enable_console"].lower() == "true"
        if "logging.enable_json" in env_overrides:
            logging_kwargs["enable_json"] = env_overrides["logging.enable_json"].lower() == "true"

        return cls(
            kdf=KdfConfig(**kdf_kwargs) if kdf_kwargs else None,
            logging=LoggingConfig(**logging_kwargs) if logging_kwargs else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # XIPHER_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")
                if _is_sensitive_key(config_key):
                    continue
                overrides[config_key] = value

        return overrides

    @classmethod
    def get_instance(cls) -> XipherConfig:
        """Get or create the process-wide configuration instance."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance. Use only for testing."""
        cls._instance = None

    def __repr__(self) -> str:
        return f"XipherConfig(hash={self._config_hash}, app={self._app.app_name})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if hasattr(self, "_frozen") and self._frozen:
            raise AttributeError("XipherConfig is immutable after initialization")
        super().__setattr__(name, value)
