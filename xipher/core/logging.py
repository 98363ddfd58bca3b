"""
Secure Logging Module
=====================

Logging for a library that handles raw key material.

Features:
- Redaction of passwords, hex/base64 runs and ``bytes`` reprs
- Console handler on stderr, optional rotating JSON/text file handler
- Levels and destinations taken from ``XipherConfig``
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Pattern

from xipher.core.config import LoggingConfig, XipherConfig


_SENSITIVE_PATTERNS: Final[list[tuple[str, Pattern[str]]]] = [
    ("password", re.compile(r'(?i)(password|passwd|pwd)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    ("secret", re.compile(r'(?i)(secret|private[_-]?key|seed)\s*[=:]\s*["\']?[^\s"\']+["\']?')),
    # bytes literal reprs such as b'\x01\x02...'
    ("bytes", re.compile(r'b(["\'])(?:\\x[0-9a-fA-F]{2}|[^"\'\\]){8,}\1')),
    ("base64", re.compile(r'[A-Za-z0-9+/]{40,}={0,2}')),
    ("hex", re.compile(r'(?i)(?:0x)?[a-f0-9]{32,}')),
]

_REDACTED_TEXT: Final[str] = "[REDACTED]"
_CONSOLE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_FILE_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


class KeyMaterialFilter(logging.Filter):
    """
    Log filter that scrubs anything resembling key material.

    The record is always kept; only its message and string arguments
    are rewritten.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg and isinstance(record.msg, str):
            record.msg = self.sanitize(record.msg)

        if isinstance(record.args, dict):
            record.args = {
                k: self.sanitize(v) if isinstance(v, str) else self._scrub_bytes(v)
                for k, v in record.args.items()
            }
        elif isinstance(record.args, tuple):
            record.args = tuple(
                self.sanitize(arg) if isinstance(arg, str) else self._scrub_bytes(arg)
                for arg in record.args
            )

        return True

    @staticmethod
    def _scrub_bytes(value: object) -> object:
        if isinstance(value, (bytes, bytearray, memoryview)):
            return f"<{len(value)} bytes>"
        return value

    @staticmethod
    def sanitize(text: str) -> str:
        """Replace sensitive fragments of ``text`` with a redaction marker."""
        result = text
        for name, pattern in _SENSITIVE_PATTERNS:
            result = pattern.sub(f"{name}={_REDACTED_TEXT}", result)
        return result


class StructuredLogFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


def _file_handler(name: str, log_dir: Path, config: LoggingConfig) -> RotatingFileHandler:
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_dir / f"{name.replace('.', '_')}.log"),
        maxBytes=config.max_file_size_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    if config.enable_json:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def get_secure_logger(
    name: str,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Create a logger with key-material filtering.

    Handlers are attached once per logger name; later calls return the
    already configured logger.

    Args:
        name: Logger name (typically __name__)
        config: Logging settings (defaults to the process configuration)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    if config is None:
        config = XipherConfig.get_instance().logging

    logger.setLevel(getattr(logging, config.level.upper()))
    key_filter = KeyMaterialFilter()

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT, datefmt="%H:%M:%S"))
        console_handler.addFilter(key_filter)
        logger.addHandler(console_handler)

    if config.log_dir is not None:
        file_handler = _file_handler(name, config.log_dir, config)
        file_handler.addFilter(key_filter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    logger.propagate = False
    return logger
