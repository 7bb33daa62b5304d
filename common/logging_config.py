import logging
import os
import re
import sys
from typing import Optional


_MASK = r'\1***MASKED***'


class SensitiveDataFilter(logging.Filter):
    """Filter to mask keys, passphrases and credentials in log records."""

    PATTERNS = [
        (re.compile(r'(encryption[_-]?key["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(encryptionKey["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(passphrase["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(api[_-]?key["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(jwt["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(authorization["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(bearer\s+)([^\s,}\'\"]+)', re.IGNORECASE), _MASK),
        (re.compile(r'(secret["\']?\s*[:=]\s*["\']?)([^"\'}\s,]+)', re.IGNORECASE), _MASK),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._mask_value(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_value(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_value(arg) for arg in record.args)

        return True

    def _mask_value(self, value):
        if isinstance(value, str):
            for pattern, replacement in self.PATTERNS:
                value = pattern.sub(replacement, value)
        return value


def setup_logging(component_name: str, log_level: Optional[str] = None) -> logging.Logger:
    """
    Set up logging configuration for a component.

    Module loggers obtained through get_logger() are children of the
    component loggers ('cli', 'indexer', 'transfer', 'sharecode'), so the
    handler installed here covers them.

    Args:
        component_name: Name of the component (e.g., 'cli', 'indexer')
        log_level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL env var or INFO

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(component_name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    handler.addFilter(SensitiveDataFilter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the given name (typically __name__).
    """
    return logging.getLogger(name)
