"""
File logging setup for the structured logging system.

Configures the standard library handlers that structlog renders into: one
rotating application log, one rotating errors log, and a console handler.
"""

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from walletchat.structured_logging.logging_utilities import ensure_log_directory, resolve_log_base

_SIZE_PATTERN = re.compile(r"^\s*(\d+)\s*(B|KB|MB|GB)?\s*$", re.IGNORECASE)
_SIZE_UNITS = {"B": 1, "KB": 1024, "MB": 1024 * 1024, "GB": 1024 * 1024 * 1024}

# Handlers installed by this module, so reconfiguration can remove them
_installed_handlers: list[logging.Handler] = []


def parse_size(value: str | int) -> int:
    """
    Parse a human-readable size such as "100MB" into bytes.

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, int):
        return value
    match = _SIZE_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid size value: {value!r}")
    number, unit = match.groups()
    return int(number) * _SIZE_UNITS[(unit or "B").upper()]


def _remove_installed_handlers(root_logger: logging.Logger) -> None:
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()


def _create_rotating_handler(log_path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    ensure_log_directory(log_path)
    handler = RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    return handler


def setup_enhanced_file_logging(environment: str, log_config: dict[str, Any], log_level: str) -> Path:
    """
    Set up file and console handlers on the root logger.

    Args:
        environment: Environment name, used as the log subdirectory
        log_config: Logging configuration dictionary
        log_level: Root log level

    Returns:
        The environment log directory
    """
    root_logger = logging.getLogger()
    _remove_installed_handlers(root_logger)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    env_log_dir = resolve_log_base(log_config.get("log_base", "logs")) / environment
    rotation = log_config.get("rotation", {})
    max_bytes = parse_size(rotation.get("max_size", "100MB"))
    backup_count = int(rotation.get("backup_count", 5))

    app_handler = _create_rotating_handler(env_log_dir / "walletchat.log", logging.DEBUG, max_bytes, backup_count)
    errors_handler = _create_rotating_handler(env_log_dir / "errors.log", logging.ERROR, max_bytes, backup_count)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    for handler in (app_handler, errors_handler, console_handler):
        root_logger.addHandler(handler)
        _installed_handlers.append(handler)

    return env_log_dir
