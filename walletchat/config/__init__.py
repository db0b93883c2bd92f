"""
Configuration module for walletchat.

This module provides type-safe, validated configuration using Pydantic BaseSettings.

Usage:
    from walletchat.config import get_config

    config = get_config()
    logger.info("Configuration loaded", host=config.server.host, port=config.server.port)
"""

import sys
import threading
from os import getenv

from .models import AppConfig

__all__ = ["get_config", "reset_config", "AppConfig"]

# Module-level config cache
_config_instance: AppConfig | None = None
_config_lock = threading.Lock()


def _is_test_mode() -> bool:
    """
    Detect if running in test environment.

    Returns:
        bool: True if running under pytest, False otherwise
    """
    if "pytest" in sys.modules:
        return True

    return bool(getenv("PYTEST_CURRENT_TEST"))


def get_config() -> AppConfig:
    """
    Get application configuration (singleton in production, fresh in tests).

    In test mode a fresh instance is built from the current environment on
    every call so tests can use monkeypatch.setenv without leaking state.

    Returns:
        AppConfig: The application configuration

    Raises:
        ValidationError: If configuration is invalid
    """
    global _config_instance

    if _is_test_mode():
        return AppConfig()

    with _config_lock:
        if _config_instance is None:
            _config_instance = AppConfig()
        return _config_instance


def reset_config() -> None:
    """Reset the configuration singleton."""
    global _config_instance

    with _config_lock:
        _config_instance = None
