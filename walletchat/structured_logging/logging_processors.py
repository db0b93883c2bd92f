"""
Logging processors for structlog event processing.

This module provides processors for sanitizing sensitive data and adding
correlation IDs and request context to log entries.
"""

import re
import uuid
from datetime import UTC, datetime
from typing import Any

# Sensitive patterns that should be redacted
# These patterns match whole words or specific suffixes/prefixes
_SENSITIVE_PATTERNS = [
    r"\bpassword\b",
    r"\btoken\b",
    r"\bsecret\b",
    r"\bsignature\b",
    r"_key\b",  # Matches fields ending with _key (api_key, private_key, etc.)
    r"\bkey_\b",
    r"^key$",
    r"\bcredential\b",
    r"\bauth\b",
    r"\bbearer\b",
    r"\bauthorization\b",
]

# Safe field names that should never be redacted even if they match patterns
_SAFE_FIELDS = {
    "chat_key",
}


def sanitize_sensitive_data(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive data from log entries.

    Redacts values whose field names look like credentials (signatures,
    tokens, private keys) so that handshake material never reaches log files.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to sanitize

    Returns:
        Sanitized event dictionary
    """

    def sanitize_dict(d: dict[str, Any]) -> dict[str, Any]:
        """Recursively sanitize dictionary values."""
        sanitized: dict[str, Any] = {}
        for key, value in d.items():
            if isinstance(value, dict):
                sanitized[key] = sanitize_dict(value)
            else:
                key_lower = str(key).lower()
                if key_lower in _SAFE_FIELDS:
                    sanitized[key] = value
                elif any(re.search(pattern, key_lower) for pattern in _SENSITIVE_PATTERNS):
                    sanitized[key] = "[REDACTED]"
                else:
                    sanitized[key] = value
        return sanitized

    return sanitize_dict(event_dict)


def add_correlation_id(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add correlation ID to log entries if not already present.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name (unused)
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary with correlation ID
    """
    if "correlation_id" not in event_dict:
        event_dict["correlation_id"] = str(uuid.uuid4())

    return event_dict


def add_request_context(_logger: Any, _name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add timestamp and logger name to log entries.

    Args:
        _logger: Logger instance (unused)
        _name: Logger name
        event_dict: Event dictionary to enhance

    Returns:
        Enhanced event dictionary with request context
    """
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(UTC).isoformat()

    if "logger_name" not in event_dict:
        event_dict["logger_name"] = _name

    return event_dict
