"""
Structured logging package for walletchat.

This package provides structlog-based logging with correlation IDs,
sensitive-field sanitization and per-environment log files.

All imports should use explicit paths like
'from walletchat.structured_logging.enhanced_logging_config import get_logger'.

The directory is named 'structured_logging' rather than 'logging' to avoid
namespace conflicts with Python's standard library logging module.
"""

__all__ = []
