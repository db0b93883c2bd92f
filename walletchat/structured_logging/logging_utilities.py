"""
Logging utilities for directory management, path resolution, and environment detection.
"""

import os
import sys
import threading
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

# Cache of directories we've successfully created (avoids repeated mkdir calls)
_created_dirs: set[str] = set()
_created_dirs_lock = threading.Lock()


def ensure_log_directory(log_path: Path) -> None:
    """
    Thread-safe directory creation for log files.

    Args:
        log_path: Path to the log file (directory will be created for parent)
    """
    if not log_path or not log_path.parent:
        return

    dir_path = log_path.parent
    dir_str = str(dir_path)

    with _created_dirs_lock:
        if dir_str in _created_dirs:
            return

        try:
            dir_path.mkdir(parents=True, exist_ok=True)
            _created_dirs.add(dir_str)
        except OSError as e:
            # Logging must not fail because of directory issues; retried next time
            logger.warning(
                "Failed to create log directory",
                directory=dir_str,
                error=str(e),
                error_type=type(e).__name__,
            )


def resolve_log_base(log_base: str) -> Path:
    """
    Resolve log_base path to absolute path relative to project root.

    Args:
        log_base: Relative or absolute path to log directory

    Returns:
        Absolute path to log directory
    """
    log_path = Path(log_base)
    if log_path.is_absolute():
        return log_path

    # Find the project root (where pyproject.toml is located)
    current_dir = Path.cwd()
    for parent in [current_dir] + list(current_dir.parents):
        if (parent / "pyproject.toml").exists():
            return parent / log_path

    return current_dir / log_path


def detect_environment() -> str:
    """
    Detect the current environment.

    Returns:
        One of "unit_test", "e2e_test", "production" or "local"
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return "unit_test"

    env = os.getenv("LOGGING_ENVIRONMENT", "").strip()
    if env in {"local", "unit_test", "e2e_test", "production"}:
        return env

    return "local"
