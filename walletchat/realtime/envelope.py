"""
Event envelope utilities for walletchat real-time messages.

Every server-to-client frame shares one schema:
- event_type: str
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per-process)
- data: dict payload
"""

import threading
from datetime import UTC, datetime
from typing import Any

_global_sequence_counter = 0
_sequence_lock = threading.Lock()


def _get_next_global_sequence() -> int:
    """Thread-safe global sequence number generation."""
    global _global_sequence_counter

    with _sequence_lock:
        _global_sequence_counter += 1
        return _global_sequence_counter


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def epoch_millis() -> int:
    """Return the current time as integer milliseconds since the epoch."""
    return int(datetime.now(UTC).timestamp() * 1000)


def build_event(
    event_type: str,
    data: dict[str, Any] | None = None,
    *,
    sequence_number: int | None = None,
) -> dict[str, Any]:
    """
    Create a normalized event envelope.

    Args:
        event_type: Type of event
        data: Event data payload
        sequence_number: Optional explicit sequence number
    """
    seq = sequence_number if sequence_number is not None else _get_next_global_sequence()
    return {
        "event_type": event_type,
        "timestamp": utc_now_z(),
        "sequence_number": seq,
        "data": data or {},
    }
