"""
Rate limiting for walletchat.

Sliding-window limits for nonce requests (per client host) and inbound
WebSocket frames (per connection).
"""

import asyncio
import time
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Rate limiter for nonce issuance and message sending.

    Each limit keeps a list of attempt timestamps per key and only counts
    the ones that fall inside its window.
    """

    def __init__(
        self,
        max_nonce_requests: int = 20,
        nonce_window: int = 60,
        max_messages_per_minute: int = 100,
        message_window: int = 60,
    ) -> None:
        """
        Initialize the rate limiter with configurable settings.

        Args:
            max_nonce_requests: Maximum nonce requests per client per window (default: 20)
            nonce_window: Nonce rate limit window in seconds (default: 60)
            max_messages_per_minute: Maximum messages per minute per connection (default: 100)
            message_window: Message rate limit window in seconds (default: 60)
        """
        self.nonce_attempts: dict[str, list[float]] = {}  # client key -> timestamps
        self.max_nonce_requests = max_nonce_requests
        self.nonce_window = nonce_window

        self.message_attempts: dict[str, list[float]] = {}  # connection_id -> timestamps
        self.max_messages_per_minute = max_messages_per_minute
        self.message_window = message_window

        # bucket name -> last time stale keys were evicted from it
        self._last_eviction: dict[str, float] = {"nonce": 0.0, "message": 0.0}

    @staticmethod
    def _prune(attempts: list[float], current_time: float, window: int) -> list[float]:
        return [attempt_time for attempt_time in attempts if current_time - attempt_time < window]

    def _evict_stale(self, bucket: dict[str, list[float]], current_time: float, window: int) -> int:
        removed = 0
        for key, attempts in list(bucket.items()):
            recent = self._prune(attempts, current_time, window)
            if recent:
                bucket[key] = recent
            else:
                del bucket[key]
                removed += 1
        return removed

    def _check(self, name: str, bucket: dict[str, list[float]], key: str, limit: int, window: int) -> bool:
        current_time = time.time()
        # Evict at most once per window so a flood of one-off keys cannot pile up between cleanups
        if current_time - self._last_eviction[name] >= window:
            self._evict_stale(bucket, current_time, window)
            self._last_eviction[name] = current_time

        recent = self._prune(bucket.get(key, []), current_time, window)
        if len(recent) >= limit:
            bucket[key] = recent
            return False
        recent.append(current_time)
        bucket[key] = recent
        return True

    def _info(self, bucket: dict[str, list[float]], key: str, limit: int, window: int) -> dict[str, Any]:
        current_time = time.time()
        recent = self._prune(bucket.get(key, []), current_time, window)
        return {
            "attempts": len(recent),
            "max_attempts": limit,
            "window_seconds": window,
            "attempts_remaining": max(0, limit - len(recent)),
            # The oldest attempt in the window is the next one to expire
            "reset_time": min(recent) + window if recent else 0,
        }

    def check_nonce_rate_limit(self, client_key: str) -> bool:
        """
        Check if a client may request another nonce, recording the attempt if so.

        Args:
            client_key: Client identifier (typically the remote host)

        Returns:
            bool: True if rate limit not exceeded, False if exceeded
        """
        allowed = self._check("nonce", self.nonce_attempts, client_key, self.max_nonce_requests, self.nonce_window)
        if not allowed:
            logger.warning("Nonce request rate limit exceeded", client=client_key)
        return allowed

    def get_nonce_rate_limit_info(self, client_key: str) -> dict[str, Any]:
        """Get nonce rate limit information for a client."""
        return self._info(self.nonce_attempts, client_key, self.max_nonce_requests, self.nonce_window)

    def check_message_rate_limit(self, connection_id: str) -> bool:
        """
        Check if a connection has exceeded message rate limits.

        Args:
            connection_id: The connection ID

        Returns:
            bool: True if rate limit not exceeded, False if exceeded
        """
        allowed = self._check(
            "message", self.message_attempts, connection_id, self.max_messages_per_minute, self.message_window
        )
        if not allowed:
            logger.warning(
                "Message rate limit exceeded",
                connection_id=connection_id,
                max_messages=self.max_messages_per_minute,
            )
        return allowed

    def get_message_rate_limit_info(self, connection_id: str) -> dict[str, Any]:
        """Get message rate limit information for a connection."""
        return self._info(self.message_attempts, connection_id, self.max_messages_per_minute, self.message_window)

    def remove_connection_message_data(self, connection_id: str) -> None:
        """
        Remove message rate limit data for a specific connection.

        Args:
            connection_id: The connection ID to remove data for
        """
        if self.message_attempts.pop(connection_id, None) is not None:
            logger.debug("Removed message rate limit data", connection_id=connection_id)

    def cleanup_old_attempts(self) -> int:
        """
        Drop keys whose attempts have all left their window.

        Returns:
            Number of keys removed
        """
        current_time = time.time()
        removed = self._evict_stale(self.nonce_attempts, current_time, self.nonce_window)
        removed += self._evict_stale(self.message_attempts, current_time, self.message_window)
        self._last_eviction = {"nonce": current_time, "message": current_time}

        if removed:
            logger.debug("Cleaned up rate limit data", removed=removed)
        return removed

    async def run_cleanup_loop(self, interval_seconds: float) -> None:
        """Drop stale rate limit keys every interval until cancelled."""
        logger.info("Rate limit cleanup loop started", interval_seconds=interval_seconds)
        try:
            while True:
                await asyncio.sleep(interval_seconds)
                self.cleanup_old_attempts()
        except asyncio.CancelledError:
            logger.info("Rate limit cleanup loop stopped")
            raise

    def get_stats(self) -> dict[str, Any]:
        """
        Get rate limiter statistics.

        Returns:
            dict: Statistics about current rate limiting state
        """
        return {
            "tracked_clients": len(self.nonce_attempts),
            "tracked_connections": len(self.message_attempts),
            "max_nonce_requests": self.max_nonce_requests,
            "max_messages_per_minute": self.max_messages_per_minute,
        }
