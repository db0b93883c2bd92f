"""
Presence registry: which identities are online and through which connections.

An identity is online exactly while at least one connection is registered
for it. The registry holds no empty entries, so its keys are the online set.
"""

import threading
from collections.abc import Awaitable, Callable
from typing import Any

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Delivers one event to one connection; returns True if it was sent
ConnectionSender = Callable[[str, dict[str, Any]], Awaitable[bool]]


class SessionRegistry:
    """Maps each online address to the set of its live connection IDs."""

    def __init__(self) -> None:
        self._sessions: dict[str, set[str]] = {}
        self._lock = threading.Lock()
        self._transport: ConnectionSender | None = None

    def set_transport(self, transport: ConnectionSender) -> None:
        """Bind the coroutine used to deliver events to individual connections."""
        self._transport = transport

    def register(self, address: str, connection_id: str) -> bool:
        """
        Add a connection for an identity.

        Returns:
            True if this is the identity's first connection (offline to online)
        """
        with self._lock:
            connections = self._sessions.get(address)
            if connections is None:
                self._sessions[address] = {connection_id}
                return True
            connections.add(connection_id)
            return False

    def deregister(self, address: str, connection_id: str) -> bool:
        """
        Remove a connection for an identity.

        Returns:
            True if the identity has no connections left (online to offline).
            Removing a pair that is not registered returns False.
        """
        with self._lock:
            connections = self._sessions.get(address)
            if connections is None or connection_id not in connections:
                return False
            connections.discard(connection_id)
            if connections:
                return False
            del self._sessions[address]
            return True

    def snapshot(self) -> list[dict[str, Any]]:
        """List every online identity."""
        with self._lock:
            return [{"address": address, "online": True} for address in sorted(self._sessions)]

    def connections_for(self, address: str) -> set[str]:
        """Return a copy of the connection IDs registered for an identity."""
        with self._lock:
            return set(self._sessions.get(address, ()))

    def is_online(self, address: str) -> bool:
        with self._lock:
            return address in self._sessions

    @property
    def online_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    @property
    def connection_count(self) -> int:
        with self._lock:
            return sum(len(connections) for connections in self._sessions.values())

    async def send_to_identity(self, address: str, event: dict[str, Any]) -> int:
        """
        Deliver an event to every connection of an identity.

        An offline identity is not an error; nothing is sent.

        Returns:
            Number of connections the event was delivered to
        """
        connection_ids = self.connections_for(address)
        if not connection_ids:
            logger.debug("No live connections for identity", address=address, event_type=event.get("event_type"))
            return 0
        if self._transport is None:
            raise RuntimeError("SessionRegistry transport has not been bound")

        delivered = 0
        for connection_id in sorted(connection_ids):
            if await self._transport(connection_id, event):
                delivered += 1
        return delivered
