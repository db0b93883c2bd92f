"""
Data models for connection management.

This module defines data structures used by the connection manager
for tracking connection state and metadata.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .connection_state_machine import ClientConnectionStateMachine


@dataclass(frozen=True)
class HandshakeCredentials:
    """Sign-in proof presented when a connection is opened."""

    address: str | None
    signature: str | None
    nonce: str | None

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> "HandshakeCredentials":
        """Build credentials from handshake metadata such as WebSocket query parameters."""

        def _clean(key: str) -> str | None:
            value = params.get(key)
            if value is None:
                return None
            value = str(value).strip()
            return value or None

        return cls(address=_clean("address"), signature=_clean("signature"), nonce=_clean("nonce"))

    @property
    def is_complete(self) -> bool:
        return bool(self.address and self.signature and self.nonce)


@dataclass
class ConnectionMetadata:
    """
    Metadata for one authenticated WebSocket connection.

    One identity may own several connections; each keeps its own set of
    subscribed chats for chat-scoped broadcasts.
    """

    connection_id: str
    websocket: Any
    address: str
    state_machine: ClientConnectionStateMachine
    established_at: float
    last_seen: float
    chats: set[str] = field(default_factory=set)
