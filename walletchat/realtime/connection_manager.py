"""
Connection manager for walletchat real-time communication.

Owns the lifecycle of every client WebSocket: the sign-in handshake, presence
transitions and their broadcasts, direct-message relay and chat membership.
The nonce store, session registry and membership tracker are injected and
are only ever mutated from here.
"""

import asyncio
import contextlib
import threading
import time
import uuid
from collections.abc import AsyncIterator
from typing import Any

from fastapi import WebSocket

from ..auth.address import normalize_address, try_normalize_address
from ..auth.nonce_store import NonceChallengeStore
from ..auth.typed_data import TypedDataVerifier
from ..exceptions import (
    AuthenticationError,
    ErrorContext,
    IdentityMismatchError,
    MissingCredentialsError,
)
from ..structured_logging.enhanced_logging_config import get_logger
from .chat_membership import ChatMembershipTracker
from .connection_models import ConnectionMetadata, HandshakeCredentials
from .connection_state_machine import ClientConnectionStateMachine
from .envelope import build_event, epoch_millis
from .rate_limiter import RateLimiter
from .session_registry import SessionRegistry

logger = get_logger(__name__)

# RFC 6455 policy violation
POLICY_VIOLATION_CLOSE_CODE = 1008

DEFAULT_MAX_DM_BODY_LENGTH = 4096


class ConnectionManager:
    """
    Orchestrates authenticated WebSocket connections.

    Presence changes and their broadcasts run under a per-identity asyncio
    lock, so an identity's online and offline events always go out in order
    while a slow socket only holds up transitions of the identity being
    announced.
    """

    def __init__(
        self,
        nonce_store: NonceChallengeStore,
        verifier: TypedDataVerifier,
        session_registry: SessionRegistry | None = None,
        chat_membership: ChatMembershipTracker | None = None,
        rate_limiter: RateLimiter | None = None,
        max_dm_body_length: int = DEFAULT_MAX_DM_BODY_LENGTH,
    ) -> None:
        self.nonce_store = nonce_store
        self.verifier = verifier
        self.session_registry = session_registry or SessionRegistry()
        self.chat_membership = chat_membership or ChatMembershipTracker()
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_dm_body_length = max_dm_body_length

        self.connections: dict[str, ConnectionMetadata] = {}
        # address -> [lock, holders and waiters]
        self._identity_locks: dict[str, list[Any]] = {}
        self._sequence_counter = 0
        self._sequence_lock = threading.Lock()

        self.session_registry.set_transport(self.send_to_connection)

    def _get_next_sequence(self) -> int:
        with self._sequence_lock:
            self._sequence_counter += 1
            return self._sequence_counter

    def make_event(self, event_type: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
        return build_event(event_type, data, sequence_number=self._get_next_sequence())

    def get_connection(self, connection_id: str) -> ConnectionMetadata | None:
        return self.connections.get(connection_id)

    @contextlib.asynccontextmanager
    async def _identity_lock(self, address: str) -> AsyncIterator[None]:
        """Serialize presence transitions of one identity. The lock is dropped once unused."""
        entry = self._identity_locks.get(address)
        if entry is None:
            entry = self._identity_locks[address] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._identity_locks[address]

    async def authenticate(self, credentials: HandshakeCredentials) -> str:
        """
        Verify a sign-in handshake and spend its nonce.

        The nonce is only consumed after the signature checks out, so a
        malformed attempt does not burn a challenge a legitimate client may
        still use.

        Returns:
            The canonical address proven by the signature

        Raises:
            AuthenticationError: Any subclass, for every failure kind
        """
        if not credentials.is_complete:
            raise MissingCredentialsError(
                "Handshake is missing address, signature or nonce",
                details={
                    "has_address": bool(credentials.address),
                    "has_signature": bool(credentials.signature),
                    "has_nonce": bool(credentials.nonce),
                },
            )

        claimed = normalize_address(credentials.address)
        challenge = self.nonce_store.redeem(credentials.nonce)
        if challenge.address != claimed:
            raise IdentityMismatchError(
                "Nonce was issued to a different address", context=ErrorContext(address=claimed)
            )

        message = self.verifier.build_message(challenge)
        recovered = await asyncio.to_thread(self.verifier.verify, message, credentials.signature)
        if recovered != claimed:
            raise IdentityMismatchError(
                "Recovered signer does not match claimed address",
                context=ErrorContext(address=claimed),
                details={"recovered": recovered},
            )

        self.nonce_store.consume(challenge.nonce)
        return claimed

    async def connect(self, websocket: WebSocket, credentials: HandshakeCredentials) -> ConnectionMetadata | None:
        """
        Authenticate and admit a new WebSocket connection.

        On any authentication failure the socket is closed with a policy
        violation code and no reason; the client learns nothing about why.

        Returns:
            Metadata of the admitted connection, or None if it was rejected
        """
        connection_id = str(uuid.uuid4())
        state_machine = ClientConnectionStateMachine(connection_id)
        state_machine.begin_authentication()

        try:
            address = await self.authenticate(credentials)
        except AuthenticationError as e:
            state_machine.close()
            logger.info("Rejected WebSocket handshake", connection_id=connection_id, reason=e.reason)
            await websocket.close(code=POLICY_VIOLATION_CLOSE_CODE)
            return None

        await websocket.accept()
        state_machine.authentication_succeeded(address=address)
        now = time.time()
        metadata = ConnectionMetadata(
            connection_id=connection_id,
            websocket=websocket,
            address=address,
            state_machine=state_machine,
            established_at=now,
            last_seen=now,
        )
        self.connections[connection_id] = metadata

        try:
            await self._announce_connection(metadata)
        except BaseException:
            # Cancelled or failed mid-announcement: the handler never gets to run teardown
            await self.disconnect(connection_id)
            raise

        return metadata

    async def _announce_connection(self, metadata: ConnectionMetadata) -> None:
        connection_id = metadata.connection_id
        address = metadata.address
        async with self._identity_lock(address):
            first_connection = self.session_registry.register(address, connection_id)
            if first_connection:
                logger.info("USER ONLINE", address=address, connection_id=connection_id)
                await self.broadcast(self.make_event("presence:online", {"address": address}), exclude=connection_id)
            else:
                logger.info(
                    "Additional connection for online user",
                    address=address,
                    connection_id=connection_id,
                    connections=len(self.session_registry.connections_for(address)),
                )
            await self.send_to_connection(
                connection_id, self.make_event("presence:snapshot", {"users": self.session_registry.snapshot()})
            )

    async def disconnect(self, connection_id: str) -> None:
        """
        Tear down a connection. Safe to call more than once and for
        connections that never authenticated.
        """
        metadata = self.connections.pop(connection_id, None)
        self.rate_limiter.remove_connection_message_data(connection_id)
        if metadata is None:
            return

        if not metadata.state_machine.is_closed:
            metadata.state_machine.close()
        address = metadata.address

        inactive: list[str] = []
        async with self._identity_lock(address):
            went_offline = self.session_registry.deregister(address, connection_id)
            if went_offline:
                logger.info("USER OFFLINE", address=address, connection_id=connection_id)
                await self.broadcast(self.make_event("presence:offline", {"address": address}))
                inactive = self.chat_membership.leave_all(address)
            else:
                logger.info("Connection closed, user still online", address=address, connection_id=connection_id)

        if inactive:
            logger.debug("Chats closed by disconnect", address=address, chat_ids=inactive)
        for chat_id in inactive:
            await self._close_chat(chat_id)

    def mark_seen(self, connection_id: str) -> None:
        metadata = self.connections.get(connection_id)
        if metadata is not None:
            metadata.last_seen = time.time()

    async def handle_dm_send(self, connection_id: str, data: dict[str, Any]) -> int:
        """
        Relay a direct message to every connection of the recipient and echo it to the sender.

        Malformed requests are dropped silently.

        Returns:
            Number of recipient connections the message reached
        """
        metadata = self.connections.get(connection_id)
        if metadata is None:
            return 0

        to = data.get("to")
        body = data.get("body")
        if not isinstance(to, str) or not to or not isinstance(body, str) or not body:
            logger.debug("Ignoring dm:send with missing fields", connection_id=connection_id)
            return 0
        if len(body) > self.max_dm_body_length:
            logger.debug(
                "Ignoring oversized dm:send", connection_id=connection_id, body_length=len(body)
            )
            return 0

        recipient = try_normalize_address(to)
        if recipient is None:
            logger.debug("Ignoring dm:send to malformed address", connection_id=connection_id)
            return 0

        payload = {"from": metadata.address, "to": recipient, "body": body, "ts": epoch_millis()}
        delivered = await self.session_registry.send_to_identity(recipient, self.make_event("dm:receive", payload))
        await self.send_to_connection(connection_id, self.make_event("dm:sent", payload))

        logger.debug("Relayed direct message", sender=metadata.address, recipient=recipient, delivered=delivered)
        return delivered

    @staticmethod
    def _chat_id(data: dict[str, Any]) -> str | None:
        chat_id = data.get("chatId")
        if not isinstance(chat_id, str) or not chat_id.strip():
            return None
        return chat_id.strip()

    async def handle_join_chat(self, connection_id: str, data: dict[str, Any]) -> bool:
        """
        Add the connection's identity to a chat and subscribe this connection to it.

        Returns:
            True if the chat became active
        """
        metadata = self.connections.get(connection_id)
        chat_id = self._chat_id(data)
        if metadata is None or chat_id is None:
            return False

        metadata.chats.add(chat_id)
        became_active = self.chat_membership.join(chat_id, metadata.address)
        if became_active:
            members = sorted(self.chat_membership.members(chat_id))
            await self.broadcast_to_chat(
                chat_id, self.make_event("chat:active", {"chatId": chat_id, "members": members})
            )
        return became_active

    async def handle_leave_chat(self, connection_id: str, data: dict[str, Any]) -> bool:
        """
        Remove the connection's identity from a chat.

        Membership belongs to the identity, so every one of its connections
        is unsubscribed. If the chat is deleted as a result, the connections
        of the members it dropped are unsubscribed as well.

        Returns:
            True if the chat went inactive
        """
        metadata = self.connections.get(connection_id)
        chat_id = self._chat_id(data)
        if metadata is None or chat_id is None:
            return False

        for other_id in self.session_registry.connections_for(metadata.address):
            other = self.connections.get(other_id)
            if other is not None:
                other.chats.discard(chat_id)
        metadata.chats.discard(chat_id)

        became_inactive = self.chat_membership.leave(chat_id, metadata.address)
        if became_inactive:
            await self._close_chat(chat_id)
        elif not self.chat_membership.members(chat_id):
            self._unsubscribe_all(chat_id)
        return became_inactive

    def _unsubscribe_all(self, chat_id: str) -> list[str]:
        """Drop a chat from every connection still subscribed to it."""
        unsubscribed = []
        for connection_id, metadata in list(self.connections.items()):
            if chat_id in metadata.chats:
                metadata.chats.discard(chat_id)
                unsubscribed.append(connection_id)
        return unsubscribed

    async def _close_chat(self, chat_id: str) -> None:
        """Tell the connections left in a deleted chat that it went inactive, then unsubscribe them."""
        event = self.make_event("chat:inactive", {"chatId": chat_id})
        for connection_id in self._unsubscribe_all(chat_id):
            await self.send_to_connection(connection_id, event)

    async def broadcast_to_chat(self, chat_id: str, event: dict[str, Any], exclude: str | None = None) -> int:
        """Send an event to every subscribed connection whose identity is a member of the chat."""
        members = self.chat_membership.members(chat_id)
        targets = [
            connection_id
            for connection_id, metadata in list(self.connections.items())
            if chat_id in metadata.chats and metadata.address in members and connection_id != exclude
        ]
        delivered = 0
        for connection_id in targets:
            if await self.send_to_connection(connection_id, event):
                delivered += 1
        return delivered

    async def broadcast(self, event: dict[str, Any], exclude: str | None = None) -> int:
        """
        Send an event to every authenticated connection.

        Returns:
            Number of connections the event was delivered to
        """
        delivered = 0
        for connection_id in list(self.connections):
            if connection_id == exclude:
                continue
            if await self.send_to_connection(connection_id, event):
                delivered += 1
        return delivered

    async def send_to_connection(self, connection_id: str, event: dict[str, Any]) -> bool:
        """
        Send an event to one connection. A failing socket is logged and skipped.

        Returns:
            True if the event was written to the socket
        """
        metadata = self.connections.get(connection_id)
        if metadata is None:
            return False
        try:
            await metadata.websocket.send_json(event)
            return True
        except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: one dead socket must not abort a fan-out
            logger.warning(
                "Failed to send event to connection",
                connection_id=connection_id,
                event_type=event.get("event_type"),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

    def get_stats(self) -> dict[str, Any]:
        """Get connection, presence, chat and nonce statistics."""
        return {
            "connections": len(self.connections),
            "online_identities": self.session_registry.online_count,
            "registered_connections": self.session_registry.connection_count,
            "chats": self.chat_membership.room_count,
            "active_chats": self.chat_membership.active_room_count,
            "pending_nonces": self.nonce_store.pending_count,
            "rate_limiter": self.rate_limiter.get_stats(),
        }
