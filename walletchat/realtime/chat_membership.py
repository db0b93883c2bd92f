"""
Chat membership tracking.

Membership is held per identity, not per connection. A chat exists only
while it has members and is active while it has two or more. Dropping below
two members deletes the chat entirely; the remaining member has to join
again to reopen it.
"""

import threading

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

ACTIVE_THRESHOLD = 2


class ChatMembershipTracker:
    """Tracks which identities belong to which chats."""

    def __init__(self) -> None:
        self._members: dict[str, set[str]] = {}
        # address -> chat ids, so leave_all touches only the identity's own chats
        self._chats_by_address: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    def join(self, chat_id: str, address: str) -> bool:
        """
        Add an identity to a chat. Joining twice has no further effect.

        Returns:
            True if the chat just became active
        """
        with self._lock:
            members = self._members.setdefault(chat_id, set())
            if address in members:
                return False
            was_active = len(members) >= ACTIVE_THRESHOLD
            members.add(address)
            self._chats_by_address.setdefault(address, set()).add(chat_id)
            became_active = not was_active and len(members) >= ACTIVE_THRESHOLD
            member_count = len(members)

        if became_active:
            logger.info("CHAT ACTIVE", chat_id=chat_id, member_count=member_count)
        return became_active

    def leave(self, chat_id: str, address: str) -> bool:
        """
        Remove an identity from a chat.

        Returns:
            True if the chat was active and has now gone inactive
        """
        with self._lock:
            became_inactive = self._leave_locked(chat_id, address)

        if became_inactive:
            logger.info("CHAT INACTIVE", chat_id=chat_id)
        return became_inactive

    def _leave_locked(self, chat_id: str, address: str) -> bool:
        members = self._members.get(chat_id)
        if members is None or address not in members:
            return False
        was_active = len(members) >= ACTIVE_THRESHOLD
        members.discard(address)
        self._unindex(address, chat_id)

        if len(members) >= ACTIVE_THRESHOLD:
            return False

        for remaining in members:
            self._unindex(remaining, chat_id)
        del self._members[chat_id]
        return was_active

    def _unindex(self, address: str, chat_id: str) -> None:
        chats = self._chats_by_address.get(address)
        if chats is None:
            return
        chats.discard(chat_id)
        if not chats:
            del self._chats_by_address[address]

    def leave_all(self, address: str) -> list[str]:
        """
        Remove an identity from every chat it belongs to.

        Returns:
            IDs of the chats that went inactive
        """
        with self._lock:
            chat_ids = sorted(self._chats_by_address.get(address, ()))
            inactive = [chat_id for chat_id in chat_ids if self._leave_locked(chat_id, address)]

        for chat_id in inactive:
            logger.info("CHAT INACTIVE", chat_id=chat_id)
        return inactive

    def members(self, chat_id: str) -> set[str]:
        with self._lock:
            return set(self._members.get(chat_id, ()))

    def chats_for(self, address: str) -> set[str]:
        with self._lock:
            return set(self._chats_by_address.get(address, ()))

    def is_active(self, chat_id: str) -> bool:
        with self._lock:
            return len(self._members.get(chat_id, ())) >= ACTIVE_THRESHOLD

    @property
    def room_count(self) -> int:
        """Number of chats that currently have members."""
        with self._lock:
            return len(self._members)

    @property
    def active_room_count(self) -> int:
        with self._lock:
            return sum(1 for members in self._members.values() if len(members) >= ACTIVE_THRESHOLD)
