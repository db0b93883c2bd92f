"""
Message Handler Factory for WebSocket message routing.

Maps each client frame type to a handler, replacing an if/elif chain with
an O(1) lookup that new message types can be registered into.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from ..error_types import ErrorMessages, ErrorType, create_websocket_error_response
from ..structured_logging.enhanced_logging_config import get_logger

if TYPE_CHECKING:
    from .connection_manager import ConnectionManager

logger = get_logger(__name__)


class MessageHandler(ABC):
    """Abstract base class for message handlers."""

    @abstractmethod
    async def handle(self, connection_manager: "ConnectionManager", connection_id: str, data: dict[str, Any]) -> None:
        """
        Handle a specific message type.

        Args:
            connection_manager: The connection manager owning the connection
            connection_id: The sending connection
            data: The message data
        """


class DirectMessageHandler(MessageHandler):
    """Handler for dm:send messages."""

    async def handle(self, connection_manager: "ConnectionManager", connection_id: str, data: dict[str, Any]) -> None:
        await connection_manager.handle_dm_send(connection_id, data)


class JoinChatMessageHandler(MessageHandler):
    """Handler for join_chat messages."""

    async def handle(self, connection_manager: "ConnectionManager", connection_id: str, data: dict[str, Any]) -> None:
        await connection_manager.handle_join_chat(connection_id, data)


class LeaveChatMessageHandler(MessageHandler):
    """Handler for leave_chat messages."""

    async def handle(self, connection_manager: "ConnectionManager", connection_id: str, data: dict[str, Any]) -> None:
        await connection_manager.handle_leave_chat(connection_id, data)


class PingMessageHandler(MessageHandler):
    """Handler for ping messages."""

    async def handle(self, connection_manager: "ConnectionManager", connection_id: str, data: dict[str, Any]) -> None:
        await connection_manager.send_to_connection(connection_id, connection_manager.make_event("pong"))


class MessageHandlerFactory:
    """Factory for creating and managing message handlers."""

    def __init__(self):
        self._handlers: dict[str, MessageHandler] = {}
        self.register_handler("dm:send", DirectMessageHandler())
        self.register_handler("join_chat", JoinChatMessageHandler())
        self.register_handler("leave_chat", LeaveChatMessageHandler())
        self.register_handler("ping", PingMessageHandler())

    def register_handler(self, message_type: str, handler: MessageHandler) -> None:
        """
        Register a new message handler.

        Args:
            message_type: The message type to handle
            handler: The handler instance
        """
        self._handlers[message_type] = handler
        logger.debug("Registered handler for message type", message_type=message_type)

    def get_handler(self, message_type: str) -> MessageHandler | None:
        return self._handlers.get(message_type)

    async def handle_message(
        self, connection_manager: "ConnectionManager", connection_id: str, message: dict[str, Any]
    ) -> None:
        """
        Route a validated client frame to its handler.

        Unknown types are answered with an error frame.
        """
        message_type = message.get("type", "unknown")
        data = message.get("data")
        if not isinstance(data, dict):
            data = {}

        handler = self.get_handler(message_type)
        if handler:
            await handler.handle(connection_manager, connection_id, data)
            return

        logger.warning("Unknown message type", message_type=message_type, connection_id=connection_id)
        error_response = create_websocket_error_response(
            ErrorType.INVALID_COMMAND,
            f"Unknown message type: {message_type}",
            ErrorMessages.INVALID_COMMAND,
            {"message_type": message_type, "supported_types": self.get_supported_message_types()},
        )
        await connection_manager.send_to_connection(connection_id, error_response)

    def get_supported_message_types(self) -> list[str]:
        return sorted(self._handlers)


# Global factory instance
message_handler_factory = MessageHandlerFactory()
